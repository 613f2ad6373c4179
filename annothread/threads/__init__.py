"""Thread building: linking, filtering, sorting and counting annotation threads."""

from annothread.threads.builder import build_thread, thread_annotations
from annothread.threads.root_thread import RootThreadCache, build_root_thread

__all__ = ["RootThreadCache", "build_root_thread", "build_thread", "thread_annotations"]
