"""Read-only queries over a thread arena."""

from annothread.models import AnnotationRecord, Thread


def has_visible_children(thread: Thread, node_id: str) -> bool:
    """Is any descendant of `node_id` visible?"""
    return any(thread.nodes[d].visible for d in thread.descendants(node_id))


def _count_by_visibility(thread: Thread, node_id: str, visibility: bool) -> int:
    return sum(1 for node in thread.walk(node_id) if node.visible == visibility)


def count_visible(thread: Thread, node_id: str) -> int:
    """Count visible annotations and replies in the subtree at `node_id`."""
    return _count_by_visibility(thread, node_id, True)


def count_hidden(thread: Thread, node_id: str) -> int:
    """Count hidden annotations and replies in the subtree at `node_id`."""
    return _count_by_visibility(thread, node_id, False)


def root_annotations(thread: Thread, node_ids: list[str]) -> list[AnnotationRecord]:
    """Find the topmost annotations among `node_ids`.

    Usually this is the single annotation at the top of a thread. When the
    top of a thread is a placeholder (its annotation was deleted but replies
    remain), descend one whole level at a time until a level with at least
    one annotation is found, and return every annotation on that level.

    Raises:
        EmptyThreadError: If no level below `node_ids` holds an annotation.
    """
    level = node_ids
    while level:
        annotations = [
            thread.nodes[n].annotation for n in level if thread.nodes[n].annotation
        ]
        if annotations:
            return annotations
        level = [child for n in level for child in thread.nodes[n].children]
    raise EmptyThreadError(node_ids)


class EmptyThreadError(ValueError):
    def __init__(self, node_ids: list[str]) -> None:
        self.node_ids = node_ids
        super().__init__(f"Thread contains no annotations: {node_ids}")
