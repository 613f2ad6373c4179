"""Comparators for ordering threads.

Each comparator takes the owning arena and two nodes and returns a negative,
zero or positive number, for use with `functools.cmp_to_key`.
"""

import math
from collections.abc import Callable

from annothread.models import AnnotationRecord, SortKey, Thread, ThreadNode
from annothread.threads.helpers import root_annotations

Comparator = Callable[[Thread, ThreadNode, ThreadNode], int]


def location(annotation: AnnotationRecord | None) -> float:
    """Numeric sort key for an annotation's position in the document.

    Lower numbers are closer to the start. Annotations without a text
    position selector sort last.
    """
    if annotation is not None:
        for target in annotation.target:
            for selector in target.selector or []:
                if selector.type == "TextPositionSelector" and selector.start is not None:
                    return selector.start
    return math.inf


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _compare_headless(a: ThreadNode, b: ThreadNode) -> int:
    """Threads without an annotation sort to the top."""
    if a.annotation is None and b.annotation is None:
        return 0
    return -1 if a.annotation is None else 1


def _newest_root_date(thread: Thread, node: ThreadNode) -> str:
    return max((a.created for a in root_annotations(thread, [node.id])), default="")


def _oldest_root_date(thread: Thread, node: ThreadNode) -> str:
    return min((a.created for a in root_annotations(thread, [node.id])), default="")


def compare_newest(thread: Thread, a: ThreadNode, b: ThreadNode) -> int:
    return _cmp(_newest_root_date(thread, b), _newest_root_date(thread, a))


def compare_oldest(thread: Thread, a: ThreadNode, b: ThreadNode) -> int:
    return _cmp(_oldest_root_date(thread, a), _oldest_root_date(thread, b))


def compare_location(thread: Thread, a: ThreadNode, b: ThreadNode) -> int:
    if a.annotation is None or b.annotation is None:
        return _compare_headless(a, b)
    return _cmp(location(a.annotation), location(b.annotation))


def compare_replies(thread: Thread, a: ThreadNode, b: ThreadNode) -> int:
    """Replies in ascending creation order; placeholders keep their position."""
    if a.annotation is None or b.annotation is None:
        return 0
    return _cmp(a.annotation.created, b.annotation.created)


_SORTERS: dict[SortKey, Comparator] = {
    SortKey.NEWEST: compare_newest,
    SortKey.OLDEST: compare_oldest,
    SortKey.LOCATION: compare_location,
}


def comparator_for(sort_key: SortKey) -> Comparator:
    return _SORTERS[SortKey(sort_key)]
