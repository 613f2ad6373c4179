"""Thread builder: projects a flat annotation list into a thread arena.

Replies are linked to their nearest ancestor via `references`. Ancestors
that are referenced but absent get placeholder nodes. Broken or circular
reference chains are dropped at the link step, leaving the record as its
own top-level thread. Every call produces a fresh arena.
"""

import logging
from functools import cmp_to_key

from annothread.models import (
    ROOT_THREAD_ID,
    AnnotationRecord,
    BuildThreadOptions,
    Thread,
    ThreadNode,
)
from annothread.threads.helpers import has_visible_children
from annothread.threads.sorters import comparator_for, compare_replies

logger = logging.getLogger(__name__)


def annotation_id(annotation: AnnotationRecord) -> str:
    """Persistent id if saved, otherwise the local tag."""
    node_id = annotation.id or annotation.tag
    if not node_id:
        raise InvalidThreadInputError("annotation has neither an id nor a local tag")
    return node_id


def _has_path_to_root(nodes: dict[str, ThreadNode], node_id: str, ancestor_id: str) -> bool:
    """Can `node_id` be attached under `ancestor_id` without creating a cycle?

    Walks from `ancestor_id` toward the top of the tree. Fails if an ancestor
    is missing, points back at `node_id`, or is `node_id` itself.
    """
    seen: set[str] = set()
    current = ancestor_id
    while True:
        ancestor = nodes.get(current)
        if ancestor is None or current == node_id or ancestor.parent == node_id:
            return False
        if ancestor.parent is None:
            return True
        if current in seen:
            return False
        seen.add(current)
        current = ancestor.parent


def _set_parent(nodes: dict[str, ThreadNode], node_id: str, parents: list[str]) -> None:
    """Attach `node_id` under the last of `parents`.

    Missing ancestors get placeholders, each attached under the reference
    before it. Links are made from the topmost placeholder down.
    """
    end = len(parents)
    chain: list[tuple[str, int]] = [(node_id, end)]
    while end and nodes[node_id].parent is None and parents[end - 1] not in nodes:
        # Reply to an annotation that is no longer in the collection
        node_id = parents[end - 1]
        nodes[node_id] = ThreadNode(id=node_id)
        end -= 1
        chain.append((node_id, end))

    for node_id, end in reversed(chain):
        if end == 0 or nodes[node_id].parent is not None:
            continue
        parent_id = parents[end - 1]
        if _has_path_to_root(nodes, node_id, parent_id):
            nodes[node_id].parent = parent_id
            nodes[parent_id].children.append(node_id)
        else:
            logger.debug("Dropping circular reference from %s to %s", node_id, parent_id)

def _drop_empty_placeholders(nodes: dict[str, ThreadNode]) -> None:
    """Remove placeholders left without children after a dropped link."""
    empty = [n.id for n in nodes.values() if n.annotation is None and not n.children]
    while empty:
        node_id = empty.pop()
        parent_id = nodes.pop(node_id).parent
        if parent_id is None:
            continue
        parent = nodes[parent_id]
        parent.children.remove(node_id)
        if parent.annotation is None and not parent.children:
            empty.append(parent_id)


def thread_annotations(annotations: list[AnnotationRecord]) -> Thread:
    """Link `annotations` into a thread arena without filtering or sorting.

    Top-level threads start collapsed. Duplicate ids: the last record wins.
    """
    if not isinstance(annotations, (list, tuple)):
        raise InvalidThreadInputError(
            f"expected a list of annotations, got {type(annotations).__name__}"
        )

    nodes: dict[str, ThreadNode] = {}
    for annotation in annotations:
        node_id = annotation_id(annotation)
        nodes[node_id] = ThreadNode(id=node_id, annotation=annotation)

    for annotation in annotations:
        node_id = annotation_id(annotation)
        if nodes[node_id].annotation is not annotation:
            # Superseded by a later record with the same id
            continue
        parents = [ref for ref in annotation.references if ref != annotation.id]
        _set_parent(nodes, node_id, parents)

    _drop_empty_placeholders(nodes)

    # Top-level threads keep parent=None; the root lists them as children
    top_level: list[str] = []
    for node in nodes.values():
        if node.parent is None:
            node.collapsed = True
            top_level.append(node.id)

    return Thread(root=ThreadNode(id=ROOT_THREAD_ID, children=top_level), nodes=nodes)


def _prune(thread: Thread, node_id: str) -> None:
    """Delete a subtree from the arena."""
    for removed in [node_id, *thread.descendants(node_id)]:
        del thread.nodes[removed]


def _filter_top_level(thread: Thread, keep) -> None:
    root = thread.root
    kept: list[str] = []
    for child_id in root.children:
        if keep(thread.nodes[child_id]):
            kept.append(child_id)
        else:
            _prune(thread, child_id)
    root.children = kept


def _sort_children(thread: Thread, compare, reply_compare) -> None:
    """Sort top-level threads with `compare` and every reply list with `reply_compare`."""
    for node in reversed(list(thread.walk())):
        node_compare = compare if node is thread.root else reply_compare
        node.children = sorted(
            node.children,
            key=cmp_to_key(
                lambda a, b, cmp=node_compare: cmp(thread, thread.nodes[a], thread.nodes[b])
            ),
        )


def _count_replies_and_depth(thread: Thread) -> None:
    """Set `depth` (root is -1) and `reply_count` on every node."""
    order = list(thread.walk())
    thread.root.depth = -1
    for node in order:
        for child_id in node.children:
            thread.nodes[child_id].depth = node.depth + 1
    for node in reversed(order):
        node.reply_count = sum(1 + thread.nodes[c].reply_count for c in node.children)


def build_thread(annotations: list[AnnotationRecord], options: BuildThreadOptions) -> Thread:
    """Project, filter and sort `annotations` into the thread arena to display.

    An annotation is absent from the result if its top-level thread is not
    selected (when a selection exists), fails `thread_filter_fn`, or is
    hidden and has no visible descendants. Annotations that fail `filter_fn`
    stay in the tree with `visible=False` unless forced visible.
    """
    thread = thread_annotations(annotations)
    forced_visible = set(options.forced_visible)

    if options.selected:
        selected = set(options.selected)
        _filter_top_level(
            thread, lambda node: node.id in selected or node.id in forced_visible
        )

    if options.thread_filter_fn is not None:
        _filter_top_level(thread, options.thread_filter_fn)

    # The root is a container, never counted as a visible thread
    for node in thread.walk():
        if node is thread.root:
            node.visible = False
        elif options.filter_fn is not None:
            if node.id in forced_visible:
                node.visible = True
            elif node.annotation is not None:
                node.visible = bool(options.filter_fn(node.annotation))
            else:
                node.visible = False

    _filter_top_level(
        thread, lambda node: node.visible or has_visible_children(thread, node.id)
    )

    for node in thread.walk():
        if node is thread.root:
            continue
        if node.id in options.expanded:
            node.collapsed = not options.expanded[node.id]
        else:
            auto_expand = options.filter_fn is not None and has_visible_children(
                thread, node.id
            )
            node.collapsed = node.collapsed and not auto_expand

    _sort_children(thread, comparator_for(options.sort_key), compare_replies)
    _count_replies_and_depth(thread)
    return thread


class InvalidThreadInputError(TypeError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid thread input: {reason}")
