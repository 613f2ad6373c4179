"""Assemble build options from the current thread state and build the root thread."""

from datetime import UTC, datetime

from annothread.models import BuildThreadOptions, Thread, ThreadNode, ThreadState
from annothread.search.query import generate_faceted_filter
from annothread.search.view_filter import make_filter_fn
from annothread.threads.builder import build_thread
from annothread.threads.tabs import should_show_in_tab


def build_root_thread(state: ThreadState, now: datetime | None = None) -> Thread:
    """Pick filters, selection and sort order from `state` and build the thread.

    With a query or focus filter active, non-matching annotations are hidden.
    Otherwise, in the sidebar route, only threads for the selected tab are kept.
    """
    selection = state.selection
    options = BuildThreadOptions(
        expanded=dict(selection.expanded),
        forced_visible=list(selection.forced_visible),
        selected=list(selection.selected),
        sort_key=selection.sort_key,
    )

    annotations_filtered = bool(selection.filter_query) or bool(selection.filters)
    if annotations_filtered:
        filters = generate_faceted_filter(selection.filter_query or "", selection.filters)
        options.filter_fn = make_filter_fn(filters, now)
    elif state.route == "sidebar":
        tab = selection.selected_tab

        def in_selected_tab(node: ThreadNode) -> bool:
            return node.annotation is not None and should_show_in_tab(node.annotation, tab)

        options.thread_filter_fn = in_selected_tab

    return build_thread(list(state.annotations), options)


def _uses_clock(state: ThreadState) -> bool:
    """Does the query hold a `since:` term, making the result depend on `now`?"""
    query = state.selection.filter_query
    return bool(query) and bool(generate_faceted_filter(query)["since"].terms)


class RootThreadCache:
    """Single-slot cache of the last root thread, owned by one store.

    Recomputes only when the state snapshot differs from the previous call,
    or, while a `since:` term is active, when `now` differs. The returned
    arena is shared between callers and must not be mutated.
    """

    def __init__(self) -> None:
        self._last_key: tuple[ThreadState, datetime | None] | None = None
        self._last_result: Thread | None = None

    def get(self, state: ThreadState, now: datetime | None = None) -> Thread:
        if _uses_clock(state):
            now = now or datetime.now(UTC)
        else:
            now = None
        key = (state, now)
        if self._last_result is None or key != self._last_key:
            self._last_key = key
            self._last_result = build_root_thread(state, now)
        return self._last_result

    def clear(self) -> None:
        self._last_key = None
        self._last_result = None
