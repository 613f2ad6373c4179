"""Selection, expansion, sort and tab state for the thread projection.

Pure transitions over the immutable `SelectionState` snapshot.
"""

from collections.abc import Iterable

from annothread.models import AnnotationRecord, AnnotationStub, SelectionState, SortKey
from annothread.threads.tabs import TabName, is_orphan, is_page_note, is_reply

TAB_SORT_KEY_DEFAULT: dict[str, SortKey] = {
    "annotation": SortKey.LOCATION,
    "note": SortKey.OLDEST,
    "orphan": SortKey.LOCATION,
}


def _reset(state: SelectionState, **update) -> SelectionState:
    return state.model_copy(update={"forced_visible": (), "selected": (), **update})


def clear_selection(state: SelectionState) -> SelectionState:
    return _reset(state, filter_query=None, filters={})


def select_annotations(state: SelectionState, ids: Iterable[str]) -> SelectionState:
    return state.model_copy(update={"selected": tuple(dict.fromkeys(ids))})


def toggle_selected_annotations(state: SelectionState, ids: Iterable[str]) -> SelectionState:
    selected = list(state.selected)
    for annotation_id in ids:
        if annotation_id in selected:
            selected.remove(annotation_id)
        else:
            selected.append(annotation_id)
    return state.model_copy(update={"selected": tuple(selected)})


def select_tab(state: SelectionState, tab: TabName) -> SelectionState:
    """Switch tab and reset the sort key to the tab's default.

    Selecting the current tab again leaves the sort key alone.
    """
    if tab == state.selected_tab:
        return state
    return state.model_copy(update={"selected_tab": tab, "sort_key": TAB_SORT_KEY_DEFAULT[tab]})


def set_expanded(state: SelectionState, thread_id: str, expanded: bool) -> SelectionState:
    return state.model_copy(update={"expanded": {**state.expanded, thread_id: expanded}})


def set_forced_visible(state: SelectionState, thread_id: str, visible: bool) -> SelectionState:
    forced = [i for i in state.forced_visible if i != thread_id]
    if visible:
        forced.append(thread_id)
    return state.model_copy(update={"forced_visible": tuple(forced)})


def set_sort_key(state: SelectionState, sort_key: SortKey) -> SelectionState:
    return state.model_copy(update={"sort_key": SortKey(sort_key)})


def set_filter_query(state: SelectionState, query: str | None) -> SelectionState:
    """A new query clears selection, forced visibility and expansion."""
    return _reset(state, filter_query=query or None, expanded={})


def set_filters(state: SelectionState, filters: dict[str, str]) -> SelectionState:
    return _reset(state, filters=dict(filters), expanded={})


def on_annotations_added(
    state: SelectionState,
    annotations: list[AnnotationRecord],
    previous_count: int,
) -> SelectionState:
    """Switch to the notes tab when the first batch loaded is only page notes."""
    top_level = [a for a in annotations if not is_reply(a)]
    note_count = sum(1 for a in annotations if is_page_note(a))
    if previous_count == 0 and top_level and note_count == len(top_level):
        return select_tab(state, "note")
    return state


def on_annotations_removed(
    state: SelectionState,
    removed: Iterable[AnnotationRecord | AnnotationStub],
    remaining: Iterable[AnnotationRecord],
) -> SelectionState:
    """Forget selection state for removed annotations.

    Leaves the orphans tab if no orphans remain.
    """
    keys: set[str] = set()
    for stub in removed:
        keys.update(k for k in (stub.id, stub.tag) if k)

    updated = state.model_copy(
        update={
            "expanded": {k: v for k, v in state.expanded.items() if k not in keys},
            "forced_visible": tuple(i for i in state.forced_visible if i not in keys),
            "selected": tuple(i for i in state.selected if i not in keys),
        }
    )
    if updated.selected_tab == "orphan" and not any(is_orphan(a) for a in remaining):
        updated = select_tab(updated, "annotation")
    return updated
