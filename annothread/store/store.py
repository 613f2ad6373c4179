"""SidebarStore: the single owner of sidebar state.

Holds the live annotation collection, selection and filter state, the
focused group, and the buffer of unapplied real-time updates. State changes
only through the named transition methods; each transition replaces the
immutable snapshots it touches and then notifies subscribers once.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime

from annothread.models import (
    AnchorStatus,
    AnnotationRecord,
    AnnotationStub,
    FocusConfig,
    FocusUser,
    SelectionState,
    SortKey,
    Thread,
    ThreadState,
)
from annothread.realtime import updates as realtime
from annothread.realtime.updates import PendingUpdateQueue
from annothread.store import annotations as annotations_module
from annothread.store import filters as filters_module
from annothread.store import selection as selection_module
from annothread.store.annotations import AnnotationsState
from annothread.store.filters import FilterOption, FilterState
from annothread.threads.root_thread import RootThreadCache
from annothread.threads.tabs import TabName
from annothread.utils.warnings import WarningCache

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


class SidebarStore:
    def __init__(
        self,
        *,
        focus: FocusConfig | None = None,
        focused_group: str | None = None,
        route: str | None = "sidebar",
        sort_key: SortKey = SortKey.LOCATION,
    ) -> None:
        self._annotations = AnnotationsState()
        self._filters = filters_module.initial_state(focus or FocusConfig())
        self._selection = SelectionState(
            sort_key=sort_key, filters=filters_module.effective_filters(self._filters)
        )
        self._realtime = PendingUpdateQueue()
        self._focused_group = focused_group
        self._route = route
        self._thread_cache = RootThreadCache()
        self._listeners: list[Listener] = []
        self._warnings = WarningCache(logger)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(transition_name)` after every transition."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self, transition: str) -> None:
        logger.debug("Store transition: %s", transition)
        for listener in list(self._listeners):
            listener(transition)

    # ------------------------------------------------------------------
    # Read-only snapshots
    # ------------------------------------------------------------------

    @property
    def annotations(self) -> tuple[AnnotationRecord, ...]:
        return self._annotations.annotations

    @property
    def selection(self) -> SelectionState:
        return self._selection

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def realtime(self) -> PendingUpdateQueue:
        return self._realtime

    @property
    def focused_group(self) -> str | None:
        return self._focused_group

    @property
    def route(self) -> str | None:
        return self._route

    def annotation_exists(self, annotation_id: str) -> bool:
        return annotations_module.annotation_exists(self._annotations, annotation_id)

    def find_annotation(self, annotation_id: str) -> AnnotationRecord | None:
        """Look up an annotation by id, falling back to its local tag."""
        return annotations_module.find_by_id(
            self._annotations, annotation_id
        ) or annotations_module.find_by_tag(self._annotations, annotation_id)

    def get_annotation(self, annotation_id: str) -> AnnotationRecord:
        """Like `find_annotation`, but raises AnnotationNotFoundError."""
        annotation = self.find_annotation(annotation_id)
        if annotation is None:
            raise AnnotationNotFoundError(annotation_id)
        return annotation

    def pending_updates(self) -> dict[str, AnnotationRecord]:
        return dict(self._realtime.pending_updates)

    def pending_deletions(self) -> frozenset[str]:
        return self._realtime.pending_deletions

    def pending_update_count(self) -> int:
        return self._realtime.pending_update_count

    def has_pending_deletion(self, annotation_id: str) -> bool:
        return self._realtime.has_pending_deletion(annotation_id)

    def thread_state(self) -> ThreadState:
        return ThreadState(
            annotations=self._annotations.annotations,
            selection=self._selection,
            route=self._route,
        )

    def root_thread(self, now: datetime | None = None) -> Thread:
        return self._thread_cache.get(self.thread_state(), now)

    # ------------------------------------------------------------------
    # Annotation collection
    # ------------------------------------------------------------------

    def _add(self, records: list[AnnotationRecord]) -> list[AnnotationRecord]:
        previous_count = len(self._annotations.annotations)
        before = {a.tag for a in self._annotations.annotations}
        self._annotations = annotations_module.add_annotations(self._annotations, records)
        self._selection = selection_module.on_annotations_added(
            self._selection, records, previous_count
        )
        return [a for a in self._annotations.annotations if a.tag not in before]

    def _remove(self, stubs: list[AnnotationRecord | AnnotationStub]) -> None:
        self._annotations = annotations_module.remove_annotations(self._annotations, stubs)
        self._selection = selection_module.on_annotations_removed(
            self._selection, stubs, self._annotations.annotations
        )

    def add_annotations(self, records: Iterable[AnnotationRecord]) -> list[AnnotationRecord]:
        """Add or update annotations from a local action or an API fetch.

        Local state supersedes any buffered remote notification for the same
        ids. Returns the newly added records, with local tags assigned.
        """
        records = list(records)
        added = self._add(records)
        self._realtime = realtime.discard(self._realtime, (r.id for r in records))
        self._notify("add_annotations")
        return added

    def remove_annotations(self, stubs: Iterable[AnnotationRecord | AnnotationStub]) -> None:
        """Remove annotations locally, discarding buffered updates for them."""
        stubs = list(stubs)
        self._remove(stubs)
        self._realtime = realtime.discard(self._realtime, (s.id for s in stubs))
        self._notify("remove_annotations")

    def clear_annotations(self) -> None:
        self._annotations = annotations_module.clear_annotations(self._annotations)
        self._notify("clear_annotations")

    def update_anchor_status(self, status_updates: Mapping[str, AnchorStatus]) -> None:
        self._annotations = annotations_module.update_anchor_status(
            self._annotations, status_updates
        )
        self._notify("update_anchor_status")

    def hide_annotation(self, annotation_id: str) -> None:
        self._annotations = annotations_module.hide_annotation(self._annotations, annotation_id)
        self._notify("hide_annotation")

    def unhide_annotation(self, annotation_id: str) -> None:
        self._annotations = annotations_module.unhide_annotation(self._annotations, annotation_id)
        self._notify("unhide_annotation")

    def update_flag_status(self, annotation_id: str, is_flagged: bool) -> None:
        self._annotations = annotations_module.update_flag_status(
            self._annotations, annotation_id, is_flagged
        )
        self._notify("update_flag_status")

    # ------------------------------------------------------------------
    # Real-time updates
    # ------------------------------------------------------------------

    def _is_relevant(self, record: AnnotationRecord) -> bool:
        # The sidebar shows only the focused group; other routes show all groups
        return record.group == self._focused_group or self._route != "sidebar"

    def receive_real_time_updates(
        self,
        *,
        updated: Iterable[AnnotationRecord] = (),
        deleted: Iterable[AnnotationRecord | AnnotationStub] = (),
    ) -> None:
        updated, deleted = list(updated), list(deleted)
        if any(not r.id for r in [*updated, *deleted]):
            self._warnings.warn("Ignoring real-time notification for a record without an id")
        self._realtime = realtime.receive(
            self._realtime,
            updated=updated,
            deleted=deleted,
            is_relevant=self._is_relevant,
            annotation_exists=self.annotation_exists,
        )
        self._notify("receive_real_time_updates")

    def apply_pending_updates(self) -> list[AnnotationRecord]:
        """Move every buffered update and deletion into the live collection.

        One transition: subscribers see the collection and the emptied
        buffer together. Returns the newly added records.
        """
        updates = list(self._realtime.pending_updates.values())
        deletions = [AnnotationStub(id=i) for i in sorted(self._realtime.pending_deletions)]
        added: list[AnnotationRecord] = []
        if updates:
            added = self._add(updates)
        if deletions:
            self._remove(deletions)
        self._realtime = realtime.clear()
        self._notify("apply_pending_updates")
        return added

    def clear_pending_updates(self) -> None:
        self._realtime = realtime.clear()
        self._notify("clear_pending_updates")

    def focus_group(self, group_id: str) -> None:
        """Switch the focused group, dropping updates buffered for the old one."""
        self._focused_group = group_id
        self._realtime = realtime.clear()
        self._notify("focus_group")

    def set_route(self, route: str | None) -> None:
        self._route = route
        self._notify("set_route")

    # ------------------------------------------------------------------
    # Selection and filters
    # ------------------------------------------------------------------

    def _sync_filters(self) -> None:
        self._selection = selection_module.set_filters(
            self._selection, filters_module.effective_filters(self._filters)
        )

    def clear_selection(self) -> None:
        """Clear selection, query and user filters. Focus config stays."""
        self._selection = selection_module.clear_selection(self._selection)
        self._filters = filters_module.clear_filters(self._filters)
        self._sync_filters()
        self._notify("clear_selection")

    def select_annotations(self, ids: Iterable[str]) -> None:
        self._selection = selection_module.select_annotations(self._selection, ids)
        self._notify("select_annotations")

    def toggle_selected_annotations(self, ids: Iterable[str]) -> None:
        self._selection = selection_module.toggle_selected_annotations(self._selection, ids)
        self._notify("toggle_selected_annotations")

    def select_tab(self, tab: TabName) -> None:
        self._selection = selection_module.select_tab(self._selection, tab)
        self._notify("select_tab")

    def set_expanded(self, thread_id: str, expanded: bool) -> None:
        self._selection = selection_module.set_expanded(self._selection, thread_id, expanded)
        self._notify("set_expanded")

    def set_forced_visible(self, thread_id: str, visible: bool) -> None:
        self._selection = selection_module.set_forced_visible(
            self._selection, thread_id, visible
        )
        self._notify("set_forced_visible")

    def set_sort_key(self, sort_key: SortKey) -> None:
        self._selection = selection_module.set_sort_key(self._selection, sort_key)
        self._notify("set_sort_key")

    def set_filter_query(self, query: str | None) -> None:
        self._selection = selection_module.set_filter_query(self._selection, query)
        self._notify("set_filter_query")

    def set_filter(self, name: str, option: FilterOption) -> None:
        self._filters = filters_module.set_filter(self._filters, name, option)
        self._sync_filters()
        self._notify("set_filter")

    def toggle_focus_mode(self, active: bool | None = None) -> None:
        self._filters = filters_module.toggle_focus_mode(self._filters, active)
        self._sync_filters()
        self._notify("toggle_focus_mode")

    def change_focus_mode_user(self, user: FocusUser) -> None:
        self._filters = filters_module.change_focus_mode_user(self._filters, user)
        self._sync_filters()
        self._notify("change_focus_mode_user")


class AnnotationNotFoundError(Exception):
    def __init__(self, annotation_id: str) -> None:
        self.annotation_id = annotation_id
        super().__init__(f"Annotation not found: {annotation_id}")
