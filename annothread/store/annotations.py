"""The set of annotations currently loaded into the sidebar.

Pure transitions over an immutable `AnnotationsState` snapshot. Records are
matched on `id` first, then on local `tag`.
"""

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, ConfigDict

from annothread.models import AnchorStatus, AnnotationRecord, AnnotationStub


class AnnotationsState(BaseModel):
    model_config = ConfigDict(frozen=True)

    annotations: tuple[AnnotationRecord, ...] = ()
    next_tag: int = 1
    """Local tag number assigned to the next newly-loaded annotation."""


def find_by_id(state: AnnotationsState, annotation_id: str) -> AnnotationRecord | None:
    return next((a for a in state.annotations if a.id == annotation_id), None)


def find_by_tag(state: AnnotationsState, tag: str) -> AnnotationRecord | None:
    return next((a for a in state.annotations if a.tag == tag), None)


def annotation_exists(state: AnnotationsState, annotation_id: str) -> bool:
    return find_by_id(state, annotation_id) is not None


def _initialize(annotation: AnnotationRecord, tag: str) -> AnnotationRecord:
    orphan = annotation.orphan
    if not annotation.id:
        # New annotations are created from a selection, so they always anchor
        orphan = False
    return annotation.model_copy(
        update={"anchor_timeout": False, "tag": annotation.tag or tag, "orphan": orphan}
    )


def add_annotations(
    state: AnnotationsState, annotations: Iterable[AnnotationRecord]
) -> AnnotationsState:
    """Add new annotations and merge updates into existing ones.

    Updated records keep their local tag and anchoring state unless the
    update supplies them. Order of the result: added, updated, unchanged.
    """
    added: list[AnnotationRecord] = []
    updated: list[AnnotationRecord] = []
    updated_ids: set[str] = set()
    updated_tags: set[str] = set()
    next_tag = state.next_tag

    for annotation in annotations:
        existing = None
        if annotation.id:
            existing = find_by_id(state, annotation.id)
        if existing is None and annotation.tag:
            existing = find_by_tag(state, annotation.tag)

        if existing is not None:
            local = {"tag", "orphan", "anchor_timeout"} - annotation.model_fields_set
            merged = annotation.model_copy(update={f: getattr(existing, f) for f in local})
            updated.append(merged)
            if annotation.id:
                updated_ids.add(annotation.id)
            if existing.tag:
                updated_tags.add(existing.tag)
        else:
            added.append(_initialize(annotation, f"t{next_tag}"))
            next_tag += 1

    unchanged = [
        a
        for a in state.annotations
        if not (a.id and a.id in updated_ids) and not (a.tag and a.tag in updated_tags)
    ]
    return AnnotationsState(annotations=(*added, *updated, *unchanged), next_tag=next_tag)


def remove_annotations(
    state: AnnotationsState, stubs: Iterable[AnnotationRecord | AnnotationStub]
) -> AnnotationsState:
    """Remove annotations matching any stub's `id` or `tag`."""
    ids: set[str] = set()
    tags: set[str] = set()
    for stub in stubs:
        if stub.id:
            ids.add(stub.id)
        if stub.tag:
            tags.add(stub.tag)
    remaining = tuple(
        a for a in state.annotations if not (a.id in ids or (a.tag and a.tag in tags))
    )
    return state.model_copy(update={"annotations": remaining})


def clear_annotations(state: AnnotationsState) -> AnnotationsState:
    return state.model_copy(update={"annotations": ()})


def update_anchor_status(
    state: AnnotationsState, status_updates: Mapping[str, AnchorStatus]
) -> AnnotationsState:
    """Apply a batch of tag -> anchoring status updates."""
    annotations = []
    for annotation in state.annotations:
        status = status_updates.get(annotation.tag) if annotation.tag else None
        if status is None:
            annotations.append(annotation)
        elif status == AnchorStatus.TIMEOUT:
            annotations.append(annotation.model_copy(update={"anchor_timeout": True}))
        else:
            annotations.append(
                annotation.model_copy(update={"orphan": status == AnchorStatus.ORPHAN})
            )
    return state.model_copy(update={"annotations": tuple(annotations)})


def _set_hidden(state: AnnotationsState, annotation_id: str, hidden: bool) -> AnnotationsState:
    annotations = tuple(
        a.model_copy(update={"hidden": hidden}) if a.id == annotation_id else a
        for a in state.annotations
    )
    return state.model_copy(update={"annotations": annotations})


def hide_annotation(state: AnnotationsState, annotation_id: str) -> AnnotationsState:
    """Mark an annotation as hidden from non-moderators."""
    return _set_hidden(state, annotation_id, True)


def unhide_annotation(state: AnnotationsState, annotation_id: str) -> AnnotationsState:
    return _set_hidden(state, annotation_id, False)


def update_flag_status(
    state: AnnotationsState, annotation_id: str, is_flagged: bool
) -> AnnotationsState:
    """Flag or unflag an annotation, adjusting its moderation flag count."""
    annotations = []
    for annotation in state.annotations:
        if annotation.id != annotation_id or annotation.flagged == is_flagged:
            annotations.append(annotation)
            continue
        update: dict = {"flagged": is_flagged}
        if annotation.moderation is not None:
            delta = 1 if is_flagged else -1
            update["moderation"] = annotation.moderation.model_copy(
                update={"flag_count": annotation.moderation.flag_count + delta}
            )
        annotations.append(annotation.model_copy(update=update))
    return state.model_copy(update={"annotations": tuple(annotations)})
