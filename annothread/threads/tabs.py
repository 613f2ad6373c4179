"""Decide which sidebar tab an annotation belongs to."""

from typing import Literal

from annothread.models import AnchorStatus, AnnotationRecord

TabName = Literal["annotation", "note", "orphan"]


def has_selector(annotation: AnnotationRecord) -> bool:
    """Does the annotation target a specific part of the document?"""
    return bool(annotation.target and annotation.target[0].selector)


def is_reply(annotation: AnnotationRecord) -> bool:
    return len(annotation.references) > 0


def is_page_note(annotation: AnnotationRecord) -> bool:
    return not has_selector(annotation) and not is_reply(annotation)


def is_orphan(annotation: AnnotationRecord) -> bool:
    return has_selector(annotation) and annotation.orphan is True


def is_waiting_to_anchor(annotation: AnnotationRecord) -> bool:
    """True until anchoring completes or its timeout expires."""
    return has_selector(annotation) and annotation.anchor_status == AnchorStatus.PENDING


def tab_for_annotation(annotation: AnnotationRecord) -> TabName:
    if is_orphan(annotation):
        return "orphan"
    if is_page_note(annotation):
        return "note"
    return "annotation"


def should_show_in_tab(annotation: AnnotationRecord, tab: TabName) -> bool:
    # Until anchoring settles we don't know which tab it belongs in
    if is_waiting_to_anchor(annotation):
        return False
    return tab_for_annotation(annotation) == tab
