"""Shared test helpers."""

from datetime import UTC, datetime, timedelta
from typing import Any

from httpx import AsyncClient

from annothread.models import (
    AnnotationRecord,
    RealTimeMessage,
    Selector,
    Target,
)

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)


def days_ago(days: float, now: datetime = NOW) -> str:
    """ISO timestamp `days` before `now`."""
    return (now - timedelta(days=days)).isoformat()


def make_annotation(
    id: str | None = None,
    *,
    references: list[str] | None = None,
    created: str | None = None,
    start: int | None = None,
    quote: str | None = None,
    text: str = "",
    tags: list[str] | None = None,
    user: str | None = "acct:alice@example.com",
    group: str | None = "__world__",
    uri: str = "https://example.com/article",
    orphan: bool | None = False,
    **overrides: Any,
) -> AnnotationRecord:
    """Build an annotation record for testing.

    With `start` or `quote` the annotation targets a text range; without
    either (and without references) it is a page note.
    """
    selectors: list[Selector] = []
    if start is not None:
        selectors.append(Selector(type="TextPositionSelector", start=start, end=start + 10))
    if quote is not None:
        selectors.append(Selector(type="TextQuoteSelector", exact=quote))
    target = [Target(source=uri, selector=selectors or None)]
    return AnnotationRecord(
        id=id,
        references=references or [],
        created=created or days_ago(1),
        updated=created or days_ago(1),
        group=group,
        user=user,
        uri=uri,
        text=text,
        tags=tags or [],
        target=target,
        orphan=orphan,
        **overrides,
    )


def make_reply(
    parent: AnnotationRecord, id: str | None = None, **overrides: Any
) -> AnnotationRecord:
    """Build a reply to `parent`, inheriting its reference chain."""
    return make_annotation(id, references=[*parent.references, parent.id], **overrides)


def make_message(type: str, *records: AnnotationRecord) -> RealTimeMessage:
    return RealTimeMessage(type=type, records=list(records))


def top_level_ids(thread) -> list[str]:
    return [node.id for node in thread.top_level()]


# -- API-level helpers --


async def add_via_api(client: AsyncClient, *records: AnnotationRecord) -> list[dict]:
    """POST records to the collection and return the newly added ones."""
    resp = await client.post(
        "/api/annotations",
        json=[r.model_dump(mode="json", exclude_unset=True) for r in records],
    )
    assert resp.status_code == 201
    return resp.json()
