"""Buffered real-time updates that have been received but not yet applied.

Updates arrive from the push channel and wait here until the user (or the
streamer, when applying immediately) moves them into the live collection.
Each function is a pure transition returning a new queue snapshot.
"""

from collections.abc import Callable, Iterable

from pydantic import BaseModel, ConfigDict, Field

from annothread.models import AnnotationRecord, AnnotationStub


class PendingUpdateQueue(BaseModel):
    model_config = ConfigDict(frozen=True)

    pending_updates: dict[str, AnnotationRecord] = Field(default_factory=dict)
    """annotation id -> newest received version"""

    pending_deletions: frozenset[str] = frozenset()
    """ids deleted remotely whose removal has not been applied"""

    @property
    def pending_update_count(self) -> int:
        return len(self.pending_updates) + len(self.pending_deletions)

    def has_pending_deletion(self, annotation_id: str) -> bool:
        return annotation_id in self.pending_deletions


def receive(
    queue: PendingUpdateQueue,
    *,
    updated: Iterable[AnnotationRecord] = (),
    deleted: Iterable[AnnotationRecord | AnnotationStub] = (),
    is_relevant: Callable[[AnnotationRecord], bool],
    annotation_exists: Callable[[str], bool],
) -> PendingUpdateQueue:
    """Merge one batch of notifications into the queue.

    Updates outside the current display context are dropped. A deletion
    cancels any pending update for the same id and is recorded only if the
    annotation is already loaded. Deletion notifications carry no group, and
    the deleted annotation may be one that only ever existed as a pending
    update, so relevance is not checked for them.
    """
    pending_updates = dict(queue.pending_updates)
    pending_deletions = set(queue.pending_deletions)

    for record in updated:
        if record.id and is_relevant(record):
            pending_updates[record.id] = record

    for stub in deleted:
        if not stub.id:
            continue
        pending_updates.pop(stub.id, None)
        if annotation_exists(stub.id):
            pending_deletions.add(stub.id)

    return PendingUpdateQueue(
        pending_updates=pending_updates,
        pending_deletions=frozenset(pending_deletions),
    )


def discard(queue: PendingUpdateQueue, ids: Iterable[str]) -> PendingUpdateQueue:
    """Drop pending entries superseded by a local change to the same ids."""
    ids = {i for i in ids if i}
    if not ids & (queue.pending_updates.keys() | queue.pending_deletions):
        return queue
    return PendingUpdateQueue(
        pending_updates={k: v for k, v in queue.pending_updates.items() if k not in ids},
        pending_deletions=queue.pending_deletions - ids,
    )


def clear() -> PendingUpdateQueue:
    """Empty queue. Used after applying updates and when switching groups."""
    return PendingUpdateQueue()
