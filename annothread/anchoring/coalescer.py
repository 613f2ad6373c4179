"""Batch anchoring status changes into single store transitions.

Anchoring results for many annotations arrive in quick succession as the
document is processed. `AnchorStatusCoalescer` collects them and applies
them as one `update_anchor_status` transition once no new result has
arrived for `delay` seconds. `AnchoringTimeout` marks annotations that are
still waiting to anchor after a grace period.
"""

import asyncio
import logging

from annothread.models import AnchorStatus, AnnotationRecord
from annothread.store.store import SidebarStore
from annothread.threads.tabs import is_waiting_to_anchor

logger = logging.getLogger(__name__)


class AnchorStatusCoalescer:
    def __init__(
        self,
        store: SidebarStore,
        delay: float,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._store = store
        self._delay = delay
        self._loop = loop
        self._pending: dict[str, AnchorStatus] = {}
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> dict[str, AnchorStatus]:
        return dict(self._pending)

    def schedule(self, tag: str, status: AnchorStatus) -> None:
        """Record a status for `tag` and restart the debounce timer.

        A later status for the same tag replaces the earlier one.
        """
        status = AnchorStatus(status)
        if status == AnchorStatus.PENDING:
            raise ValueError(f"Cannot schedule a pending anchoring status for {tag}")
        self._pending[tag] = status
        if self._handle is not None:
            self._handle.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self.flush)

    def flush(self) -> None:
        """Apply every pending status now, as one transition."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if not self._pending:
            return
        updates, self._pending = self._pending, {}
        logger.debug("Applying %d anchoring status updates", len(updates))
        self._store.update_anchor_status(updates)

    def cancel(self) -> None:
        """Drop pending statuses without applying them."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = {}


class AnchoringTimeout:
    """Mark newly loaded annotations that fail to anchor in time as timed out.

    If one of them anchors later, its status is updated again as usual.
    """

    def __init__(
        self,
        store: SidebarStore,
        timeout: float,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._store = store
        self._timeout = timeout
        self._loop = loop
        self._handles: set[asyncio.TimerHandle] = set()

    def watch(self, added: list[AnnotationRecord]) -> None:
        """Start the timeout for the waiting annotations in `added`.

        Only applies in the sidebar, where annotations are anchored.
        """
        if self._store.route != "sidebar":
            return
        ids = [a.id for a in added if a.id and is_waiting_to_anchor(a)]
        if not ids:
            return
        loop = self._loop or asyncio.get_running_loop()
        handle: asyncio.TimerHandle | None = None

        def expire() -> None:
            self._handles.discard(handle)
            self._expire(ids)

        handle = loop.call_later(self._timeout, expire)
        self._handles.add(handle)

    def _expire(self, ids: list[str]) -> None:
        updates: dict[str, AnchorStatus] = {}
        for annotation_id in ids:
            annotation = self._store.find_annotation(annotation_id)
            if annotation is not None and annotation.tag and is_waiting_to_anchor(annotation):
                updates[annotation.tag] = AnchorStatus.TIMEOUT
        if updates:
            logger.info("Anchoring timed out for %d annotations", len(updates))
            self._store.update_anchor_status(updates)

    def cancel(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
