"""Tests for batched anchoring status updates and the anchoring timeout."""

import asyncio

import pytest

from annothread.anchoring.coalescer import AnchoringTimeout, AnchorStatusCoalescer
from annothread.models import AnchorStatus
from annothread.store.store import SidebarStore
from tests.fixtures import make_annotation


def _store_with_pending(*ids):
    store = SidebarStore(focused_group="__world__")
    store.add_annotations([make_annotation(i, start=n, orphan=None) for n, i in enumerate(ids)])
    return store


class TestAnchorStatusCoalescer:
    """Statuses arriving close together are applied as one transition."""

    async def test_batches_statuses_into_one_transition(self):
        store = _store_with_pending("a", "b")
        transitions = []
        store.subscribe(transitions.append)
        coalescer = AnchorStatusCoalescer(store, delay=0.01)

        coalescer.schedule("t1", AnchorStatus.ANCHORED)
        coalescer.schedule("t2", AnchorStatus.ORPHAN)
        assert transitions == []

        await asyncio.sleep(0.05)

        assert transitions == ["update_anchor_status"]
        assert store.find_annotation("a").anchor_status == AnchorStatus.ANCHORED
        assert store.find_annotation("b").anchor_status == AnchorStatus.ORPHAN
        assert coalescer.pending == {}

    async def test_later_status_replaces_earlier(self):
        store = _store_with_pending("a")
        coalescer = AnchorStatusCoalescer(store, delay=0.01)

        coalescer.schedule("t1", AnchorStatus.ORPHAN)
        coalescer.schedule("t1", AnchorStatus.ANCHORED)
        coalescer.flush()

        assert store.find_annotation("a").anchor_status == AnchorStatus.ANCHORED

    async def test_pending_status_rejected(self):
        coalescer = AnchorStatusCoalescer(_store_with_pending("a"), delay=0.01)
        with pytest.raises(ValueError):
            coalescer.schedule("t1", AnchorStatus.PENDING)

    async def test_cancel_drops_statuses(self):
        store = _store_with_pending("a")
        coalescer = AnchorStatusCoalescer(store, delay=0.01)

        coalescer.schedule("t1", AnchorStatus.ANCHORED)
        coalescer.cancel()
        await asyncio.sleep(0.05)

        assert store.find_annotation("a").anchor_status == AnchorStatus.PENDING

    async def test_flush_without_pending_is_noop(self):
        store = _store_with_pending("a")
        transitions = []
        store.subscribe(transitions.append)
        AnchorStatusCoalescer(store, delay=0.01).flush()
        assert transitions == []


class TestAnchoringTimeout:
    async def test_marks_waiting_annotations_timed_out(self):
        store = _store_with_pending("a", "b")
        timeout = AnchoringTimeout(store, timeout=0.01)

        timeout.watch(list(store.annotations))
        store.update_anchor_status({"t2": AnchorStatus.ANCHORED})
        await asyncio.sleep(0.05)

        assert store.find_annotation("a").anchor_status == AnchorStatus.TIMEOUT
        assert store.find_annotation("b").anchor_status == AnchorStatus.ANCHORED

    async def test_anchoring_after_timeout_still_applies(self):
        store = _store_with_pending("a")
        timeout = AnchoringTimeout(store, timeout=0.01)
        timeout.watch(list(store.annotations))
        await asyncio.sleep(0.05)

        store.update_anchor_status({"t1": AnchorStatus.ANCHORED})

        assert store.find_annotation("a").anchor_status == AnchorStatus.ANCHORED

    async def test_only_applies_in_sidebar(self):
        store = _store_with_pending("a")
        store.set_route("annotation")
        timeout = AnchoringTimeout(store, timeout=0.01)

        timeout.watch(list(store.annotations))
        await asyncio.sleep(0.05)

        assert store.find_annotation("a").anchor_status == AnchorStatus.PENDING

    async def test_cancel(self):
        store = _store_with_pending("a")
        timeout = AnchoringTimeout(store, timeout=0.01)

        timeout.watch(list(store.annotations))
        timeout.cancel()
        await asyncio.sleep(0.05)

        assert store.find_annotation("a").anchor_status == AnchorStatus.PENDING
