"""Shared pytest fixtures for annothread tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from annothread.anchoring.coalescer import AnchorStatusCoalescer
from annothread.anchoring.router import get_coalescer
from annothread.main import app
from annothread.realtime.router import get_streamer
from annothread.realtime.streamer import StreamerService
from annothread.settings import Settings
from annothread.store.store import SidebarStore
from annothread.threads.router import get_settings, get_store


@pytest.fixture
def store():
    """Sidebar store focused on the public group."""
    return SidebarStore(focused_group="__world__")


@pytest.fixture
def settings():
    return Settings(focused_group="__world__")


@pytest.fixture
async def client(store, settings):
    """Async test client with a fresh store wired into the app."""
    streamer = StreamerService(store)
    coalescer = AnchorStatusCoalescer(store, delay=0.01)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_streamer] = lambda: streamer
    app.dependency_overrides[get_coalescer] = lambda: coalescer
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    coalescer.cancel()
    app.dependency_overrides.clear()
