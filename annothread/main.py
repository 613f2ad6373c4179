"""Annothread FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from annothread.anchoring.coalescer import AnchoringTimeout, AnchorStatusCoalescer
from annothread.anchoring.router import get_coalescer
from annothread.anchoring.router import router as anchoring_router
from annothread.realtime.router import get_streamer
from annothread.realtime.router import router as realtime_router
from annothread.realtime.streamer import StreamerService
from annothread.settings import load_settings
from annothread.store.store import SidebarStore
from annothread.threads.router import get_anchoring_timeout, get_settings, get_store
from annothread.threads.router import router as threads_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the sidebar store and wire services into the routers."""
    settings = load_settings(Path.cwd() / ".env")

    store = SidebarStore(
        focus=settings.focus,
        focused_group=settings.focused_group,
        route=settings.route,
        sort_key=settings.default_sort_key,
    )
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: settings

    # Anchoring: timeout for newly loaded annotations, batched status updates
    anchoring_timeout = AnchoringTimeout(store, settings.anchoring_timeout)
    coalescer = AnchorStatusCoalescer(store, settings.anchor_status_coalesce_delay)
    app.dependency_overrides[get_anchoring_timeout] = lambda: anchoring_timeout
    app.dependency_overrides[get_coalescer] = lambda: coalescer

    streamer = StreamerService(
        store,
        update_immediately=settings.update_immediately,
        on_added=anchoring_timeout.watch,
    )
    app.dependency_overrides[get_streamer] = lambda: streamer

    app.state.store = store
    logger.info("Sidebar ready (route=%s, group=%s)", settings.route, settings.focused_group)
    yield

    coalescer.flush()
    anchoring_timeout.cancel()


app = FastAPI(
    title="Annothread",
    description="Threaded, filtered and virtualized views over a live annotation collection",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(threads_router)
app.include_router(realtime_router)
app.include_router(anchoring_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": "0.1.0"}
