"""FastAPI routes for receiving and applying real-time notifications."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from annothread.models import AnnotationRecord, RealTimeMessage
from annothread.realtime.streamer import StreamerService, UnknownMessageTypeError
from annothread.store.store import SidebarStore
from annothread.threads.router import get_store

router = APIRouter(prefix="/api", tags=["realtime"])


def get_streamer() -> StreamerService:
    """Dependency placeholder, overridden in the app lifespan."""
    raise RuntimeError("StreamerService not initialized")


class PendingUpdatesResponse(BaseModel):
    pending_update_count: int
    updated: list[str]
    deleted: list[str]


class FocusGroupRequest(BaseModel):
    group_id: str


def _pending_response(store: SidebarStore) -> PendingUpdatesResponse:
    return PendingUpdatesResponse(
        pending_update_count=store.pending_update_count(),
        updated=sorted(store.pending_updates()),
        deleted=sorted(store.pending_deletions()),
    )


@router.post("/realtime/messages")
async def receive_message(
    message: RealTimeMessage,
    store: SidebarStore = Depends(get_store),
    streamer: StreamerService = Depends(get_streamer),
) -> PendingUpdatesResponse:
    try:
        streamer.handle_message(message)
    except UnknownMessageTypeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _pending_response(store)


@router.get("/realtime/pending")
async def get_pending(store: SidebarStore = Depends(get_store)) -> PendingUpdatesResponse:
    return _pending_response(store)


@router.post("/realtime/apply")
async def apply_pending(
    streamer: StreamerService = Depends(get_streamer),
) -> list[AnnotationRecord]:
    return streamer.apply_pending_updates()


@router.post("/groups/focus")
async def focus_group(
    request: FocusGroupRequest, store: SidebarStore = Depends(get_store)
) -> PendingUpdatesResponse:
    store.focus_group(request.group_id)
    return _pending_response(store)
