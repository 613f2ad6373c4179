"""FastAPI route for reporting anchoring results."""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from annothread.anchoring.coalescer import AnchorStatusCoalescer
from annothread.models import AnchorStatus

router = APIRouter(prefix="/api/anchoring", tags=["anchoring"])


def get_coalescer() -> AnchorStatusCoalescer:
    """Dependency placeholder, overridden in the app lifespan."""
    raise RuntimeError("AnchorStatusCoalescer not initialized")


class AnchorStatusRequest(BaseModel):
    statuses: dict[str, AnchorStatus]
    flush: bool = False


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def report_anchor_status(
    request: AnchorStatusRequest,
    coalescer: AnchorStatusCoalescer = Depends(get_coalescer),
) -> dict[str, AnchorStatus]:
    """Queue anchoring results by local tag. Returns the statuses still pending."""
    pending_tags = [t for t, s in request.statuses.items() if s == AnchorStatus.PENDING]
    if pending_tags:
        raise HTTPException(
            status_code=422, detail=f"Cannot report a pending status for {', '.join(pending_tags)}"
        )
    for tag, anchor_status in request.statuses.items():
        coalescer.schedule(tag, anchor_status)
    if request.flush:
        coalescer.flush()
    return coalescer.pending
