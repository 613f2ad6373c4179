"""Request and response schemas for thread, selection and annotation endpoints."""

from typing import Literal

from pydantic import BaseModel, Field

from annothread.models import AnnotationRecord, SortKey, Thread

# -- Requests --


class FilterQueryRequest(BaseModel):
    query: str | None = None


class SortKeyRequest(BaseModel):
    sort_key: SortKey


class ExpandedRequest(BaseModel):
    thread_id: str
    expanded: bool


class ForcedVisibleRequest(BaseModel):
    thread_id: str
    visible: bool = True


class SelectAnnotationsRequest(BaseModel):
    ids: list[str]


class SelectTabRequest(BaseModel):
    tab: Literal["annotation", "note", "orphan"]


class FocusModeRequest(BaseModel):
    """Toggle focus mode. `active` omitted flips the current state."""

    active: bool | None = None


class VisibleThreadsRequest(BaseModel):
    scroll_pos: float = Field(ge=0)
    window_height: float = Field(ge=0)
    thread_heights: dict[str, float] = Field(default_factory=dict)


# -- Responses --


class ThreadTreeResponse(BaseModel):
    id: str
    annotation: AnnotationRecord | None = None
    visible: bool
    collapsed: bool
    reply_count: int
    depth: int
    children: list["ThreadTreeResponse"] = Field(default_factory=list)


class VisibleThreadsResponse(BaseModel):
    visible_thread_ids: list[str]
    offscreen_upper_height: float
    offscreen_lower_height: float


class SelectionResponse(BaseModel):
    expanded: dict[str, bool]
    forced_visible: list[str]
    selected: list[str]
    sort_key: SortKey
    filter_query: str | None = None
    filters: dict[str, str]
    selected_tab: str
    focus_active: bool


def tree_response(thread: Thread, node_id: str | None = None) -> ThreadTreeResponse:
    """Convert an arena into a nested response, starting at `node_id` (default root)."""
    node = thread.root if node_id is None else thread.nodes[node_id]
    return ThreadTreeResponse(
        id=node.id,
        annotation=node.annotation,
        visible=node.visible,
        collapsed=node.collapsed,
        reply_count=node.reply_count,
        depth=node.depth,
        children=[tree_response(thread, child) for child in node.children],
    )
