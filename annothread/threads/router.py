"""FastAPI routes for the thread projection, selection state and annotations."""

from fastapi import APIRouter, Depends, HTTPException, status

from annothread.anchoring.coalescer import AnchoringTimeout
from annothread.models import AnnotationRecord, AnnotationStub
from annothread.settings import Settings
from annothread.store.filters import FilterOption
from annothread.store.store import AnnotationNotFoundError, SidebarStore
from annothread.threads.schemas import (
    ExpandedRequest,
    FilterQueryRequest,
    FocusModeRequest,
    ForcedVisibleRequest,
    SelectAnnotationsRequest,
    SelectionResponse,
    SelectTabRequest,
    SortKeyRequest,
    ThreadTreeResponse,
    VisibleThreadsRequest,
    VisibleThreadsResponse,
    tree_response,
)
from annothread.virtualization.visible_threads import calculate_visible_threads

router = APIRouter(prefix="/api", tags=["threads"])


def get_store() -> SidebarStore:
    """Dependency placeholder, overridden in the app lifespan."""
    raise RuntimeError("SidebarStore not initialized")


def get_settings() -> Settings:
    """Dependency placeholder, overridden in the app lifespan."""
    raise RuntimeError("Settings not initialized")


def get_anchoring_timeout() -> AnchoringTimeout | None:
    """Optional dependency. Without an override, added annotations are not timed."""
    return None


def _selection_response(store: SidebarStore) -> SelectionResponse:
    selection = store.selection
    return SelectionResponse(
        expanded=selection.expanded,
        forced_visible=list(selection.forced_visible),
        selected=list(selection.selected),
        sort_key=selection.sort_key,
        filter_query=selection.filter_query,
        filters=selection.filters,
        selected_tab=selection.selected_tab,
        focus_active=store.filters.focus_active,
    )


# -- Annotations --


@router.get("/annotations")
async def list_annotations(
    store: SidebarStore = Depends(get_store),
) -> list[AnnotationRecord]:
    return list(store.annotations)


@router.post("/annotations", status_code=status.HTTP_201_CREATED)
async def add_annotations(
    records: list[AnnotationRecord],
    store: SidebarStore = Depends(get_store),
    anchoring_timeout: AnchoringTimeout | None = Depends(get_anchoring_timeout),
) -> list[AnnotationRecord]:
    added = store.add_annotations(records)
    if anchoring_timeout is not None:
        anchoring_timeout.watch(added)
    return added


@router.delete("/annotations/{annotation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_annotation(
    annotation_id: str,
    store: SidebarStore = Depends(get_store),
) -> None:
    try:
        annotation = store.get_annotation(annotation_id)
    except AnnotationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    store.remove_annotations([AnnotationStub(id=annotation.id, tag=annotation.tag)])


# -- Threads --


@router.get("/threads")
async def get_threads(
    store: SidebarStore = Depends(get_store),
) -> ThreadTreeResponse:
    return tree_response(store.root_thread())


@router.post("/visible-threads")
async def visible_threads(
    request: VisibleThreadsRequest,
    store: SidebarStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> VisibleThreadsResponse:
    result = calculate_visible_threads(
        store.root_thread().top_level(),
        request.thread_heights,
        request.scroll_pos,
        request.window_height,
        settings.thread_dimensions,
    )
    return VisibleThreadsResponse(
        visible_thread_ids=[t.id for t in result.visible_threads],
        offscreen_upper_height=result.offscreen_upper_height,
        offscreen_lower_height=result.offscreen_lower_height,
    )


# -- Selection --


@router.get("/selection")
async def get_selection(store: SidebarStore = Depends(get_store)) -> SelectionResponse:
    return _selection_response(store)


@router.put("/selection/query")
async def set_filter_query(
    request: FilterQueryRequest, store: SidebarStore = Depends(get_store)
) -> SelectionResponse:
    store.set_filter_query(request.query)
    return _selection_response(store)


@router.put("/selection/sort")
async def set_sort_key(
    request: SortKeyRequest, store: SidebarStore = Depends(get_store)
) -> SelectionResponse:
    store.set_sort_key(request.sort_key)
    return _selection_response(store)


@router.post("/selection/expanded")
async def set_expanded(
    request: ExpandedRequest, store: SidebarStore = Depends(get_store)
) -> SelectionResponse:
    store.set_expanded(request.thread_id, request.expanded)
    return _selection_response(store)


@router.post("/selection/forced-visible")
async def set_forced_visible(
    request: ForcedVisibleRequest, store: SidebarStore = Depends(get_store)
) -> SelectionResponse:
    store.set_forced_visible(request.thread_id, request.visible)
    return _selection_response(store)


@router.put("/selection/selected")
async def select_annotations(
    request: SelectAnnotationsRequest, store: SidebarStore = Depends(get_store)
) -> SelectionResponse:
    store.select_annotations(request.ids)
    return _selection_response(store)


@router.delete("/selection")
async def clear_selection(store: SidebarStore = Depends(get_store)) -> SelectionResponse:
    store.clear_selection()
    return _selection_response(store)


@router.put("/selection/tab")
async def select_tab(
    request: SelectTabRequest, store: SidebarStore = Depends(get_store)
) -> SelectionResponse:
    store.select_tab(request.tab)
    return _selection_response(store)


@router.put("/selection/filters/{name}")
async def set_filter(
    name: str, option: FilterOption, store: SidebarStore = Depends(get_store)
) -> SelectionResponse:
    store.set_filter(name, option)
    return _selection_response(store)


@router.put("/focus")
async def toggle_focus_mode(
    request: FocusModeRequest, store: SidebarStore = Depends(get_store)
) -> SelectionResponse:
    store.toggle_focus_mode(request.active)
    return _selection_response(store)
