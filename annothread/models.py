"""Canonical data structures for annothread.

Defined once here, referenced everywhere else. Annotation records mirror the
annotation service's JSON shape; threads are arenas of nodes addressed by id
handles, rebuilt from scratch on every projection.
"""

from collections.abc import Callable, Iterator
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Annotation records
# ---------------------------------------------------------------------------


class AnchorStatus(str, Enum):
    PENDING = "pending"
    ANCHORED = "anchored"
    ORPHAN = "orphan"
    TIMEOUT = "timeout"


class Selector(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    start: int | None = None
    end: int | None = None
    exact: str | None = None
    prefix: str | None = None
    suffix: str | None = None


class Target(BaseModel):
    source: str | None = None
    selector: list[Selector] | None = None


class UserInfo(BaseModel):
    display_name: str | None = None


class Moderation(BaseModel):
    flag_count: int = 0


class AnnotationRecord(BaseModel):
    """One annotation or reply.

    `id` is absent until the record has been saved; `tag` is the local-only
    identifier assigned when the record enters the live collection.
    `references` lists ancestor ids, furthest first, nearest last.
    """

    id: str | None = None
    tag: str | None = None
    references: list[str] = Field(default_factory=list)
    created: str = ""
    updated: str = ""
    group: str | None = None
    user: str | None = None
    user_info: UserInfo | None = None
    uri: str = ""
    text: str = ""
    tags: list[str] = Field(default_factory=list)
    target: list[Target] = Field(default_factory=list)
    hidden: bool = False
    flagged: bool = False
    moderation: Moderation | None = None

    # Anchoring state, set locally. None = not yet known.
    orphan: bool | None = None
    anchor_timeout: bool = False

    @property
    def anchor_status(self) -> AnchorStatus:
        if self.orphan is True:
            return AnchorStatus.ORPHAN
        if self.orphan is False:
            return AnchorStatus.ANCHORED
        if self.anchor_timeout:
            return AnchorStatus.TIMEOUT
        return AnchorStatus.PENDING


class AnnotationStub(BaseModel):
    """Identifies an annotation for removal: `id`, `tag`, or both."""

    id: str | None = None
    tag: str | None = None


# ---------------------------------------------------------------------------
# Thread arena
# ---------------------------------------------------------------------------

ROOT_THREAD_ID = "root"


class ThreadNode(BaseModel):
    """A node in a thread arena.

    `annotation` is None for placeholders standing in for an ancestor that is
    referenced but not present in the collection. `parent` and `children`
    are id handles into the owning `Thread.nodes` map.
    """

    id: str
    annotation: AnnotationRecord | None = None
    parent: str | None = None
    children: list[str] = Field(default_factory=list)
    visible: bool = True
    collapsed: bool = False
    reply_count: int = 0
    depth: int = 0


class Thread(BaseModel):
    """Arena of thread nodes hanging off a synthetic, annotation-less root.

    The root is held apart from `nodes`, which is keyed by annotation id or
    placeholder id only. Top-level threads have `parent=None`. Traversal
    methods take `None` to mean the root.
    """

    root: ThreadNode = Field(default_factory=lambda: ThreadNode(id=ROOT_THREAD_ID))
    nodes: dict[str, ThreadNode] = Field(default_factory=dict)

    def node(self, node_id: str) -> ThreadNode:
        return self.nodes[node_id]

    def _start(self, node_id: str | None) -> ThreadNode:
        return self.root if node_id is None else self.nodes[node_id]

    def children_of(self, node_id: str | None) -> list[ThreadNode]:
        return [self.nodes[c] for c in self._start(node_id).children]

    def top_level(self) -> list[ThreadNode]:
        return self.children_of(None)

    def ancestors(self, node_id: str) -> list[str]:
        """Ids of a node's ancestors, nearest first, excluding the root."""
        result: list[str] = []
        parent = self.nodes[node_id].parent
        while parent is not None:
            result.append(parent)
            parent = self.nodes[parent].parent
        return result

    def descendants(self, node_id: str | None) -> list[str]:
        result: list[str] = []
        stack = list(reversed(self._start(node_id).children))
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(self.nodes[current].children))
        return result

    def walk(self, node_id: str | None = None) -> Iterator[ThreadNode]:
        """Depth-first, pre-order traversal starting at `node_id` (default root)."""
        stack = [self._start(node_id)]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(self.nodes[c] for c in reversed(current.children))


# ---------------------------------------------------------------------------
# Filters and options
# ---------------------------------------------------------------------------

FACET_NAMES = ("any", "quote", "since", "tag", "text", "uri", "user")


class Facet(BaseModel):
    terms: list[str | float] = Field(default_factory=list)
    operator: Literal["and", "or"] = "and"


FilterSpec = dict[str, Facet]


class FocusUser(BaseModel):
    username: str | None = None
    authority: str | None = None
    user_id: str | None = None
    display_name: str | None = None


class FocusConfig(BaseModel):
    """Focus filter supplied by the embedding page at startup."""

    user: FocusUser | None = None


class SortKey(str, Enum):
    NEWEST = "Newest"
    OLDEST = "Oldest"
    LOCATION = "Location"


class SelectionState(BaseModel):
    """User-driven selection and filtering state for the thread projection."""

    model_config = ConfigDict(frozen=True)

    expanded: dict[str, bool] = Field(default_factory=dict)
    forced_visible: tuple[str, ...] = ()
    selected: tuple[str, ...] = ()
    sort_key: SortKey = SortKey.LOCATION
    filter_query: str | None = None
    filters: dict[str, str] = Field(default_factory=dict)
    selected_tab: Literal["annotation", "note", "orphan"] = "annotation"


class ThreadState(BaseModel):
    """Everything the root thread projection depends on."""

    model_config = ConfigDict(frozen=True)

    annotations: tuple[AnnotationRecord, ...] = ()
    selection: SelectionState = Field(default_factory=SelectionState)
    route: str | None = "sidebar"


class BuildThreadOptions(BaseModel):
    """Options for a single `build_thread` call.

    `filter_fn` decides per-annotation visibility; when absent every node is
    visible. `thread_filter_fn` removes whole top-level threads.
    """

    expanded: dict[str, bool] = Field(default_factory=dict)
    forced_visible: list[str] = Field(default_factory=list)
    selected: list[str] = Field(default_factory=list)
    sort_key: SortKey = SortKey.LOCATION
    filter_fn: Callable[[AnnotationRecord], bool] | None = None
    thread_filter_fn: Callable[[ThreadNode], bool] | None = None


# ---------------------------------------------------------------------------
# Real-time notifications
# ---------------------------------------------------------------------------


class RealTimeMessage(BaseModel):
    """One message from the push transport. Only `type` and `records` are used."""

    type: str
    records: list[AnnotationRecord] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Viewport geometry
# ---------------------------------------------------------------------------


class ThreadDimensions(BaseModel):
    default_height: float = 200
    margin_above: float = 800
    margin_below: float = 800


class VisibleThreads(BaseModel):
    visible_threads: list[ThreadNode]
    offscreen_upper_height: float
    offscreen_lower_height: float
