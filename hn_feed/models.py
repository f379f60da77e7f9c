"""Typed data models for the HN feed."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TypedDict

from hn_feed.constants import HN_ITEM_URL


class ItemDict(TypedDict, total=False):
    """Raw item payload as served by the HN Firebase API."""

    id: int
    type: Optional[str]
    by: str
    title: str
    url: str
    time: int
    kids: list[int]
    parts: list[int]
    descendants: int
    text: str
    score: int
    deleted: bool
    dead: bool


class FeedType(str, Enum):
    """Selects the upstream id list and the kind filter."""

    STORIES = "stories"
    JOBS = "jobs"
    POLLS = "polls"

    @property
    def endpoint(self) -> str:
        # Polls have no list of their own; they are scanned out of new stories.
        return "jobstories" if self is FeedType.JOBS else "newstories"

    @property
    def kind(self) -> str:
        return {
            FeedType.STORIES: "story",
            FeedType.JOBS: "job",
            FeedType.POLLS: "poll",
        }[self]


class FeedStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    EXHAUSTED = "exhausted"


class ExpansionState(str, Enum):
    COLLAPSED = "collapsed"
    EXPANDING = "expanding"
    EXPANDED = "expanded"


@dataclass
class Item:
    """A Hacker News item (story, job, poll, comment or poll option)."""

    id: int
    kind: Optional[str] = None  # None for deleted/missing items
    title: Optional[str] = None
    url: Optional[str] = None
    time: int = 0
    kids: list[int] = field(default_factory=list)
    parts: list[int] = field(default_factory=list)
    descendants: Optional[int] = None
    text: Optional[str] = None
    deleted: bool = False
    dead: bool = False
    by: Optional[str] = None
    score: Optional[int] = None

    @classmethod
    def from_dict(cls, d: ItemDict) -> Item:
        """Create Item from an API payload."""
        return cls(
            id=int(d.get("id", 0)),
            kind=d.get("type"),
            title=d.get("title"),
            url=d.get("url") or None,
            time=int(d.get("time") or 0),
            kids=[int(k) for k in d.get("kids") or []],
            parts=[int(p) for p in d.get("parts") or []],
            descendants=d.get("descendants"),
            text=d.get("text"),
            deleted=bool(d.get("deleted", False)),
            dead=bool(d.get("dead", False)),
            by=d.get("by"),
            score=d.get("score"),
        )

    def to_dict(self) -> ItemDict:
        out: ItemDict = {"id": self.id, "type": self.kind, "time": self.time}
        if self.title is not None:
            out["title"] = self.title
        if self.url is not None:
            out["url"] = self.url
        if self.kids:
            out["kids"] = list(self.kids)
        if self.parts:
            out["parts"] = list(self.parts)
        if self.descendants is not None:
            out["descendants"] = self.descendants
        if self.text is not None:
            out["text"] = self.text
        if self.deleted:
            out["deleted"] = True
        if self.dead:
            out["dead"] = True
        if self.by is not None:
            out["by"] = self.by
        if self.score is not None:
            out["score"] = self.score
        return out

    @property
    def hn_url(self) -> str:
        return HN_ITEM_URL.format(id=self.id)

    @property
    def link(self) -> str:
        """External url, falling back to the HN discussion page."""
        return self.url or self.hn_url


@dataclass
class SearchHit:
    """A single full-text search result."""

    id: int
    title: str
    url: Optional[str]
    created_at: int

    @property
    def link(self) -> str:
        return self.url or HN_ITEM_URL.format(id=self.id)


@dataclass
class FeedState:
    """
    Pagination state for one feed session.

    A fresh instance is installed on every feed-type switch; in-flight work
    holding an old instance can tell it has gone stale by its generation.
    """

    feed_type: FeedType
    generation: int
    ids: list[int] = field(default_factory=list)
    id_set: frozenset[int] = frozenset()
    cursor: int = 0  # Index into ids, never decreases
    rendered: list[Item] = field(default_factory=list)
    status: FeedStatus = FeedStatus.IDLE
    advances: int = 0  # Completed advance calls in this session
    loaded: bool = False  # Id list has arrived (possibly empty)

    def set_ids(self, ids: list[int]) -> None:
        self.ids = list(ids)
        self.id_set = frozenset(self.ids)
        self.cursor = 0
        self.loaded = True

    @property
    def at_end(self) -> bool:
        return self.cursor >= len(self.ids)


@dataclass(eq=False)
class CommentNode:
    """A node of a lazily materialized reply tree."""

    item: Item
    depth: int = 0
    state: ExpansionState = ExpansionState.COLLAPSED
    children: list[CommentNode] = field(default_factory=list)
    epoch: int = 0  # Bumped on collapse so late expansions are discarded

    @property
    def id(self) -> int:
        return self.item.id

    @property
    def has_children(self) -> bool:
        return bool(self.item.kids)

    @property
    def expanded(self) -> bool:
        return self.state is ExpansionState.EXPANDED
