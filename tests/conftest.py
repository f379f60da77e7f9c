import asyncio
from typing import Optional, Sequence

import pytest

from hn_feed.cache import ItemCache
from hn_feed.errors import FetchError, SearchError
from hn_feed.feed import FeedCursor
from hn_feed.models import CommentNode, FeedType, Item, SearchHit


def make_item(item_id: int, kind: Optional[str] = "story", time: int = 0, **kwargs) -> Item:
    if kind in ("story", "job", "poll") and "title" not in kwargs:
        kwargs["title"] = f"{kind.title()} {item_id}"
    return Item(id=item_id, kind=kind, time=time, **kwargs)


async def spin(times: int = 20) -> None:
    """Let other tasks run up to their next real suspension point."""
    for _ in range(times):
        await asyncio.sleep(0)


class FakeSource:
    """In-memory ItemSource with call counters, failures and gates."""

    def __init__(self):
        self.lists: dict[FeedType, list[int]] = {}
        self.items: dict[int, Optional[Item]] = {}
        self.list_calls: list[FeedType] = []
        self.item_calls: list[int] = []
        self.failing_items: set[int] = set()
        self.failing_lists: set[FeedType] = set()
        self.gates: dict[int, asyncio.Event] = {}

    def add(self, *items: Item) -> None:
        for item in items:
            self.items[item.id] = item

    async def list_identifiers(self, feed_type: FeedType) -> list[int]:
        self.list_calls.append(feed_type)
        await asyncio.sleep(0)
        if feed_type in self.failing_lists:
            raise FetchError(f"{feed_type.value} list unavailable", status_code=503)
        return list(self.lists.get(feed_type, []))

    async def fetch_item(self, item_id: int) -> Optional[Item]:
        self.item_calls.append(item_id)
        gate = self.gates.get(item_id)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        if item_id in self.failing_items:
            raise FetchError(f"item {item_id} unavailable", status_code=500)
        return self.items.get(item_id)


class FakeSearchSource:
    def __init__(self):
        self.results: dict[str, list[SearchHit]] = {}
        self.queries: list[str] = []
        self.fail = False
        self.gates: dict[str, asyncio.Event] = {}

    async def search(self, query: str) -> list[SearchHit]:
        self.queries.append(query)
        gate = self.gates.get(query)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        if self.fail:
            raise SearchError("search backend down")
        return list(self.results.get(query, []))


class RecordingRenderer:
    """Renderer that records what it was asked to show."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.items: list[Item] = []
        self.options: dict[int, list[Item]] = {}
        self.comment_children: dict[int, list[int]] = {}
        self.errors: list[str] = []
        self.banner: Optional[str] = None
        self.live = None
        self.no_more = 0
        self.no_polls = 0
        self.feed_clears = 0
        self.search_results: list[list[SearchHit]] = []

    @property
    def item_ids(self) -> list[int]:
        return [it.id for it in self.items]

    def render_item(self, item: Item, options: Sequence[Item] = ()) -> None:
        self.calls.append(("item", item.id))
        self.items.append(item)
        self.options[item.id] = list(options)

    def render_no_more_results(self) -> None:
        self.calls.append(("no_more",))
        self.no_more += 1

    def render_no_polls_available(self) -> None:
        self.calls.append(("no_polls",))
        self.no_polls += 1

    def render_comment_children(
        self, parent: CommentNode, children: Sequence[CommentNode]
    ) -> None:
        self.calls.append(("children", parent.id, [c.id for c in children]))
        self.comment_children[parent.id] = [c.id for c in children]

    def clear_children(self, node: CommentNode) -> None:
        self.calls.append(("clear_children", node.id))
        self.comment_children.pop(node.id, None)

    def clear_feed(self) -> None:
        self.calls.append(("clear_feed",))
        self.feed_clears += 1
        self.items = []

    def render_error_banner(self, message: str) -> None:
        self.calls.append(("error", message))
        self.errors.append(message)
        self.banner = message

    def clear_error_banner(self) -> None:
        self.calls.append(("clear_error",))
        self.banner = None

    def render_live_update_banner(self, count, on_accept) -> None:
        self.calls.append(("live", count))
        self.live = (count, on_accept)

    def clear_live_update_banner(self) -> None:
        self.calls.append(("clear_live",))
        self.live = None

    def render_search_results(self, hits: Sequence[SearchHit]) -> None:
        self.calls.append(("search", [h.id for h in hits]))
        self.search_results.append(list(hits))


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def search_source():
    return FakeSearchSource()


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def cache(source, renderer):
    return ItemCache(source, on_error=renderer.render_error_banner)


@pytest.fixture
def cursor(source, cache, renderer):
    return FeedCursor(source, cache, renderer, batch_size=10)
