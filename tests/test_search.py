import asyncio

import pytest

from conftest import make_item, spin
from hn_feed.constants import MSG_SEARCH_FAILED
from hn_feed.models import FeedType, SearchHit
from hn_feed.search import SearchController


@pytest.fixture
def controller(search_source, cursor, renderer):
    return SearchController(search_source, cursor, renderer, debounce=0.01)


@pytest.fixture
def feed(source, cursor):
    source.lists[FeedType.STORIES] = [1, 2]
    source.add(make_item(1, time=1), make_item(2, time=2))

    async def load():
        await cursor.switch_type(FeedType.STORIES)

    return load


def hit(hit_id: int, created_at: int) -> SearchHit:
    return SearchHit(id=hit_id, title=f"Hit {hit_id}", url=None, created_at=created_at)


@pytest.mark.asyncio
async def test_search_renders_hits_newest_first(search_source, renderer, controller):
    search_source.results["rust"] = [hit(1, 10), hit(2, 30), hit(3, 20)]

    hits = await controller.search("rust")

    assert [h.id for h in hits] == [2, 3, 1]
    assert [h.id for h in renderer.search_results[-1]] == [2, 3, 1]
    assert controller.active
    assert controller.query == "rust"


@pytest.mark.asyncio
async def test_search_failure_leaves_feed(search_source, renderer, controller, feed):
    await feed()
    items_before = list(renderer.item_ids)
    clears_before = renderer.feed_clears
    search_source.fail = True

    assert await controller.search("boom") == []

    assert renderer.banner == MSG_SEARCH_FAILED
    assert renderer.item_ids == items_before
    assert renderer.feed_clears == clears_before
    assert renderer.search_results == []
    assert not controller.active


@pytest.mark.asyncio
async def test_clearing_query_reloads_feed(source, search_source, renderer, controller, feed):
    await feed()
    search_source.results["x"] = [hit(9, 1)]
    await controller.search("x")
    list_calls = len(source.list_calls)

    assert await controller.search("   ") == []

    assert not controller.active
    assert len(source.list_calls) == list_calls + 1
    assert renderer.item_ids == [2, 1]


@pytest.mark.asyncio
async def test_clearing_query_without_search_keeps_feed(source, controller, feed):
    await feed()
    list_calls = len(source.list_calls)

    await controller.search("")

    assert len(source.list_calls) == list_calls


@pytest.mark.asyncio
async def test_superseded_query_is_discarded(search_source, renderer, controller):
    search_source.results["slow"] = [hit(1, 1)]
    search_source.results["fast"] = [hit(2, 2)]
    gate = asyncio.Event()
    search_source.gates["slow"] = gate

    slow = asyncio.create_task(controller.search("slow"))
    await spin()
    await controller.search("fast")
    gate.set()

    assert await slow == []
    assert [[h.id for h in hits] for hits in renderer.search_results] == [[2]]
    assert controller.query == "fast"


@pytest.mark.asyncio
async def test_input_is_debounced(search_source, renderer, controller):
    search_source.results["abc"] = [hit(5, 5)]

    controller.on_input("a")
    controller.on_input("ab")
    controller.on_input("abc")
    await asyncio.sleep(0.05)
    await controller.wait_idle()

    assert search_source.queries == ["abc"]
    assert renderer.search_results[-1][0].id == 5



@pytest.mark.asyncio
async def test_submit_runs_pending_search_now(search_source, cursor, renderer):
    controller = SearchController(search_source, cursor, renderer, debounce=30.0)
    search_source.results["go"] = [hit(8, 8)]

    controller.on_input("go")
    controller.submit()
    await controller.wait_idle()

    assert search_source.queries == ["go"]
    assert renderer.search_results[-1][0].id == 8

    # Nothing pending: submit is a no-op
    controller.submit()
    await controller.wait_idle()
    assert search_source.queries == ["go"]
