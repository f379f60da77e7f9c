from io import StringIO
from unittest.mock import patch

import pytest
from rich.console import Console

import cli
from conftest import FakeSearchSource, FakeSource, make_item
from hn_feed.config import FeedSettings
from hn_feed.models import FeedType, Item, SearchHit
from hn_feed.session import FeedSession


@pytest.fixture
def fake_source():
    source = FakeSource()
    source.lists[FeedType.STORIES] = list(range(1, 8))
    source.add(*(make_item(i, time=1700000000 + i) for i in range(1, 8)))
    return source


@pytest.fixture
def fake_search():
    return FakeSearchSource()


@pytest.fixture
def run_cli(fake_source, fake_search):
    """Run cli.main against in-memory sources; returns captured console text."""

    async def run(argv, settings=None, config=None, with_search=True):
        buf = StringIO()
        settings = settings or FeedSettings(batch_size=3)

        def build(renderer, _settings=None):
            search = fake_search if with_search else None
            return FeedSession(fake_source, renderer, search, settings)

        with (
            patch("cli.console", Console(file=buf, width=200, color_system=None)),
            patch("cli.configure_logging"),
            patch("cli.get_settings", return_value=settings),
            patch("cli.load_config", return_value=config or {}),
            patch("cli.save_config") as mock_save,
            patch("cli.FeedSession.from_settings", side_effect=build),
        ):
            await cli.main(cli.build_parser().parse_args(argv))
        return buf.getvalue(), mock_save

    return run


def test_parser_defaults():
    args = cli.build_parser().parse_args([])
    assert args.type is None
    assert args.pages == 1
    assert args.depth == 2
    assert args.search is None


def test_parser_rejects_unknown_feed():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--type", "ask"])


@pytest.mark.asyncio
async def test_feed_pages(run_cli):
    out, mock_save = await run_cli(["--pages", "2"])

    # Two strides of three ids, each shown newest first
    assert out.index("Story 3") < out.index("Story 1") < out.index("Story 6")
    assert "Story 4" in out
    assert "Story 7" not in out
    mock_save.assert_not_called()


@pytest.mark.asyncio
async def test_feed_until_exhausted(run_cli):
    out, _ = await run_cli(["--pages", "10"])

    assert "Story 1" in out
    assert out.count("No more posts.") == 1


@pytest.mark.asyncio
async def test_explicit_type_is_remembered(fake_source, run_cli):
    fake_source.lists[FeedType.JOBS] = [50]
    fake_source.add(make_item(50, kind="job"))

    out, mock_save = await run_cli(["--type", "jobs"])

    assert "Job 50" in out
    mock_save.assert_called_once_with("default_feed", "jobs")


@pytest.mark.asyncio
async def test_same_type_not_saved_again(fake_source, run_cli):
    fake_source.lists[FeedType.JOBS] = []
    _, mock_save = await run_cli(["--type", "jobs"], config={"default_feed": "jobs"})
    mock_save.assert_not_called()


@pytest.mark.asyncio
async def test_search(fake_search, run_cli):
    fake_search.results["sqlite"] = [
        SearchHit(id=1, title="SQLite internals", url="https://sqlite.test", created_at=10),
        SearchHit(id=2, title="Why SQLite", url=None, created_at=20),
    ]

    out, _ = await run_cli(["--search", "sqlite"])

    assert out.index("Why SQLite") < out.index("SQLite internals")


@pytest.mark.asyncio
async def test_search_without_hits(run_cli):
    out, _ = await run_cli(["--search", "nothing"])
    assert "No results." in out


@pytest.mark.asyncio
async def test_comments_to_depth(fake_source, run_cli):
    fake_source.add(
        make_item(100, title="Parent", kids=[101, 102]),
        Item(id=101, kind="comment", by="alice", text="First <i>reply</i>", time=5, kids=[103]),
        Item(id=102, kind="comment", by="bob", text="Second reply", time=6),
        Item(id=103, kind="comment", by="carol", text="Nested", time=7, kids=[104]),
        Item(id=104, kind="comment", by="dave", text="Too deep", time=8),
    )

    out, _ = await run_cli(["--comments", "100", "--depth", "2"])

    assert "Parent" in out
    assert "First reply" in out
    assert "Second reply" in out
    assert "Nested" in out
    assert "Too deep" not in out
    assert 104 not in fake_source.item_calls


@pytest.mark.asyncio
async def test_comments_missing_item(run_cli):
    out, _ = await run_cli(["--comments", "999"])
    assert "Item 999 not found." in out


@pytest.mark.asyncio
async def test_comments_none(fake_source, run_cli):
    fake_source.add(make_item(200, title="Lonely"))
    out, _ = await run_cli(["--comments", "200"])
    assert "No comments." in out


@pytest.mark.asyncio
async def test_search_unavailable(fake_search, run_cli):
    out, _ = await run_cli(["--search", "sqlite"], with_search=False)

    assert "Search is not available." in out
    assert fake_search.queries == []
