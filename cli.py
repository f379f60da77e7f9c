import argparse
import asyncio
from rich.console import Console

from hn_feed.config import get_settings, load_config, save_config
from hn_feed.logging_config import configure_logging, get_logger
from hn_feed.models import CommentNode, FeedType, FeedStatus
from hn_feed.render import ConsoleRenderer
from hn_feed.session import FeedSession

console = Console()
logger = get_logger(__name__)


async def expand_to_depth(session: FeedSession, node: CommentNode, depth: int) -> int:
    """Expand node and its descendants level by level; returns nodes shown."""
    if depth <= 0:
        return 0
    children = await session.tree.expand(node)
    shown = len(children)
    for child in children:
        shown += await expand_to_depth(session, child, depth - 1)
    return shown


async def show_comments(session: FeedSession, item_id: int, depth: int) -> None:
    item = await session.cache.get(item_id)
    if item is None:
        console.print(f"[red]Item {item_id} not found.[/]")
        return
    options = await session.tree.poll_options(item) if item.kind == "poll" else []
    session.renderer.render_item(item, options)
    shown = await expand_to_depth(session, session.tree.root(item), depth)
    if shown == 0:
        console.print("[dim]No comments.[/]")


async def show_feed(session: FeedSession, feed_type: FeedType, pages: int) -> None:
    await session.start(feed_type, live_updates=False)
    for _ in range(pages - 1):
        if session.cursor.status is FeedStatus.EXHAUSTED:
            break
        await session.load_more()


async def main(args):
    configure_logging(args.log_level)
    settings = get_settings()
    if args.batch_size:
        settings.batch_size = args.batch_size

    feed_type = FeedType(args.type) if args.type else settings.default_feed
    # Remember the feed for next time if explicit
    if args.type and load_config().get("default_feed") != args.type:
        save_config("default_feed", args.type)

    renderer = ConsoleRenderer(console)
    async with FeedSession.from_settings(renderer, settings) as session:
        if args.search:
            if session.search is None:
                console.print("[red]Search is not available.[/]")
                return
            hits = await session.search.search(args.search)
            if not hits:
                console.print("[yellow]No results.[/]")
        elif args.comments:
            await show_comments(session, args.comments, args.depth)
        else:
            await show_feed(session, feed_type, args.pages)
            logger.info(
                "feed_done",
                feed=feed_type.value,
                rendered=len(session.cursor.rendered),
                cursor=session.cursor.cursor,
            )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Browse Hacker News from the terminal")
    parser.add_argument(
        "--type",
        choices=[t.value for t in FeedType],
        help="Feed to show (remembered for next time)",
    )
    parser.add_argument("--pages", type=int, default=1, help="Batches to load")
    parser.add_argument("--batch-size", type=int, default=0, help="Ids per batch")
    parser.add_argument("--comments", type=int, metavar="ID", help="Show an item's comments")
    parser.add_argument("--depth", type=int, default=2, help="Comment levels to expand")
    parser.add_argument("--search", metavar="QUERY", help="Full-text search instead of a feed")
    parser.add_argument("--log-level", default="WARNING")
    return parser


if __name__ == "__main__":
    asyncio.run(main(build_parser().parse_args()))
