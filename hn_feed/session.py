from __future__ import annotations

from typing import Optional

from hn_feed.cache import ItemCache
from hn_feed.client import AlgoliaSearchClient, HNApiClient, ItemSource, SearchSource
from hn_feed.comments import CommentTree
from hn_feed.config import FeedSettings, get_settings
from hn_feed.constants import MSG_LOAD_MORE_FAILED
from hn_feed.feed import FeedCursor
from hn_feed.live import LiveUpdateMonitor
from hn_feed.logging_config import get_logger
from hn_feed.models import FeedType, Item
from hn_feed.render import Renderer
from hn_feed.search import SearchController
from hn_feed.timing import LoadTrigger

logger = get_logger(__name__)


class FeedSession:
    """
    Owns one client session: cache, cursor, comment tree, triggers, monitor.

    All mutable state lives here rather than in module globals.
    """

    def __init__(
        self,
        source: ItemSource,
        renderer: Renderer,
        search_source: Optional[SearchSource] = None,
        settings: Optional[FeedSettings] = None,
    ) -> None:
        self.settings = settings or FeedSettings()
        self.source = source
        self.renderer = renderer
        self.cache = ItemCache(source, on_error=renderer.render_error_banner)
        self.tree = CommentTree(
            self.cache,
            renderer,
            retain_children=self.settings.retain_comment_children,
        )
        self.cursor = FeedCursor(
            source,
            self.cache,
            renderer,
            batch_size=self.settings.batch_size,
            options_loader=self.tree.poll_options,
            feed_type=self.settings.default_feed,
        )
        self.trigger = LoadTrigger(
            self.load_more,
            advance_window=self.settings.advance_window,
            scroll_window=self.settings.scroll_window,
        )
        self.monitor = LiveUpdateMonitor(
            source,
            self.cursor,
            renderer,
            interval=self.settings.live_update_interval,
            reload=self.reload,
        )
        self.search: Optional[SearchController] = None
        if search_source is not None:
            self.search = SearchController(
                search_source,
                self.cursor,
                renderer,
                debounce=self.settings.search_debounce,
            )
        self._owned: list[HNApiClient | AlgoliaSearchClient] = []

    @classmethod
    def from_settings(
        cls, renderer: Renderer, settings: Optional[FeedSettings] = None
    ) -> FeedSession:
        """Session backed by the real HN and Algolia APIs."""
        settings = settings or get_settings()
        source = HNApiClient(settings.api_base)
        search_source = AlgoliaSearchClient(settings.search_base)
        session = cls(source, renderer, search_source, settings)
        session._owned = [source, search_source]
        return session

    async def start(
        self, feed_type: Optional[FeedType] = None, live_updates: bool = True
    ) -> list[Item]:
        feed_type = feed_type or self.settings.default_feed
        logger.info("session_start", feed=feed_type.value)
        rendered = await self.switch_type(feed_type)
        if live_updates:
            self.monitor.start()
        return rendered

    async def switch_type(self, feed_type: FeedType) -> list[Item]:
        if self.search is not None:
            self.search.cancel()
            self.search.active = False
        # A pending notice counted ids of the feed being replaced
        self.monitor.dismiss()
        return await self.cursor.switch_type(feed_type)

    async def reload(self) -> list[Item]:
        """Reload the current feed type from a fresh id list."""
        return await self.switch_type(self.cursor.feed_type)

    async def load_more(self) -> list[Item]:
        """Advance the feed unless a search has replaced it."""
        if self.search is not None and self.search.active:
            return []
        try:
            return await self.cursor.advance()
        except Exception:
            logger.exception("load_more_failed", feed=self.cursor.feed_type.value)
            self.renderer.render_error_banner(MSG_LOAD_MORE_FAILED)
            return []

    async def close(self) -> None:
        await self.monitor.stop()
        self.trigger.cancel()
        if self.search is not None:
            self.search.cancel()
        for client in self._owned:
            await client.close()
        logger.info("session_closed")

    async def __aenter__(self) -> FeedSession:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
