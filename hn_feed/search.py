from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from hn_feed.client import SearchSource
from hn_feed.constants import MSG_SEARCH_FAILED, SEARCH_DEBOUNCE_MS
from hn_feed.errors import SearchError
from hn_feed.feed import FeedCursor
from hn_feed.models import SearchHit
from hn_feed.render import Renderer
from hn_feed.timing import Debounce

logger = logging.getLogger(__name__)


class SearchController:
    """
    Full-text search that temporarily replaces the feed.

    Clearing the query reloads the current feed type. A failed search shows
    a banner and leaves whatever is on screen alone.
    """

    def __init__(
        self,
        source: SearchSource,
        cursor: FeedCursor,
        renderer: Renderer,
        debounce: float = SEARCH_DEBOUNCE_MS / 1000,
    ) -> None:
        self._source = source
        self._cursor = cursor
        self._renderer = renderer
        self._debounced = Debounce(self._spawn, debounce)
        self._tasks: set[asyncio.Task[Any]] = set()
        self._query_gen = 0
        self.active = False
        self.query: Optional[str] = None

    def on_input(self, query: str) -> None:
        """Keystroke handler; runs search once typing pauses."""
        self._debounced(query)

    def submit(self) -> None:
        """Run a search still waiting out the debounce right away."""
        self._debounced.flush()

    def _spawn(self, query: str) -> None:
        task = asyncio.get_running_loop().create_task(self.search(query))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def search(self, query: str) -> list[SearchHit]:
        self._query_gen += 1
        gen = self._query_gen
        query = query.strip()

        if not query:
            was_active = self.active
            self.active = False
            self.query = None
            if was_active:
                await self._cursor.switch_type(self._cursor.feed_type)
            return []

        self._renderer.clear_error_banner()
        try:
            hits = await self._source.search(query)
        except SearchError as e:
            logger.warning(f"Search for {query!r} failed: {e}")
            if gen == self._query_gen:
                self._renderer.render_error_banner(MSG_SEARCH_FAILED)
            return []

        if gen != self._query_gen:
            logger.debug(f"Discarding results for superseded query {query!r}")
            return []

        hits = sorted(hits, key=lambda h: h.created_at, reverse=True)
        self.active = True
        self.query = query
        self._renderer.render_search_results(hits)
        return hits

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel(self) -> None:
        self._debounced.cancel()
        for task in list(self._tasks):
            task.cancel()
