from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from hn_feed.client import ItemSource
from hn_feed.constants import LIVE_UPDATE_INTERVAL_MS
from hn_feed.errors import FetchError
from hn_feed.feed import FeedCursor
from hn_feed.render import Renderer

logger = logging.getLogger(__name__)


class LiveUpdateMonitor:
    """
    Polls the active feed's id list and announces ids the cursor doesn't know.

    Only membership is checked: no item bodies are fetched and the cursor is
    never touched until the user accepts the notification.
    """

    def __init__(
        self,
        source: ItemSource,
        cursor: FeedCursor,
        renderer: Renderer,
        interval: float = LIVE_UPDATE_INTERVAL_MS / 1000,
        reload: Optional[Callable[[], Awaitable[object]]] = None,
    ) -> None:
        self._source = source
        self._cursor = cursor
        self._renderer = renderer
        self.interval = interval
        self._reload = reload or self._reload_current
        self._task: Optional[asyncio.Task[None]] = None
        self._notice = 0  # Identifies the latest notification
        self._accepted = True

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def check(self) -> list[int]:
        """Diff the upstream list against the cursor; returns the new ids."""
        if not self._cursor.state.loaded:
            return []
        feed_type = self._cursor.feed_type
        generation = self._cursor.generation
        try:
            ids = await self._source.list_identifiers(feed_type)
        except FetchError as e:
            logger.warning(f"Live update check failed: {e}")
            return []
        if self._cursor.generation != generation:
            return []

        known = self._cursor.known_ids
        new_ids = [i for i in ids if i not in known]
        if new_ids:
            self._notice += 1
            self._accepted = False
            notice = self._notice

            async def on_accept() -> None:
                await self._accept(notice)

            logger.info(f"{len(new_ids)} new {feed_type.value} ids upstream")
            self._renderer.render_live_update_banner(len(new_ids), on_accept)
        return new_ids

    async def accept(self) -> None:
        """Accept the latest notification: reload the current feed."""
        await self._accept(self._notice)

    def dismiss(self) -> None:
        """Withdraw a pending notification; its callback becomes a no-op."""
        if self._accepted:
            return
        self._notice += 1
        self._accepted = True
        self._renderer.clear_live_update_banner()

    async def _accept(self, notice: int) -> None:
        if self._accepted or notice != self._notice:
            return
        self._accepted = True
        self._renderer.clear_live_update_banner()
        await self._reload()

    async def _reload_current(self) -> None:
        await self._cursor.switch_type(self._cursor.feed_type)

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.check()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
