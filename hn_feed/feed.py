"""
Feed pagination over the upstream id lists.

The upstream API only exposes full ordered id lists, so a feed is paged by
walking a cursor over that list in fixed strides and fetching each stride's
items. A stride is an upstream distance, not a rendered count: items of
another kind (or missing ones) are dropped and the cursor still moves on.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from hn_feed.cache import ErrorCallback, ItemCache
from hn_feed.client import ItemSource
from hn_feed.constants import DEFAULT_BATCH_SIZE, MSG_LOAD_POSTS_FAILED
from hn_feed.errors import FetchError
from hn_feed.models import FeedState, FeedStatus, FeedType, Item
from hn_feed.render import Renderer

logger = logging.getLogger(__name__)

OptionsLoader = Callable[[Item, Optional[ErrorCallback]], Awaitable[list[Item]]]


def sort_newest_first(items: Sequence[Item]) -> list[Item]:
    """Descending by creation time; ties keep their batch order."""
    return sorted(items, key=lambda it: it.time, reverse=True)


class FeedCursor:
    """
    Owns the FeedState of the active feed type and grows the rendered feed.

    Every switch_type installs a new FeedState with a higher generation.
    Work started under an older generation finishes quietly without
    rendering anything.
    """

    def __init__(
        self,
        source: ItemSource,
        cache: ItemCache,
        renderer: Renderer,
        batch_size: int = DEFAULT_BATCH_SIZE,
        options_loader: Optional[OptionsLoader] = None,
        feed_type: FeedType = FeedType.STORIES,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self._source = source
        self._cache = cache
        self._renderer = renderer
        self.batch_size = batch_size
        self._options_loader = options_loader or self._load_poll_options
        self._generation = 0
        self._state = FeedState(feed_type=feed_type, generation=0)

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def feed_type(self) -> FeedType:
        return self._state.feed_type

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def cursor(self) -> int:
        return self._state.cursor

    @property
    def status(self) -> FeedStatus:
        return self._state.status

    @property
    def rendered(self) -> list[Item]:
        return list(self._state.rendered)

    @property
    def known_ids(self) -> frozenset[int]:
        return self._state.id_set

    def _is_current(self, state: FeedState) -> bool:
        return state is self._state and state.generation == self._generation

    async def switch_type(self, feed_type: FeedType) -> list[Item]:
        """Start a new feed session for feed_type and load its first batch."""
        self._generation += 1
        state = FeedState(
            feed_type=feed_type,
            generation=self._generation,
            status=FeedStatus.LOADING,
        )
        self._state = state
        self._renderer.clear_feed()
        self._renderer.clear_error_banner()

        try:
            ids = await self._source.list_identifiers(feed_type)
        except FetchError as e:
            logger.warning(f"Failed to fetch {feed_type.value} ids: {e}")
            if self._is_current(state):
                self._renderer.render_error_banner(MSG_LOAD_POSTS_FAILED)
            ids = []

        if not self._is_current(state):
            logger.debug(f"Discarding stale id list for {feed_type.value}")
            return []

        state.set_ids(ids)
        state.status = FeedStatus.IDLE
        logger.info(f"Loaded {len(ids)} ids for {feed_type.value}")
        return await self.advance()

    async def advance(self) -> list[Item]:
        """
        Render the next stride (or, for polls, strides until one poll shows).

        Returns the items rendered by this call.
        """
        state = self._state
        if state.status is FeedStatus.LOADING:
            return []
        if state.at_end:
            if state.status is not FeedStatus.EXHAUSTED:
                state.status = FeedStatus.EXHAUSTED
                if state.feed_type is FeedType.POLLS and state.advances == 0:
                    self._renderer.render_no_polls_available()
                else:
                    self._renderer.render_no_more_results()
            return []

        state.status = FeedStatus.LOADING
        try:
            if state.feed_type is FeedType.POLLS:
                rendered = await self._advance_polls(state)
            else:
                rendered = await self._advance_stride(state)
        finally:
            if state.status is FeedStatus.LOADING:
                state.status = FeedStatus.IDLE
        state.advances += 1
        return rendered

    def _report_failures(self, state: FeedState, errors: list[str]) -> None:
        # Item failures surface only for the session that asked for them
        if errors and self._is_current(state):
            self._renderer.render_error_banner(errors[0])

    async def _fetch_stride(self, state: FeedState) -> Optional[list[Item]]:
        """Matching items of the stride at the cursor, or None if stale."""
        start = state.cursor
        batch = state.ids[start : start + self.batch_size]
        errors: list[str] = []
        items = await self._cache.get_many(batch, on_error=errors.append)
        if not self._is_current(state):
            return None
        self._report_failures(state, errors)
        kind = state.feed_type.kind
        matched = [it for it in items if it is not None and it.kind == kind]
        state.cursor = min(start + self.batch_size, len(state.ids))
        return sort_newest_first(matched)

    async def _advance_stride(self, state: FeedState) -> list[Item]:
        matched = await self._fetch_stride(state)
        if matched is None:
            logger.debug("Discarding stale batch")
            return []
        self._render(state, matched, {})
        return matched

    async def _advance_polls(self, state: FeedState) -> list[Item]:
        first = state.advances == 0
        polls: list[Item] = []
        # Polls are sparse: keep striding until one turns up or the list ends
        while not polls and not state.at_end:
            matched = await self._fetch_stride(state)
            if matched is None:
                logger.debug("Discarding stale poll batch")
                return []
            polls = matched

        if not polls:
            state.status = FeedStatus.EXHAUSTED
            if first:
                self._renderer.render_no_polls_available()
            else:
                self._renderer.render_no_more_results()
            return []

        errors: list[str] = []
        option_lists = await asyncio.gather(
            *(self._options_loader(p, errors.append) for p in polls)
        )
        if not self._is_current(state):
            return []
        self._report_failures(state, errors)
        self._render(state, polls, {p.id: opts for p, opts in zip(polls, option_lists)})
        return polls

    def _render(
        self, state: FeedState, items: list[Item], options: dict[int, list[Item]]
    ) -> None:
        for item in items:
            state.rendered.append(item)
            self._renderer.render_item(item, options.get(item.id, []))

    async def _load_poll_options(
        self, poll: Item, on_error: Optional[ErrorCallback] = None
    ) -> list[Item]:
        opts = await self._cache.get_many(poll.parts, on_error=on_error)
        return [o for o in opts if o is not None]
