from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Optional

from hn_feed.client import ItemSource
from hn_feed.constants import MSG_LOAD_ITEM_FAILED
from hn_feed.errors import FetchError
from hn_feed.models import Item

logger = logging.getLogger(__name__)

_MISSING = object()

ErrorCallback = Callable[[str], None]


class ItemCache:
    """
    Process-lifetime memo of id -> Item.

    Concurrent requests for the same uncached id share one upstream fetch.
    A None result (upstream has no such item) is cached; a failed fetch is
    not, so a later request retries it.

    Failures are reported to the on_error passed to get/get_many, falling
    back to the one given here. Callers that may go stale pass their own
    callback and decide later whether to show anything.
    """

    def __init__(
        self,
        source: ItemSource,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._source = source
        self._on_error = on_error
        self._items: dict[int, Optional[Item]] = {}
        self._inflight: dict[int, asyncio.Task[Optional[Item]]] = {}

    def __contains__(self, item_id: int) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def peek(self, item_id: int) -> Optional[Item]:
        """Cached value without fetching."""
        return self._items.get(item_id)

    async def get(
        self, item_id: int, on_error: Optional[ErrorCallback] = None
    ) -> Optional[Item]:
        cached = self._items.get(item_id, _MISSING)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]

        task = self._inflight.get(item_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch(item_id))
            self._inflight[item_id] = task
        try:
            # A cancelled caller must not cancel the fetch other callers share
            return await asyncio.shield(task)
        except FetchError:
            handler = on_error or self._on_error
            if handler:
                handler(MSG_LOAD_ITEM_FAILED)
            return None

    async def get_many(
        self, ids: Iterable[int], on_error: Optional[ErrorCallback] = None
    ) -> list[Optional[Item]]:
        """Fetch all ids concurrently; results are in request order."""
        return list(await asyncio.gather(*(self.get(i, on_error) for i in ids)))

    async def _fetch(self, item_id: int) -> Optional[Item]:
        try:
            item = await self._source.fetch_item(item_id)
        except FetchError as e:
            logger.warning(f"Failed to fetch item {item_id}: {e}")
            raise
        finally:
            self._inflight.pop(item_id, None)
        self._items[item_id] = item
        return item
