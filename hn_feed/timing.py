"""
Rate limiting for load requests.

Two timing policies wrap any callable:

* Throttle: rate cap with a leading edge. The first call in a window runs
  immediately; later calls in the same window are dropped, not queued.
* Debounce: delay until quiet. Each call restarts the timer and only the
  last call runs.

LoadTrigger composes them: every load signal (control, scroll proximity,
sentinel intersection) goes through one advance-level throttle, and the
scroll and intersection handlers carry their own shorter throttles.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from hn_feed.constants import (
    ADVANCE_THROTTLE_MS,
    SCROLL_PROXIMITY_MARGIN,
    SCROLL_THROTTLE_MS,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Clock = Callable[[], float]


class Throttle(Generic[T]):
    def __init__(
        self,
        fn: Callable[..., T],
        window: float,
        clock: Clock = time.monotonic,
    ) -> None:
        self._fn = fn
        self.window = window
        self._clock = clock
        self._last_fire: Optional[float] = None

    def __call__(self, *args: Any, **kwargs: Any) -> bool:
        """Run fn unless inside the current window; True if it ran."""
        now = self._clock()
        if self._last_fire is not None and now - self._last_fire < self.window:
            return False
        self._last_fire = now
        self._fn(*args, **kwargs)
        return True

    def reset(self) -> None:
        self._last_fire = None


class Debounce:
    def __init__(self, fn: Callable[..., Any], delay: float) -> None:
        self._fn = fn
        self.delay = delay
        self._handle: Optional[asyncio.TimerHandle] = None
        self._args: tuple[Any, ...] = ()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args: Any) -> None:
        self.cancel()
        self._args = args
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        args, self._args = self._args, ()
        self._fn(*args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        """Run a pending call now."""
        if self._handle is not None:
            self._handle.cancel()
            self._fire()


class LoadTrigger:
    """Routes load signals into throttled advance tasks."""

    def __init__(
        self,
        advance: Callable[[], Awaitable[Any]],
        advance_window: float = ADVANCE_THROTTLE_MS / 1000,
        scroll_window: float = SCROLL_THROTTLE_MS / 1000,
        scroll_margin: float = SCROLL_PROXIMITY_MARGIN,
        clock: Clock = time.monotonic,
    ) -> None:
        self._advance = advance
        self.scroll_margin = scroll_margin
        self._tasks: set[asyncio.Task[Any]] = set()
        self._request = Throttle(self._spawn, advance_window, clock)
        self._scroll = Throttle(self._handle_scroll, scroll_window, clock)
        self._intersection = Throttle(self._handle_intersection, scroll_window, clock)
        self.fired = 0

    def request(self) -> bool:
        """Explicit control activation."""
        return self._request()

    def on_scroll(
        self, viewport_height: float, scroll_y: float, document_height: float
    ) -> None:
        self._scroll(viewport_height, scroll_y, document_height)

    def on_intersection(self, is_intersecting: bool) -> None:
        self._intersection(is_intersecting)

    def _handle_scroll(
        self, viewport_height: float, scroll_y: float, document_height: float
    ) -> None:
        if viewport_height + scroll_y >= document_height - self.scroll_margin:
            self.request()

    def _handle_intersection(self, is_intersecting: bool) -> None:
        if is_intersecting:
            self.request()

    def _spawn(self) -> None:
        self.fired += 1
        task = asyncio.get_running_loop().create_task(self._advance())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait for advance tasks started so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel(self) -> None:
        for task in list(self._tasks):
            task.cancel()
