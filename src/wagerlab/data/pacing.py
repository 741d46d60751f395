"""Sliding-window pacing for outbound provider calls."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Token-bucket style limiter to cap provider throughput."""

    def __init__(
        self,
        max_events: int,
        window_seconds: float = 60.0,
        *,
        time_fn: Callable[[], float] | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.max_events = max_events
        self.window_seconds = window_seconds
        self._timestamps: deque[float] = deque()
        self._time = time_fn or time.monotonic
        self._sleep = sleep_fn or asyncio.sleep
        self._lock = asyncio.Lock()

    async def wait_for_slot(self) -> None:
        if self.max_events <= 0:
            return
        async with self._lock:
            now = self._time()
            cutoff = now - self.window_seconds
            while self._timestamps and self._timestamps[0] < cutoff:
                self._timestamps.popleft()
            if len(self._timestamps) >= self.max_events:
                sleep_time = self.window_seconds - (now - self._timestamps[0])
                if sleep_time > 0:
                    logger.debug("Provider pacing: sleeping %.2fs", sleep_time)
                    await self._sleep(sleep_time)
            self._timestamps.append(self._time())
