import asyncio
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict

from core.exceptions import RateLimited
from core.logger import logger


@dataclass
class RateLimitEntry:
    count: int
    window_reset_at: float


class RateLimiter:
    """
    Per-key request quota over a fixed window.

    State lives in this process only. Several API instances each enforce
    their own quota. One instance is created per process in the app lifespan
    and swept periodically by the scheduler.
    """

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def hit(self, key: str) -> int:
        """
        Count one request for `key`.
        Returns the number of requests left in the current window,
        raises RateLimited once the quota is used up.
        """
        async with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is None or now >= entry.window_reset_at:
                self._entries[key] = RateLimitEntry(count=1, window_reset_at=now + self.window_seconds)
                return self.max_requests - 1

            if entry.count >= self.max_requests:
                retry_after = max(1, math.ceil(entry.window_reset_at - now))
                logger.warning("Rate limit exceeded", key=key, count=entry.count, retry_after=retry_after)
                raise RateLimited(retry_after=retry_after)

            entry.count += 1
            return self.max_requests - entry.count

    async def sweep(self) -> int:
        """Drop entries whose window has already ended. Returns how many were removed."""
        async with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now >= entry.window_reset_at]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug("Rate limiter swept", removed=len(expired), remaining=len(self._entries))
        return len(expired)
