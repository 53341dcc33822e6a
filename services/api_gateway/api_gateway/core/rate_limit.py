import asyncio
import math
import time
from collections import deque
from typing import Callable, Deque, Dict

from school_common.errors import RateLimitFailure


class SlidingWindowLimiter:
    """Allows ``limit`` hits per key inside any rolling ``window`` seconds."""

    def __init__(self, limit: int, window: float = 60.0, clock: Callable[[], float] = time.monotonic) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.window = window
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()
        self._lock = asyncio.Lock()

    def _sweep(self, now: float) -> None:
        # Keys with no hit inside the window hold no state worth keeping.
        cutoff = now - self.window
        for key in [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]:
            del self._hits[key]
        self._last_sweep = now

    async def hit(self, key: str) -> int:
        """Record one hit for ``key`` and return how many remain in the window."""
        async with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self.window:
                self._sweep(now)
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= now - self.window:
                hits.popleft()
            if len(hits) >= self.limit:
                raise RateLimitFailure(retry_after=max(1, math.ceil(hits[0] + self.window - now)))
            hits.append(now)
            return self.limit - len(hits)
