from __future__ import annotations

import math
import time
from collections import defaultdict, deque


class SlidingWindowLimiter:
    """In-process sliding window; each key may record max_events per window."""

    def __init__(self, *, max_events: int, window_seconds: int) -> None:
        self.max_events = max_events
        self.window_seconds = window_seconds
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    def _trim(self, key: str, now: float) -> deque[float]:
        hits = self._hits[key]
        while hits and hits[0] <= now - self.window_seconds:
            hits.popleft()
        return hits

    def hit(self, key: str) -> bool:
        now = time.monotonic()
        hits = self._trim(key, now)
        if len(hits) >= self.max_events:
            return False
        hits.append(now)
        return True

    def retry_after(self, key: str) -> int:
        now = time.monotonic()
        hits = self._trim(key, now)
        if len(hits) < self.max_events:
            return 0
        return max(1, math.ceil(hits[0] + self.window_seconds - now))

    def reset(self, key: str) -> None:
        self._hits.pop(key, None)
