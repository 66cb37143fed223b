from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict


class RateLimitExceeded(RuntimeError):
    """Raised when an actor exceeds their per-minute tool call budget."""

    def __init__(self, actor: str, retry_after: float):
        super().__init__(f"rate_limit_exceeded for {actor}, retry in {retry_after:.1f}s")
        self.actor = actor
        self.retry_after = retry_after


class RateLimiter:
    """Sliding one-minute window per actor."""

    window_seconds = 60.0

    def __init__(self, max_per_minute: int, clock: Callable[[], float] = time.monotonic) -> None:
        if max_per_minute <= 0:
            raise ValueError("max_per_minute must be positive")
        self.max_per_minute = max_per_minute
        self._clock = clock
        self._buckets: Dict[str, Deque[float]] = defaultdict(deque)

    def _drain(self, actor: str, now: float) -> Deque[float]:
        bucket = self._buckets[actor]
        window_start = now - self.window_seconds
        while bucket and bucket[0] <= window_start:
            bucket.popleft()
        return bucket

    def check(self, actor: str) -> None:
        now = self._clock()
        bucket = self._drain(actor, now)
        if len(bucket) >= self.max_per_minute:
            raise RateLimitExceeded(actor, bucket[0] + self.window_seconds - now)
        bucket.append(now)

    def remaining(self, actor: str) -> int:
        bucket = self._drain(actor, self._clock())
        return max(0, self.max_per_minute - len(bucket))
