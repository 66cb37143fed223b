"""TTL cache for discovery results (node types, credential types)."""
from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple


class DiscoveryCache:
    """
    In-memory cache with a per-entry deadline.

    Empty results are never stored: an empty list usually means every
    endpoint candidate failed, and the next call should try again.
    """

    def __init__(self, default_ttl: float = 3600.0, clock: Callable[[], float] = time.monotonic):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        if value in (None, [], {}):
            return
        self._entries[key] = (self._clock() + (ttl or self.default_ttl), value)

    async def get_or_load(
        self, key: str, loader: Callable[[], Awaitable[Any]]
    ) -> Tuple[Any, bool]:
        """Return ``(value, cached)``, calling ``loader`` on a miss."""
        cached = self.get(key)
        if cached is not None:
            return cached, True
        value = await loader()
        self.set(key, value)
        return value, False

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
        }
