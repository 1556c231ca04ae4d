"""
Road Trip Planner Backend — Read-Through TTL Cache
==================================================

What:  Process-local map of normalized request key → {result, fetched_at}.
Why:   Weather/places/route lookups are slow, metered upstream calls whose
       answers change slowly.
How:   get() is a hit iff `now - fetched_at < ttl`. Expired entries are left
       in place and overwritten by the next set(); there is no proactive
       eviction, so memory grows with the number of distinct keys.

Scaling Note:
    Per-process. A shared TTL store (Redis SETEX) can replace it behind the
    same get/set contract for multi-instance deployments.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    result: T
    fetched_at: float


class TTLCache(Generic[T]):
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}

    @staticmethod
    def make_key(*parts: Any) -> str:
        """Lowercased, trimmed parts joined with '|': ("Paris ", 3) → "paris|3"."""
        return "|".join(str(part).strip().lower() for part in parts)

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at < self.ttl_seconds:
            return entry.result
        return None

    def set(self, key: str, result: T) -> None:
        self._entries[key] = CacheEntry(result=result, fetched_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
