"""
TTL Cache: Short-Lived Results Keyed by Namespace

Holds decoded metadata documents and aggregate results (stars,
sharing table, short links, recent activity, usage) for a few seconds
so bursts of reads share one store round trip.

Design:
    - One entry per namespace; a put replaces the entry
    - Entries expire ttl_seconds after they were written
    - Any mutation clears every namespace (invalidate_all)
    - Injected monotonic clock so expiry is testable
    - threading.Lock guard: safe from any thread or task
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from objectdrive.core.constants import CACHE_TTL_SECONDS


# =============================================================================
# CACHE ENTRY
# =============================================================================
@dataclass(frozen=True, slots=True)
class CacheEntry:
    namespace: str
    value: Any
    written_at: float


@dataclass(slots=True)
class CacheStats:
    """Cache performance statistics."""
    hits: int = 0
    misses: int = 0
    expirations: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        """Cache hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


# =============================================================================
# TTL CACHE
# =============================================================================
class TTLCache:
    """
    Namespace-keyed cache with a single TTL.

    Usage:
        cache = TTLCache(ttl_seconds=5.0)
        cached = cache.get("stars")
        if cached is None:
            cached = await load_stars()
            cache.put("stars", cached)
    """

    __slots__ = ("_ttl", "_clock", "_entries", "_lock", "_stats")

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._stats = CacheStats()

    def get(self, namespace: str) -> Optional[Any]:
        """Cached value, or None when absent or older than the TTL."""
        with self._lock:
            entry = self._entries.get(namespace)
            if entry is None:
                self._stats.misses += 1
                return None
            if self._clock() - entry.written_at >= self._ttl:
                del self._entries[namespace]
                self._stats.expirations += 1
                self._stats.misses += 1
                return None
            self._stats.hits += 1
            return entry.value

    def put(self, namespace: str, value: Any) -> None:
        with self._lock:
            self._entries[namespace] = CacheEntry(
                namespace=namespace,
                value=value,
                written_at=self._clock(),
            )

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()
            self._stats.invalidations += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def stats(self) -> CacheStats:
        return self._stats
