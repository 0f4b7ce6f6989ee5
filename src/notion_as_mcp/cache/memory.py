from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Optional

from notion_as_mcp.cache.base import CacheEntry, CacheStats, validate_ttl

_module_logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 10000


class MemoryCache:
    """
    Bounded in-process tier.

    A single lock guards the map and the counters. No critical section awaits. When
    full, inserting a new key evicts the entry closest to expiry.
    """

    def __init__(
        self,
        *,
        max_items: int = DEFAULT_MAX_ITEMS,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_items < 1:
            raise ValueError(f"max_items must be at least 1, got: {max_items}")
        self._max_items = max_items
        self._clock = clock
        self._logger = logger or _module_logger
        self._lock = threading.Lock()
        self._items: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._bytes_used = 0

    async def get(self, key: str) -> Optional[bytes]:
        now = self._clock()
        with self._lock:
            entry = self._items.get(key)
            if entry is None:
                self._misses += 1
                return None
            if not entry.is_valid(now):
                self._remove_locked(key)
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    async def set(self, key: str, value: bytes, ttl_seconds: float) -> None:
        ttl = validate_ttl(ttl_seconds)
        now = self._clock()
        entry = CacheEntry(key=key, value=bytes(value), created_at=now, expires_at=now + ttl)
        with self._lock:
            if key in self._items:
                self._remove_locked(key)
            elif len(self._items) >= self._max_items:
                self._evict_nearest_expiry_locked()
            self._items[key] = entry
            self._bytes_used += len(entry.value)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._remove_locked(key)

    async def has(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            entry = self._items.get(key)
            if entry is None:
                return False
            if not entry.is_valid(now):
                self._remove_locked(key)
                return False
            return True

    async def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._bytes_used = 0
            self._hits = 0
            self._misses = 0

    async def close(self) -> None:
        await self.clear()

    def entry(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry without touching statistics or expiry."""
        with self._lock:
            return self._items.get(key)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                items=len(self._items),
                bytes_used=self._bytes_used,
            )

    def _remove_locked(self, key: str) -> None:
        entry = self._items.pop(key, None)
        if entry is not None:
            self._bytes_used -= len(entry.value)

    def _evict_nearest_expiry_locked(self) -> None:
        if not self._items:
            return
        victim = min(self._items.values(), key=lambda item: item.expires_at)
        self._remove_locked(victim.key)
        self._logger.debug("Memory cache evicted entry. key=%s", victim.key)
