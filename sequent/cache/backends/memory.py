"""
Sequent cache: in-memory backend.

Bounded LRU over an OrderedDict with lazy TTL expiry. Entries are checked
for expiry on access; there is no background sweeper.
"""

from __future__ import annotations

import fnmatch
import logging
import time
from collections import OrderedDict
from typing import Any, List, Optional

from ..core import CacheBackend, CacheEntry, CacheStats

logger = logging.getLogger("sequent.cache.memory")


class MemoryBackend(CacheBackend):
    """
    In-process cache backend with LRU eviction.

    O(1) get/set/delete via OrderedDict. Not shared between processes and
    not locked; one instance serves one resolution scope.
    """

    __slots__ = ("_max_size", "_store", "_stats")

    def __init__(self, max_size: int = 128):
        """
        Initialize memory backend.

        Args:
            max_size: Maximum number of entries (least recently used is
                evicted first)
        """
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self._max_size = max_size
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._stats = CacheStats(max_size=max_size, backend="memory")

    @property
    def name(self) -> str:
        return "memory"

    def get(self, key: str) -> Optional[CacheEntry]:
        """O(1) lookup with LRU promotion."""
        entry = self._store.get(key)
        if entry is None:
            self._stats.misses += 1
            return None

        if entry.is_expired:
            del self._store[key]
            self._stats.evictions += 1
            self._stats.misses += 1
            return None

        entry.touch()
        self._store.move_to_end(key)
        self._stats.hits += 1
        return entry

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """O(1) insert, evicting the least recently used entry at capacity."""
        self._store.pop(key, None)

        while len(self._store) >= self._max_size:
            evicted, _ = self._store.popitem(last=False)
            self._stats.evictions += 1
            logger.debug("Evicted cache entry %s", evicted)

        expires_at = None
        if ttl is not None and ttl > 0:
            expires_at = time.monotonic() + ttl

        self._store[key] = CacheEntry(key=key, value=value, expires_at=expires_at)
        self._stats.sets += 1

    def delete(self, key: str) -> bool:
        if key in self._store:
            del self._store[key]
            self._stats.deletes += 1
            return True
        return False

    def clear(self) -> int:
        count = len(self._store)
        self._store.clear()
        return count

    def keys(self, pattern: str = "*") -> List[str]:
        """List live keys matching glob pattern."""
        live = [k for k, entry in self._store.items() if not entry.is_expired]
        if pattern == "*":
            return live
        return [k for k in live if fnmatch.fnmatch(k, pattern)]

    def stats(self) -> CacheStats:
        self._stats.size = len(self._store)
        return self._stats

    def __len__(self) -> int:
        return len(self._store)
