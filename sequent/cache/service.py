"""
Sequent cache: ResolutionCache, the high-level API over a backend.

Memoises resolved orders under caller-controlled keys. A disabled cache
turns every call into a no-op, so resolution behaves identically, just
uncached.

Usage::

    cache = create_cache(CacheConfig(enabled=True))
    discovery = ComponentDiscovery(["modules"], cache=cache)
    discovery.discover()        # scans and stores
    discovery.discover()        # served from the cache
    discovery.clear_cache()     # next call scans again
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..errors import CacheConfigError
from .backends.memory import MemoryBackend
from .backends.null import NullBackend
from .core import CacheBackend, CacheConfig

logger = logging.getLogger("sequent.cache")


class ResolutionCache:
    """
    Stores resolved orders as opaque lists.

    Keys are never derived from declaration content; invalidating after a
    declaration change is the caller's job.
    """

    __slots__ = ("_backend", "_enabled", "_default_ttl")

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        *,
        enabled: bool = True,
        default_ttl: Optional[int] = None,
    ):
        self._backend = backend if backend is not None else MemoryBackend()
        self._enabled = enabled
        self._default_ttl = default_ttl

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    @property
    def enabled(self) -> bool:
        return self._enabled

    def get(self, key: str) -> Optional[List[str]]:
        """Cached order for ``key``, or None on a miss."""
        if not self._enabled:
            return None

        entry = self._backend.get(key)
        if entry is None or not isinstance(entry.value, list):
            logger.debug("Resolution cache miss: %s", key)
            return None

        logger.debug("Resolution cache hit: %s", key)
        return list(entry.value)

    def put(self, key: str, order: Sequence[str], ttl: Optional[int] = None) -> None:
        """Store ``order`` under ``key``."""
        if not self._enabled:
            return
        self._backend.set(key, list(order), ttl=ttl if ttl is not None else self._default_ttl)
        logger.debug("Resolution cached: %s (%d components)", key, len(order))

    def invalidate(self, key: str) -> bool:
        """Drop the entry for ``key``. Returns True if one was stored."""
        if not self._enabled:
            return False
        removed = self._backend.delete(key)
        logger.debug("Resolution cache invalidated: %s", key)
        return removed

    def __repr__(self) -> str:
        state = "enabled" if self._enabled else "disabled"
        return f"ResolutionCache({self._backend.name}, {state})"


def create_cache_backend(config: CacheConfig) -> CacheBackend:
    """
    Factory: create cache backend from configuration.

    Raises:
        CacheConfigError: If the backend is unknown or misconfigured
    """
    backend_type = str(config.backend).lower()

    if backend_type == "memory":
        if config.max_size < 1:
            raise CacheConfigError(f"max_size must be at least 1, got {config.max_size}")
        return MemoryBackend(max_size=config.max_size)

    elif backend_type == "redis":
        from .backends.redis import RedisBackend

        return RedisBackend(url=config.redis_url, key_prefix=config.key_prefix)

    elif backend_type == "null":
        return NullBackend()

    raise CacheConfigError(f"unknown backend '{config.backend}'")


def create_cache(config: CacheConfig) -> ResolutionCache:
    """Factory: create ResolutionCache from configuration."""
    if not config.enabled:
        return ResolutionCache(NullBackend(), enabled=False)
    return ResolutionCache(
        create_cache_backend(config),
        enabled=True,
        default_ttl=config.default_ttl,
    )
