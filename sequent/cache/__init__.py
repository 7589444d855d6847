"""
Sequent cache: optional memoisation of resolved orders.

Backends:
- **memory**: in-process LRU with TTL (default)
- **null**: every lookup misses
- **redis**: shared across processes (``pip install sequent[redis]``)
"""

from .core import CacheBackend, CacheConfig, CacheEntry, CacheStats
from .backends.memory import MemoryBackend
from .backends.null import NullBackend
from .backends.redis import RedisBackend
from .service import ResolutionCache, create_cache, create_cache_backend

__all__ = [
    "CacheBackend",
    "CacheConfig",
    "CacheEntry",
    "CacheStats",
    "MemoryBackend",
    "NullBackend",
    "RedisBackend",
    "ResolutionCache",
    "create_cache",
    "create_cache_backend",
]
