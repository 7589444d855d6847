"""
Sequent cache: core types and the backend contract.

The cache stores resolved orders as opaque values under caller-chosen keys.
It never inspects or hashes the declarations that produced them.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# ============================================================================
# Cache Entry
# ============================================================================

@dataclass
class CacheEntry:
    """Single cache entry with expiry metadata."""
    key: str
    value: Any
    created_at: float = field(default_factory=time.monotonic)
    expires_at: Optional[float] = None
    access_count: int = 0

    @property
    def is_expired(self) -> bool:
        """Check if entry has expired."""
        if self.expires_at is None:
            return False
        return time.monotonic() >= self.expires_at

    @property
    def ttl_remaining(self) -> Optional[float]:
        """Remaining TTL in seconds, or None if no expiry."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    def touch(self) -> None:
        self.access_count += 1

    def __repr__(self) -> str:
        ttl = f", ttl={self.ttl_remaining:.1f}s" if self.ttl_remaining else ""
        return f"<CacheEntry key={self.key!r} hits={self.access_count}{ttl}>"


# ============================================================================
# Cache Stats
# ============================================================================

@dataclass
class CacheStats:
    """Aggregate cache statistics."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0
    backend: str = "unknown"

    @property
    def hit_rate(self) -> float:
        """Cache hit rate as a percentage."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return (self.hits / total) * 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "evictions": self.evictions,
            "hit_rate": round(self.hit_rate, 2),
            "size": self.size,
            "max_size": self.max_size,
            "backend": self.backend,
        }


# ============================================================================
# Cache Configuration
# ============================================================================

@dataclass
class CacheConfig:
    """
    Resolution cache configuration.

    Loaded from the ``cache`` section of the Sequent config.
    """
    enabled: bool = False
    backend: str = "memory"          # "memory", "redis", "null"
    default_ttl: Optional[int] = None  # Seconds; None keeps entries until invalidated
    max_size: int = 128              # Max entries for memory backend
    key: str = "sequent.order"       # Key the discovered order is stored under
    key_prefix: str = "sequent:"     # Prefix for every stored key
    redis_url: str = "redis://localhost:6379/0"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "enabled": self.enabled,
            "backend": self.backend,
            "default_ttl": self.default_ttl,
            "max_size": self.max_size,
            "key": self.key,
            "key_prefix": self.key_prefix,
            "redis_url": self.redis_url,
        }


# ============================================================================
# Cache Backend Protocol
# ============================================================================

class CacheBackend(ABC):
    """
    Abstract cache backend, the storage contract.

    Backends are responsible for their own eviction and TTL enforcement.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry]:
        """
        Retrieve entry by key.

        Returns None if key doesn't exist or has expired.
        """
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Store a value with optional TTL.

        Args:
            key: Cache key
            value: Value to store
            ttl: Time-to-live in seconds (None = no expiry)
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Delete entry by key.

        Returns True if the key existed and was deleted.
        """
        ...

    @abstractmethod
    def clear(self) -> int:
        """
        Clear all entries.

        Returns:
            Number of entries cleared.
        """
        ...

    def exists(self, key: str) -> bool:
        """Check if key exists and is not expired."""
        return self.get(key) is not None

    @abstractmethod
    def keys(self, pattern: str = "*") -> List[str]:
        """List keys matching a glob-style pattern."""
        ...

    @abstractmethod
    def stats(self) -> CacheStats:
        """Get backend statistics."""
        ...

    def close(self) -> None:
        """Release backend resources."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for diagnostics."""
        ...

    @property
    def is_distributed(self) -> bool:
        """Whether this backend is shared across processes."""
        return False
