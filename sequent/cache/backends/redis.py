"""
Sequent cache: Redis backend for sharing resolved orders across processes.

Values are stored as JSON. The ``redis`` package is an optional extra and
is imported on first connection only.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import time
from typing import Any, List, Optional

from ..core import CacheBackend, CacheEntry, CacheStats

logger = logging.getLogger("sequent.cache.redis")


class RedisBackend(CacheBackend):
    """
    Redis-backed cache using the synchronous redis-py client.

    Transient Redis failures are logged and reported as misses, so a
    resolution always falls back to computing the order.
    """

    __slots__ = ("_url", "_key_prefix", "_socket_timeout", "_redis", "_stats")

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        key_prefix: str = "sequent:",
        socket_timeout: float = 5.0,
        client: Optional[Any] = None,
    ):
        """
        Args:
            url: Redis connection URL
            key_prefix: Prefix for every stored key
            socket_timeout: Socket timeout in seconds
            client: Pre-built client exposing the redis-py API
        """
        self._url = url
        self._key_prefix = key_prefix
        self._socket_timeout = socket_timeout
        self._redis = client
        self._stats = CacheStats(backend="redis")

    @property
    def name(self) -> str:
        return "redis"

    @property
    def is_distributed(self) -> bool:
        return True

    def _client(self):
        if self._redis is None:
            try:
                import redis
            except ImportError:
                raise ImportError(
                    "Redis backend requires 'redis' package. "
                    "Install with: pip install sequent[redis]"
                )

            self._redis = redis.Redis.from_url(
                self._url,
                socket_timeout=self._socket_timeout,
                decode_responses=False,
            )
            logger.info("Redis cache configured: %s", self._url)
        return self._redis

    def _full_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def get(self, key: str) -> Optional[CacheEntry]:
        full_key = self._full_key(key)

        try:
            client = self._client()
            raw = client.get(full_key)
            if raw is None:
                self._stats.misses += 1
                return None

            value = json.loads(raw.decode("utf-8") if isinstance(raw, bytes) else raw)
            self._stats.hits += 1

            ttl = client.ttl(full_key)
            expires_at = None
            if ttl and ttl > 0:
                expires_at = time.monotonic() + ttl

            return CacheEntry(key=key, value=value, expires_at=expires_at)
        except ImportError:
            raise
        except Exception as e:
            logger.warning("Redis GET error for key '%s': %s", key, e)
            self._stats.misses += 1
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        full_key = self._full_key(key)

        try:
            client = self._client()
            serialized = json.dumps(value).encode("utf-8")
            if ttl and ttl > 0:
                client.setex(full_key, ttl, serialized)
            else:
                client.set(full_key, serialized)
            self._stats.sets += 1
        except ImportError:
            raise
        except Exception as e:
            logger.warning("Redis SET error for key '%s': %s", key, e)

    def delete(self, key: str) -> bool:
        try:
            deleted = self._client().delete(self._full_key(key))
        except ImportError:
            raise
        except Exception as e:
            logger.warning("Redis DELETE error for key '%s': %s", key, e)
            return False

        if deleted:
            self._stats.deletes += 1
            return True
        return False

    def _scan(self, match: str) -> List[str]:
        client = self._client()
        found: List[str] = []
        cursor = 0
        while True:
            cursor, batch = client.scan(cursor=cursor, match=match, count=1000)
            found.extend(k.decode("utf-8") if isinstance(k, bytes) else k for k in batch)
            if cursor == 0:
                break
        return found

    def clear(self) -> int:
        """Delete every key carrying this backend's prefix."""
        try:
            keys = self._scan(f"{self._key_prefix}*")
            if keys:
                self._client().delete(*keys)
            return len(keys)
        except ImportError:
            raise
        except Exception as e:
            logger.warning("Redis CLEAR error: %s", e)
            return 0

    def keys(self, pattern: str = "*") -> List[str]:
        try:
            found = self._scan(f"{self._key_prefix}{pattern}")
        except ImportError:
            raise
        except Exception as e:
            logger.warning("Redis KEYS error: %s", e)
            return []

        prefix_len = len(self._key_prefix)
        keys = [k[prefix_len:] for k in found if k.startswith(self._key_prefix)]
        if pattern != "*":
            keys = [k for k in keys if fnmatch.fnmatch(k, pattern)]
        return keys

    def stats(self) -> CacheStats:
        return self._stats

    def close(self) -> None:
        if self._redis is not None:
            self._redis.close()
            self._redis = None
