from __future__ import annotations

import copy
import json
import time
from typing import Any, Callable, Protocol

import redis
import structlog
from cachetools import TLRUCache  # type: ignore[import-untyped]

from noticeguard.config import Settings, get_settings

logger = structlog.get_logger()


class PatternCache(Protocol):
    """Key-value cache with per-entry TTL."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: int = 3600) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryCache:
    """In-process cache; entries expire after the TTL given to ``set``."""

    def __init__(
        self,
        maxsize: int = 1024,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TLRUCache = TLRUCache(
            maxsize=maxsize,
            ttu=lambda _key, entry, now: now + entry[1],
            timer=timer,
        )

    def get(self, key: str) -> Any | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        return copy.deepcopy(entry[0])

    def set(self, key: str, value: Any, ttl: int = 3600) -> None:
        self._cache[key] = (copy.deepcopy(value), ttl)

    def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()


class RedisCache:
    """Redis-based cache shared between processes."""

    def __init__(
        self,
        redis_url: str,
        max_connections: int = 50,
        redis_client: redis.Redis | None = None,
    ) -> None:
        self._redis_url = redis_url
        self._pool: redis.ConnectionPool | None = None
        self._client: redis.Redis | None = redis_client

        if redis_client is None:
            self._pool = redis.ConnectionPool.from_url(
                redis_url,
                max_connections=max_connections,
                decode_responses=True,
            )

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis(connection_pool=self._pool)
        return self._client

    def get(self, key: str) -> Any | None:
        """Get value from cache."""
        value = self._get_client().get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    def set(self, key: str, value: Any, ttl: int = 3600) -> None:
        """Set value in cache with TTL in seconds."""
        serialized = json.dumps(value) if not isinstance(value, str) else value
        self._get_client().setex(key, ttl, serialized)

    def delete(self, key: str) -> None:
        """Delete key from cache."""
        self._get_client().delete(key)

    def close(self) -> None:
        """Close Redis connection."""
        if self._client is not None:
            self._client.close()
        if self._pool is not None:
            self._pool.disconnect()


def build_cache(settings: Settings | None = None) -> PatternCache:
    """Pick the cache backend named in settings."""
    cfg = settings or get_settings()
    if cfg.cache_backend == "redis":
        return RedisCache(cfg.redis_url, cfg.redis_max_connections)
    if cfg.cache_backend == "memory":
        return MemoryCache()

    raise ValueError(f"Unsupported cache backend: {cfg.cache_backend}")
