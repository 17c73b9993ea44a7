"""Cache service: read-through template cache, dedup keys, quiz timers.

The cache is never the source of truth.  Losing an entry costs a
re-read (templates), a possible duplicate notification (dedup keys) or
an unchecked quiz timer; nothing else.

Entries expire by TTL and are also deleted explicitly when the data
behind them changes.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from lms.core.clock import Clock, utcnow
from lms.db.redis import redis_pool


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on miss or expiry."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL."""
        ...

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Atomically store a value unless the key exists.  True if stored."""
        ...

    async def delete(self, key: str) -> None:
        """Explicitly invalidate a cached entry."""
        ...

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching a glob pattern (e.g. 'notification:abc:*')."""
        ...


class InMemoryCacheService:
    """Process-local cache with TTL enforced against an injectable clock."""

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._store: dict[str, tuple[str, datetime]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._store[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = (value, self._clock() + timedelta(seconds=ttl_seconds))

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        # no suspension point between check and write
        now = self._clock()
        entry = self._store.get(key)
        if entry is not None and now < entry[1]:
            return False
        self._store[key] = (value, now + timedelta(seconds=ttl_seconds))
        return True

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_pattern(self, pattern: str) -> None:
        prefix = pattern.rstrip("*")
        for k in [k for k in self._store if k.startswith(prefix)]:
            del self._store[k]


class RedisCacheService:
    """Redis-backed cache shared by all API instances and the worker."""

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        stored = await self._redis.set(
            f"{self._PREFIX}{key}", value, ex=ttl_seconds, nx=True
        )
        return bool(stored)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")

    async def delete_pattern(self, pattern: str) -> None:
        # SCAN rather than KEYS so a large keyspace never blocks Redis
        cursor = 0
        while True:
            cursor, keys = await self._redis.scan(
                cursor, match=f"{self._PREFIX}{pattern}", count=100
            )
            if keys:
                await self._redis.delete(*keys)
            if cursor == 0:
                break


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
