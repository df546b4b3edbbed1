"""Read-through cache for per-user progress rollups.

Monthly progress and the overview are recomputed from the login log and
every progress record of a user, so they are cached under
progress:{user_id}:... with a TTL.  Any write for that user deletes
progress:{user_id}:* so the next read recomputes; the TTL bounds
staleness if an invalidation is ever missed.

The cache is optional: a Redis failure is logged and counted as an
"error" operation, reads fall back to computing the value, and a failed
invalidation never fails the write that triggered it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from redis.exceptions import RedisError

from app.core.metrics import CACHE_OPERATIONS
from app.db.redis import redis_pool

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL."""
        ...

    async def delete(self, key: str) -> None: ...

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching a glob pattern (e.g. 'progress:u1:*')."""
        ...


class InMemoryCacheService:
    """In-process cache without TTL enforcement, for dev and tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_pattern(self, pattern: str) -> None:
        prefix = pattern.rstrip("*")
        for k in [k for k in self._store if k.startswith(prefix)]:
            del self._store[k]


class RedisCacheService:
    """Redis-backed cache shared across API instances."""

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")

    async def delete_pattern(self, pattern: str) -> None:
        # SCAN, not KEYS: KEYS blocks the server for the whole keyspace
        cursor = 0
        while True:
            cursor, keys = await self._redis.scan(
                cursor, match=f"{self._PREFIX}{pattern}", count=100
            )
            if keys:
                await self._redis.delete(*keys)
            if cursor == 0:
                break


def user_key(user_id: str, *parts: str) -> str:
    return ":".join(("progress", user_id, *parts))


async def read_through(
    cache: CacheService,
    key: str,
    ttl_seconds: int,
    compute: Callable[[], Awaitable[Any]],
) -> Any:
    """Return the JSON value cached under key, computing and storing it on a miss."""
    try:
        cached = await cache.get(key)
    except RedisError as e:
        CACHE_OPERATIONS.labels(operation="error").inc()
        logger.warning("Cache read failed key=%s: %s", key, e)
        return await compute()

    if cached is not None:
        CACHE_OPERATIONS.labels(operation="hit").inc()
        return json.loads(cached)

    CACHE_OPERATIONS.labels(operation="miss").inc()
    value = await compute()
    if ttl_seconds > 0:
        try:
            await cache.set(key, json.dumps(value, default=str), ttl_seconds)
        except RedisError as e:
            CACHE_OPERATIONS.labels(operation="error").inc()
            logger.warning("Cache write failed key=%s: %s", key, e)
    return value


async def invalidate_user(cache: CacheService, user_id: str) -> None:
    """Drop every cached rollup of user_id; failures are logged, not raised."""
    try:
        await cache.delete_pattern(user_key(user_id, "*"))
    except RedisError as e:
        CACHE_OPERATIONS.labels(operation="error").inc()
        logger.warning("Cache invalidation failed user=%s: %s", user_id, e)
        return
    logger.debug("Invalidated progress cache user=%s", user_id)


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
