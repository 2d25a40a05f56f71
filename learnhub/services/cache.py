"""Read-through cache for learner progress.

Flow:  GET /v1/progress -> cache hit  -> return
                        -> cache miss -> store -> populate cache -> return

Two invalidation mechanisms work together:

  1. TTL (PROGRESS_CACHE_TTL): every entry expires on its own, so a
     missed invalidation only serves stale progress for a bounded time.

  2. Explicit delete: every complete/uncomplete/quiz mutation deletes
     the user's key right after persisting, so the next read is fresh.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from learnhub.core.metrics import CACHE_OPERATIONS
from learnhub.db.redis import redis_pool


def progress_key(user_id: str) -> str:
    return f"progress:{user_id}"


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL (time to live)."""
        ...

    async def delete(self, key: str) -> None:
        """Explicitly invalidate a cached entry."""
        ...


class InMemoryCacheService:
    """In-memory cache for dev and tests; TTL is not enforced.

    The autouse fixture in conftest.py clears the store between tests.
    """

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        value = self._store.get(key)
        CACHE_OPERATIONS.labels(operation="miss" if value is None else "hit").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)


class RedisCacheService:
    """Redis-backed cache shared across all API instances."""

    # Key prefix keeps cache keys apart from anything else in the instance
    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        value = await self._redis.get(f"{self._PREFIX}{key}")
        CACHE_OPERATIONS.labels(operation="miss" if value is None else "hit").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
