"""Redis connection management.

Mirrors engine.py: with REDIS_URL set, a connection pool backs the
progress read cache; without it (local dev, tests) the cache falls back
to an in-memory dict and no Redis server is needed.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from learnhub.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,  # str instead of bytes; cached values are JSON text
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Verify connectivity on startup and close the pool on shutdown."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured, progress cache is in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected")
    except Exception:
        # Start anyway; cache calls will fail loudly per request instead.
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
