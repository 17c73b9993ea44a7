"""Redis connection management.

Mirrors engine.py: a pool when REDIS_URL is configured, None otherwise.
Consumers (cache, task queue, health check) fall back to in-memory
implementations when `redis_pool` is None.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from lms.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis.

    An unreachable Redis is logged but does not stop startup; the cache
    is never authoritative, so the service keeps serving.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, cache and queue are in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
