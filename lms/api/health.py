"""Health and readiness endpoints.

/health is the liveness probe: it answers 200 while the process can
respond and reports each dependency under `checks`.  /ready answers 503
when PostgreSQL is configured but unreachable, so the load balancer
stops routing here until it recovers.  Redis is never critical: the
cache and queue have in-memory fallbacks.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from lms.db import engine as db_engine
from lms.db.redis import redis_pool
from lms.wiring import deadline_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
        return "ok"
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"


async def _check_database() -> str:
    if db_engine.engine is None:
        return "not_configured"
    try:
        async with db_engine.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "ok"
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"


@router.get("/health")
async def health() -> dict:
    """Liveness probe plus dependency status.

    Returns 200 even when degraded; the `status` field carries the
    actual health.
    """
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
        "scheduler": "running" if deadline_scheduler.running else "stopped",
    }
    degraded = any(v == "degraded" for v in checks.values())
    return {"status": "degraded" if degraded else "ok", "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
