"""Health and readiness endpoints.

  /health (liveness): is the process alive?  Always 200; the ``status``
      field reports "degraded" when a backing service is unreachable.

  /ready (readiness): can this instance serve progress writes?  The
      progress store is critical, so a configured-but-unreachable
      database makes this 503 and the load balancer stops routing here.
      Redis is only a cache, so it never affects readiness.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from learnhub.api.dependencies import catalog_repo
from learnhub.db.engine import engine
from learnhub.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_database() -> str:
    if engine is None:
        return "not_configured"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "ok"
    except Exception:
        logger.exception("Database health check failed")
        return "degraded"


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
        return "ok"
    except Exception:
        logger.exception("Redis health check failed")
        return "degraded"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {
        "status": overall,
        "checks": checks,
        "catalog": {"published_courses": len(catalog_repo.list_published())},
    }


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
