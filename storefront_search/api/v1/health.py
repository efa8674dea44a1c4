"""Health check endpoints."""

from typing import Annotated, Any

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request
from sqlalchemy import text

from storefront_search.core.config import settings
from storefront_search.core.deps import DBSession, get_redis

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    request: Request,
    db: DBSession,
    redis_client: Annotated[aioredis.Redis, Depends(get_redis)],
) -> dict[str, Any]:
    """
    Health check endpoint.

    Checks database and Redis connectivity and reports embedding cache usage.
    """
    health_status: dict[str, Any] = {
        "status": "healthy",
        "version": settings.version,
        "environment": settings.environment,
        "checks": {},
    }

    # Check database connection
    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "healthy"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"

    # Check Redis connection (Celery broker)
    try:
        await redis_client.ping()
        health_status["checks"]["redis"] = "healthy"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["redis"] = f"unhealthy: {str(e)}"

    cache = getattr(request.app.state, "embedding_cache", None)
    if cache is not None:
        health_status["embedding_cache"] = {
            "entries": len(cache),
            "bytes": cache.total_bytes,
        }

    return health_status


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """
    Liveness probe for container orchestration.

    Simple check that the service is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(db: DBSession) -> dict[str, str]:
    """
    Readiness probe for container orchestration.

    Checks if the service is ready to receive traffic.
    """
    await db.execute(text("SELECT 1"))

    return {"status": "ready"}
