"""Health check endpoints."""

import redis
from fastapi import APIRouter

from learnpath.config import get_settings
from learnpath.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness() -> dict[str, str | bool]:
    """Readiness probe - checks if the progress cache is usable."""
    settings = get_settings()
    cache_ready = True
    if settings.cache_backend == "redis":
        client = get_redis()
        try:
            cache_ready = client is not None and bool(client.ping())
        except redis.RedisError:
            cache_ready = False
    return {
        "status": "ready" if cache_ready else "degraded",
        "environment": settings.environment,
        "debug": settings.debug,
        "cache_backend": settings.cache_backend,
        "cache_ready": cache_ready,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
