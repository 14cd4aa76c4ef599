"""
Health check endpoints - used by load balancers, Docker healthcheck, and monitoring.

- GET /health       - basic liveness (always 200 if app running)
- GET /health/ready - readiness check (store backend + Redis when enabled)
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from bizintel.config import get_settings
from bizintel.storage.factory import get_backend

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

APP_VERSION = "1.0.0"


@router.get("/health")
async def health_check():
    """Basic liveness check - returns 200 if the app is running."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": APP_VERSION,
    }


@router.get("/health/ready")
async def readiness_check():
    """
    Readiness check - verifies the shared store is reachable.
    Redis is only checked when rate limiting or redelivery dedup needs it.
    """
    settings = get_settings()
    checks = {"storage": False}

    backend = get_backend()
    try:
        checks["storage"] = await backend.ping()
    except Exception as e:
        logger.error("Storage health check failed: %s", str(e), extra={"backend": backend.name})

    if settings.redis_required:
        checks["redis"] = False
        try:
            from bizintel.utils.dedup import get_redis
            redis = await get_redis()
            await redis.ping()
            checks["redis"] = True
        except Exception as e:
            logger.warning("Redis health check failed: %s", str(e))

    all_healthy = all(checks.values())
    return {
        "status": "ready" if all_healthy else "degraded",
        "backend": backend.name,
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
