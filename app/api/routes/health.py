"""Health check endpoints for monitoring application status."""

import time

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_click_tracker
from app.core.config import settings
from app.core.redis import redis_manager
from app.db.base import DatabaseHealthCheck
from app.services.tracker import ClickTracker

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Get system health status",
    response_description="Health status of all system components"
)
async def health_check(tracker: ClickTracker = Depends(get_click_tracker)):
    """Check health of all system components."""
    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "components": {}
    }

    database = await DatabaseHealthCheck.check_connection()
    health_status["components"]["database"] = database
    if database["status"] != "healthy":
        health_status["status"] = "degraded"

    # Redis is optional: the cache fails open, so an outage only degrades
    if redis_manager.is_enabled:
        start_time = time.time()
        if await redis_manager.ping():
            health_status["components"]["redis"] = {
                "status": "healthy",
                "latency_ms": round((time.time() - start_time) * 1000, 2)
            }
        else:
            health_status["status"] = "degraded"
            health_status["components"]["redis"] = {
                "status": "unhealthy",
                "error": "Redis ping failed"
            }
    else:
        health_status["components"]["redis"] = {"status": "disabled"}

    health_status["components"]["click_tracker"] = {
        "status": "running" if tracker.is_running else "stopped",
        "queue_depth": tracker.queue_depth,
        **tracker.stats,
    }

    return health_status


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness probe",
    response_description="Application readiness status"
)
async def readiness_probe():
    """Check if application is ready to handle requests."""
    database = await DatabaseHealthCheck.check_connection()
    components_status = {"api": True, "database": database["status"] == "healthy"}

    return {
        "ready": all(components_status.values()),
        "components": components_status
    }


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    response_description="Application liveness status"
)
async def liveness_probe():
    """Simple check that application is running."""
    return {"alive": True}
