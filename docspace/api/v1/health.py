"""
Health check endpoints.
"""
from typing import Any, Dict

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from docspace.core.config import settings
from docspace.core.events import check_database_health, check_redis_health
from docspace.core.models import utc_now

router = APIRouter()


@router.get("/health/live")
async def liveness_check():
    """Liveness check for Kubernetes."""
    return {"status": "alive", "timestamp": utc_now().isoformat()}


@router.get("/health/detailed")
async def detailed_health_check():
    """Detailed health check with dependency status."""
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "version": settings.app_version,
        "checks": {},
    }

    overall_healthy = True
    for name, check in (("database", check_database_health), ("redis", check_redis_health)):
        healthy, message = await check()
        health_status["checks"][name] = {
            "status": "healthy" if healthy else "unhealthy",
            "message": message,
        }
        overall_healthy = overall_healthy and healthy

    if not overall_healthy:
        health_status["status"] = "unhealthy"
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=health_status)

    return health_status
