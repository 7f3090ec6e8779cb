"""Health check endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends

from faceroster.core.config import Settings, get_settings

router = APIRouter(prefix="/health", tags=["health"])
logger = structlog.get_logger(__name__)


@router.get("")
async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with service name.
    """
    return {
        "data": {
            "status": "healthy",
            "service": "faceroster-backend",
        }
    }


@router.get("/ready")
async def readiness_check(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Readiness check reporting which collaborators are configured.

    Merge suggestions are advisory, so a missing Gemini key does not make
    the service unready.
    """
    checks: dict[str, bool] = {
        "supabase_configured": settings.is_configured,
        "gemini_configured": settings.is_gemini_configured,
    }
    ready = checks["supabase_configured"]

    logger.debug("readiness_check", checks=checks, ready=ready)

    return {
        "data": {
            "status": "ready" if ready else "not_ready",
            "checks": checks,
        }
    }
