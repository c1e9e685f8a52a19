"""Health & Readiness Checks — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /api/health/ always returns 200 if process is up (liveness)
    - GET /api/health/ready returns 503 when the backend image source is
      active but no backend URL is configured (readiness)

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load balancer
    - Readiness checks configuration only; it does not call the backend
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from portfolio.api.dependencies import get_app_settings
from portfolio.config import Settings
from portfolio.core.domain_types import ImageSourceKind

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness check. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "portfolio-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(settings: Settings = Depends(get_app_settings)):
    """Readiness check: configuration of the active image source and backend."""
    backend_ok = settings.backend_configured
    checks = {
        "backend": "configured" if backend_ok else "not_configured",
        "image_source": settings.image_source.value,
    }
    if settings.image_source == ImageSourceKind.BACKEND and not backend_ok:
        logger.warning("Readiness failed: backend API not configured")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "backend_not_configured",
                "checks": checks,
            },
        )
    return {"status": "ready", "checks": checks}
