"""Health & Readiness Checks: liveness and readiness endpoints.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if database is unreachable (readiness)
    - Readiness reports whether the auth hook is enabled, never the token
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from dislink.api.dependencies import AppSettings
from dislink.infrastructure import database

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": "dislink-qr-api", "version": "1.0.0"}


@router.get("/ready")
async def readiness_check(settings: AppSettings):
    """Database connectivity gates readiness; email and hook setup are reported."""
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {
        "status": "ready",
        "checks": {
            "database": "healthy",
            "email_provider": settings.email_provider,
            "internal_hook": "enabled" if settings.internal_hook_token else "disabled",
        },
    }
