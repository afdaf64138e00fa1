"""GET /health — liveness check."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.settings import Settings, get_settings

router = APIRouter(tags=["health"])


@router.get("/health", summary="Basic health check")
def health_check(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {
        "status": "ok",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
        "store_backend": settings.store_backend,
    }
