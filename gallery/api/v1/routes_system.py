from __future__ import annotations

from fastapi import APIRouter

from gallery.api.deps import SettingsDependency

from .schemas import HealthResponse


router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health(settings: SettingsDependency) -> HealthResponse:
    return HealthResponse(version=settings.version, environment=settings.environment)


__all__ = ["router"]
