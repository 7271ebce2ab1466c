from __future__ import annotations

import subprocess

from fastapi import APIRouter
from PIL import features

from gallery.api.deps import AdminDependency, SettingsDependency

from .schemas import EnvCheckResponse


router = APIRouter(prefix="/admin", tags=["admin"])


def _probe_binary(command: list[str]) -> bool:
    try:
        subprocess.run(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=True)
        return True
    except (OSError, subprocess.CalledProcessError):
        return False


@router.get("/env-check", response_model=EnvCheckResponse, summary="Validate imaging toolchain")
async def env_check(context: AdminDependency, settings: SettingsDependency) -> EnvCheckResponse:
    return EnvCheckResponse(
        ffmpeg=_probe_binary([settings.ffmpeg_binary, "-version"]),
        ffprobe=_probe_binary([settings.ffprobe_binary, "-version"]),
        webp=bool(features.check("webp")),
    )


__all__ = ["router"]
