from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Secrets(BaseSettings):
    """Secrets configuration, loaded from the environment or a secrets management service."""

    model_config = SettingsConfigDict(
        env_prefix="GALLERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(default="change-me", description="Signing secret for admin bearer tokens.")


class Settings(BaseSettings):
    """Centralised runtime configuration for the gallery ingestion service."""

    model_config = SettingsConfigDict(
        env_prefix="GALLERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Gallery Suite API"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./gallery.db",
        description="SQLAlchemy compatible DSN.",
    )

    storage_root: Path = Field(
        default_factory=lambda: Path("."),
        description="Directory holding the uploads/ tree (media, thumbs, covers, temp).",
    )
    max_upload_size_bytes: int = Field(default=50 * 1024**3, description="Hard limit for a single uploaded file.")

    display_max_edge: int = Field(default=2048, ge=64, description="Long-edge bound for display derivatives.")
    display_quality: int = Field(default=85, ge=1, le=100)
    thumbnail_width: int = Field(default=400, ge=16)
    thumbnail_height: int = Field(default=300, ge=16)
    thumbnail_quality: int = Field(default=80, ge=1, le=100)
    cover_width: int = Field(default=800, ge=16)
    cover_height: int = Field(default=600, ge=16)
    cover_quality: int = Field(default=85, ge=1, le=100)

    ffmpeg_binary: str = Field(default="ffmpeg")
    ffprobe_binary: str = Field(default="ffprobe")
    video_placeholder_path: Optional[Path] = Field(
        default=None,
        description="Image used as a video thumbnail source when frame extraction fails.",
    )

    independent_studio_slug: str = Field(default="independent", description="Directory key for models without a studio.")
    set_name_policy: Literal["merge", "suffix"] = Field(
        default="merge",
        description="merge reuses a model's set with the same name; suffix always creates a new set.",
    )

    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for JWT tokens.")
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()

    @property
    def upload_temp_dir(self) -> Path:
        return self.storage_root / "uploads" / "temp"


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "GALLERY_ENV": "GALLERY_ENVIRONMENT",
        "GALLERY_DB_URL": "GALLERY_DATABASE_URL",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value:
            os.environ[target] = value

    settings = Settings()
    secrets = Secrets()

    if settings.environment_lower == "production" and secrets.jwt_secret == "change-me":
        raise ValueError("Production environment must have a non-default JWT secret.")

    settings.secrets = secrets
    return settings


__all__ = ["Secrets", "Settings", "get_settings"]
