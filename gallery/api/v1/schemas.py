from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response bodies use camelCase keys, as the gallery front end expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    status: str = Field(default="ok", description="Health status indicator.")
    version: str
    environment: str
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EnvCheckResponse(BaseModel):
    ffmpeg: bool
    ffprobe: bool
    webp: bool


class UploadSetSummary(CamelModel):
    name: str
    id: int
    slug: str
    created: bool
    processed: int
    skipped: int


class UploadResponse(CamelModel):
    success: bool
    message: str
    sets_created: int = Field(json_schema_extra={"example": 2})
    files_processed: int = Field(json_schema_extra={"example": 48})
    files_skipped: int = Field(json_schema_extra={"example": 3})
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    sets: List[UploadSetSummary] = Field(default_factory=list)


class MediaItem(CamelModel):
    id: int
    filename: str
    file_type: str = Field(description="image | video")
    mime_type: Optional[str] = None
    original_path: str
    display_path: Optional[str] = None
    thumb_path: Optional[str] = None
    filesize: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    duration: Optional[float] = None
    sort_order: int
    hash: Optional[str] = None


class SetUploadResponse(CamelModel):
    success: bool
    uploaded: int
    skipped: int
    total: int
    files: List[MediaItem] = Field(default_factory=list)
    duplicates: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class SetSnapshot(CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    model_id: int
    release_date: Optional[str] = None
    cover_image_path: Optional[str] = None
    cover_thumb_path: Optional[str] = None
    image_count: int
    video_count: int
    total_size_bytes: int
    media: List[MediaItem] = Field(default_factory=list)


class ReorderRequest(BaseModel):
    media_ids: List[int] = Field(..., json_schema_extra={"example": [12, 10, 11]})


class DeleteSetResponse(CamelModel):
    id: int
    media_deleted: int
    files_removed: int


class DeleteMediaResponse(CamelModel):
    id: int
    set_id: int
    files_removed: int


__all__ = [
    "DeleteMediaResponse",
    "DeleteSetResponse",
    "EnvCheckResponse",
    "HealthResponse",
    "MediaItem",
    "ReorderRequest",
    "SetSnapshot",
    "SetUploadResponse",
    "UploadResponse",
    "UploadSetSummary",
]
