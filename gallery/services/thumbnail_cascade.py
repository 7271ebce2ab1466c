from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

from PIL import Image, ImageOps
from sqlalchemy.ext.asyncio import AsyncSession

from gallery.core.logging import get_logger
from gallery.core.storage import MediaStorage
from gallery.db.models import Media, MediaKind, MediaSet, Model, Studio
from gallery.db.repository import GalleryRepository
from gallery.domain import CoverPaths, DerivativeGenerator


@dataclass(slots=True, frozen=True)
class CoverSource:
    """Plain snapshot of the media item a cover is generated from."""

    media_id: int
    set_id: int
    kind: MediaKind
    original_path: str
    display_path: Optional[str]
    duration: Optional[float]

    @classmethod
    def from_media(cls, media: Media) -> "CoverSource":
        return cls(
            media_id=media.id,
            set_id=media.set_id,
            kind=media.file_type,
            original_path=media.original_path,
            display_path=media.display_path,
            duration=media.duration,
        )


async def _set_of(repo: GalleryRepository, source: CoverSource) -> Optional[MediaSet]:
    return await repo.get_set_by_id(source.set_id)


async def _model_of(repo: GalleryRepository, media_set: MediaSet) -> Optional[Model]:
    return await repo.get_model_by_id(media_set.model_id)


async def _studio_of(repo: GalleryRepository, model: Model) -> Optional[Studio]:
    if model.studio_id is None:
        return None
    return await repo.get_studio_by_id(model.studio_id)


@dataclass(frozen=True)
class CascadeLevel:
    """How to reach one level's entity and read or write its representative image."""

    name: str
    entity_kind: str
    stem: str
    get_parent: Callable[[GalleryRepository, Any], Awaitable[Any]]
    has_thumbnail: Callable[[Any], bool]
    set_thumbnail: Callable[[GalleryRepository, Any, CoverPaths], Awaitable[None]]


LEVELS: tuple[CascadeLevel, ...] = (
    CascadeLevel(
        name="set",
        entity_kind="sets",
        stem="cover",
        get_parent=_set_of,
        has_thumbnail=lambda entity: bool(entity.cover_image_path and entity.cover_thumb_path),
        set_thumbnail=lambda repo, entity, paths: repo.update_set_cover(entity, paths.cover_path, paths.thumb_path),
    ),
    CascadeLevel(
        name="model",
        entity_kind="models",
        stem="profile",
        get_parent=_model_of,
        has_thumbnail=lambda entity: bool(entity.profile_image_path and entity.profile_thumb_path),
        set_thumbnail=lambda repo, entity, paths: repo.update_model_profile(entity, paths.cover_path, paths.thumb_path),
    ),
    CascadeLevel(
        name="studio",
        entity_kind="studios",
        stem="logo",
        get_parent=_studio_of,
        has_thumbnail=lambda entity: bool(entity.logo_path and entity.logo_thumb_path),
        set_thumbnail=lambda repo, entity, paths: repo.update_studio_logo(entity, paths.cover_path, paths.thumb_path),
    ),
)


class ThumbnailCascadeService:
    """Backfills missing set covers, model profile images and studio logos.

    Runs once per committed media item. Every level is checked independently:
    a level that already has its image is left alone and the walk continues
    upward. Failures are logged per level and never propagate.
    """

    def __init__(self, session: AsyncSession, storage: MediaStorage, generator: DerivativeGenerator):
        self.session = session
        self.repo = GalleryRepository(session)
        self.storage = storage
        self.generator = generator
        self.logger = get_logger(component="thumbnail_cascade")

    async def run(self, source: CoverSource) -> List[str]:
        """Walk set -> model -> studio; returns the names of the levels that were filled."""
        updated: List[str] = []
        image: Optional[Image.Image] = None
        child: Any = source

        for level in LEVELS:
            try:
                entity = await level.get_parent(self.repo, child)
            except Exception:
                self.logger.exception("cascade_lookup_failed", level=level.name, media_id=source.media_id)
                break
            if entity is None:
                break

            entity_id = entity.id
            if not level.has_thumbnail(entity):
                written: Optional[CoverPaths] = None
                try:
                    if image is None:
                        image = await asyncio.to_thread(self._load_source_image, source)
                    written = await asyncio.to_thread(
                        self.generator.create_cover, image, level.entity_kind, entity.slug, level.stem
                    )
                    await level.set_thumbnail(self.repo, entity, written)
                    await self.session.commit()
                    updated.append(level.name)
                    self.logger.info("cascade_level_filled", level=level.name, entity_id=entity_id, media_id=source.media_id)
                except Exception as exc:
                    await self._discard(written)
                    self.logger.warning(
                        "cascade_level_failed",
                        level=level.name,
                        entity_id=entity_id,
                        media_id=source.media_id,
                        error=str(exc),
                    )

            # A rollback expires loaded rows; get() reloads them when needed.
            try:
                child = await self.session.get(type(entity), entity_id)
            except Exception as exc:
                await self._discard(None)
                self.logger.warning(
                    "cascade_level_failed",
                    level=level.name,
                    entity_id=entity_id,
                    media_id=source.media_id,
                    error=str(exc),
                )
                break
            if child is None:
                break
        return updated

    async def _discard(self, written: Optional[CoverPaths]) -> None:
        """Roll back a failed level and delete any cover files it wrote."""
        if written is not None:
            self.storage.remove(written.cover_path)
            self.storage.remove(written.thumb_path)
        try:
            await self.session.rollback()
        except Exception as exc:
            self.logger.warning("cascade_rollback_failed", error=str(exc))

    def _load_source_image(self, source: CoverSource) -> Image.Image:
        if source.kind == MediaKind.video:
            return self.generator.video_frame(self.storage.resolve(source.original_path), source.duration)
        key = source.display_path or source.original_path
        with Image.open(self.storage.resolve(key)) as raw:
            return ImageOps.exif_transpose(raw)


__all__ = ["CascadeLevel", "CoverSource", "LEVELS", "ThumbnailCascadeService"]
