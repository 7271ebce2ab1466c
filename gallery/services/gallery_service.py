from __future__ import annotations

import asyncio
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from gallery.core.config import Settings
from gallery.core.logging import get_logger
from gallery.core.storage import MediaStorage
from gallery.db.models import Media, MediaSet
from gallery.db.repository import GalleryRepository
from gallery.domain import MediaNotFoundError, SetNotFoundError

from .ingest_service import media_summary


def _media_keys(media: Media) -> List[Optional[str]]:
    return [media.original_path, media.display_path, media.thumb_path]


class GalleryService:
    """Set snapshots, media ordering and deletions, keeping files and rows in step."""

    def __init__(self, settings: Settings, storage: MediaStorage, session: AsyncSession):
        self.settings = settings
        self.storage = storage
        self.session = session
        self.repo = GalleryRepository(session)
        self.logger = get_logger(component="gallery_service")

    async def get_set_snapshot(self, set_id: int) -> dict[str, Any]:
        media_set = await self.repo.get_set_by_id(set_id)
        if media_set is None:
            raise SetNotFoundError(set_id)
        media = await self.repo.list_media(set_id)
        return {**set_summary(media_set), "media": [media_summary(item) for item in media]}

    async def reorder_media(self, set_id: int, media_ids: Sequence[int]) -> dict[str, Any]:
        if await self.repo.get_set_by_id(set_id) is None:
            raise SetNotFoundError(set_id)
        await self.repo.reorder_media(set_id, list(media_ids))
        await self.session.commit()
        self.logger.info("media_reordered", set_id=set_id, count=len(media_ids))
        return await self.get_set_snapshot(set_id)

    async def delete_media(self, media_id: int) -> dict[str, Any]:
        media = await self.repo.get_media_by_id(media_id)
        if media is None:
            raise MediaNotFoundError(media_id)
        set_id = media.set_id
        keys = _media_keys(media)

        await self.repo.delete_media(media)
        await self.repo.recompute_set_aggregates(set_id)
        await self.session.commit()

        removed = await asyncio.to_thread(self._remove_files, keys)
        self.logger.info("media_deleted", media_id=media_id, set_id=set_id, files_removed=removed)
        return {"id": media_id, "setId": set_id, "filesRemoved": removed}

    async def delete_set(self, set_id: int) -> dict[str, Any]:
        media_set = await self.repo.get_set_by_id(set_id)
        if media_set is None:
            raise SetNotFoundError(set_id)
        media = await self.repo.list_media(set_id)
        keys: List[Optional[str]] = [key for item in media for key in _media_keys(item)]
        keys.extend([media_set.cover_image_path, media_set.cover_thumb_path])

        await self.repo.delete_set(set_id)
        await self.session.commit()

        removed = await asyncio.to_thread(self._remove_files, keys)
        self.logger.info("set_deleted", set_id=set_id, media=len(media), files_removed=removed)
        return {"id": set_id, "mediaDeleted": len(media), "filesRemoved": removed}

    def _remove_files(self, keys: Iterable[Optional[str]]) -> int:
        # display_path can equal original_path; each file is removed once.
        removed = 0
        for key in dict.fromkeys(key for key in keys if key):
            try:
                if self.storage.remove(key):
                    removed += 1
            except OSError as exc:
                self.logger.warning("file_remove_failed", path=key, error=str(exc))
        return removed


def set_summary(media_set: MediaSet) -> dict[str, Any]:
    return {
        "id": media_set.id,
        "name": media_set.name,
        "slug": media_set.slug,
        "description": media_set.description,
        "modelId": media_set.model_id,
        "releaseDate": media_set.release_date,
        "coverImagePath": media_set.cover_image_path,
        "coverThumbPath": media_set.cover_thumb_path,
        "imageCount": media_set.image_count,
        "videoCount": media_set.video_count,
        "totalSizeBytes": media_set.total_size_bytes,
    }


__all__ = ["GalleryService", "set_summary"]
