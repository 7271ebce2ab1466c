from __future__ import annotations

from datetime import date
from typing import Optional, Sequence, Type, Union

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gallery.ingest.slugs import slugify, suffixed

from .models import Media, MediaKind, MediaSet, Model, Studio

Sluggable = Union[Type[Studio], Type[Model], Type[MediaSet]]


class GalleryRepository:
    """Datastore operations used by ingestion and gallery maintenance.

    Methods flush but never commit; transaction boundaries belong to the caller.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # -- lookups --------------------------------------------------------

    async def get_model_by_id(self, model_id: int) -> Optional[Model]:
        return await self.session.get(Model, model_id)

    async def get_studio_by_id(self, studio_id: int) -> Optional[Studio]:
        return await self.session.get(Studio, studio_id)

    async def get_set_by_id(self, set_id: int) -> Optional[MediaSet]:
        return await self.session.get(MediaSet, set_id)

    async def get_media_by_id(self, media_id: int) -> Optional[Media]:
        return await self.session.get(Media, media_id)

    async def find_set(self, model_id: int, name: str) -> Optional[MediaSet]:
        stmt = (
            select(MediaSet)
            .where(MediaSet.model_id == model_id, MediaSet.name == name)
            .order_by(MediaSet.id)
            .limit(1)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def get_media_by_hash(self, set_id: int, content_hash: str) -> Optional[Media]:
        stmt = select(Media).where(Media.set_id == set_id, Media.hash == content_hash).limit(1)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def count_media(self, set_id: int) -> int:
        stmt = select(func.count(Media.id)).where(Media.set_id == set_id)
        return int((await self.session.execute(stmt)).scalar_one())

    async def next_sort_order(self, set_id: int) -> int:
        stmt = select(func.max(Media.sort_order)).where(Media.set_id == set_id)
        current = (await self.session.execute(stmt)).scalar_one_or_none()
        return 0 if current is None else int(current) + 1

    async def list_media(self, set_id: int) -> Sequence[Media]:
        stmt = select(Media).where(Media.set_id == set_id).order_by(Media.sort_order, Media.id)
        return (await self.session.execute(stmt)).scalars().all()

    async def unique_slug(self, entity: Sluggable, text: str) -> str:
        base_slug = slugify(text)
        attempt = 1
        while True:
            candidate = suffixed(base_slug, attempt)
            stmt = select(entity.id).where(entity.slug == candidate).limit(1)
            if (await self.session.execute(stmt)).scalar_one_or_none() is None:
                return candidate
            attempt += 1

    # -- creation -------------------------------------------------------

    async def create_studio(self, name: str, **fields) -> Studio:
        studio = Studio(name=name, slug=await self.unique_slug(Studio, name), **fields)
        self.session.add(studio)
        await self.session.flush()
        return studio

    async def create_model(self, name: str, *, studio_id: Optional[int] = None, **fields) -> Model:
        model = Model(name=name, slug=await self.unique_slug(Model, name), studio_id=studio_id, **fields)
        self.session.add(model)
        await self.session.flush()
        return model

    async def create_set(
        self,
        *,
        model_id: int,
        name: str,
        description: Optional[str] = None,
        release_date: Optional[str] = None,
    ) -> MediaSet:
        media_set = MediaSet(
            name=name,
            slug=await self.unique_slug(MediaSet, name),
            description=description,
            model_id=model_id,
            release_date=release_date or date.today().isoformat(),
            image_count=0,
            video_count=0,
            total_size_bytes=0,
        )
        self.session.add(media_set)
        await self.session.flush()
        return media_set

    async def insert_media(
        self,
        *,
        set_id: int,
        filename: str,
        original_path: str,
        display_path: Optional[str],
        thumb_path: Optional[str],
        file_type: MediaKind,
        mime_type: Optional[str],
        filesize: Optional[int],
        width: Optional[int],
        height: Optional[int],
        duration: Optional[float],
        sort_order: int,
        content_hash: Optional[str],
        hash_algo: Optional[str],
    ) -> Media:
        media = Media(
            set_id=set_id,
            filename=filename,
            original_path=original_path,
            display_path=display_path,
            thumb_path=thumb_path,
            file_type=file_type,
            mime_type=mime_type,
            filesize=filesize,
            width=width,
            height=height,
            duration=duration,
            sort_order=sort_order,
            hash=content_hash,
            hash_algo=hash_algo,
        )
        self.session.add(media)
        # Flush surfaces a (set_id, hash) collision as IntegrityError right here.
        await self.session.flush()
        return media

    # -- cover paths ----------------------------------------------------

    async def update_set_cover(self, media_set: MediaSet, cover_path: str, thumb_path: str) -> None:
        media_set.cover_image_path = cover_path
        media_set.cover_thumb_path = thumb_path
        await self.session.flush()

    async def update_model_profile(self, model: Model, image_path: str, thumb_path: str) -> None:
        model.profile_image_path = image_path
        model.profile_thumb_path = thumb_path
        await self.session.flush()

    async def update_studio_logo(self, studio: Studio, logo_path: str, thumb_path: str) -> None:
        studio.logo_path = logo_path
        studio.logo_thumb_path = thumb_path
        await self.session.flush()

    # -- aggregates -----------------------------------------------------

    async def recompute_set_aggregates(self, set_id: int) -> Optional[MediaSet]:
        """Rewrite image/video counts and total bytes from the media table in one UPDATE."""
        image_count = (
            select(func.count(Media.id))
            .where(Media.set_id == set_id, Media.file_type == MediaKind.image)
            .scalar_subquery()
        )
        video_count = (
            select(func.count(Media.id))
            .where(Media.set_id == set_id, Media.file_type == MediaKind.video)
            .scalar_subquery()
        )
        total_size = (
            select(func.coalesce(func.sum(Media.filesize), 0)).where(Media.set_id == set_id).scalar_subquery()
        )
        stmt = (
            update(MediaSet)
            .where(MediaSet.id == set_id)
            .values(image_count=image_count, video_count=video_count, total_size_bytes=total_size)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        return await self.session.get(MediaSet, set_id, populate_existing=True)

    # -- maintenance ----------------------------------------------------

    async def delete_media(self, media: Media) -> None:
        await self.session.delete(media)
        await self.session.flush()

    async def delete_set(self, set_id: int) -> None:
        await self.session.execute(delete(Media).where(Media.set_id == set_id))
        await self.session.execute(delete(MediaSet).where(MediaSet.id == set_id))

    async def reorder_media(self, set_id: int, ordered_ids: Sequence[int]) -> Sequence[Media]:
        """Assign ``sort_order`` = list index; ``ordered_ids`` must be exactly the set's media."""
        media = await self.list_media(set_id)
        by_id = {item.id: item for item in media}
        if len(ordered_ids) != len(by_id) or set(ordered_ids) != set(by_id):
            raise ValueError("media_ids_mismatch")
        for index, media_id in enumerate(ordered_ids):
            by_id[media_id].sort_order = index
        await self.session.flush()
        return [by_id[media_id] for media_id in ordered_ids]


__all__ = ["GalleryRepository"]
