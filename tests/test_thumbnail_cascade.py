from __future__ import annotations

import asyncio

from gallery.core.config import get_settings
from gallery.core.db import session_scope
from gallery.core.storage import get_storage
from gallery.db.models import MediaKind
from gallery.db.repository import GalleryRepository
from gallery.domain import DerivativeGenerator
from gallery.services.thumbnail_cascade import CoverSource, ThumbnailCascadeService

from factories import encode, noise_image


def _seed_media(db, storage, model_id: int, *, payload: bytes | None = None) -> CoverSource:
    key = "uploads/media/independent/beach/a_abcd1234.png"
    if payload is not None:
        storage.write_bytes(key, payload)

    async def _create(repo: GalleryRepository):
        media_set = await repo.create_set(model_id=model_id, name="Beach")
        media = await repo.insert_media(
            set_id=media_set.id,
            filename="a.png",
            original_path=key,
            display_path=key,
            thumb_path=None,
            file_type=MediaKind.image,
            mime_type="image/png",
            filesize=len(payload or b""),
            width=640,
            height=480,
            duration=None,
            sort_order=0,
            content_hash="abcd1234abcd1234",
            hash_algo="phash",
        )
        return CoverSource.from_media(media)

    return db(_create)


def _run_cascade(source: CoverSource):
    settings = get_settings()
    storage = get_storage(settings)

    async def _run():
        async with session_scope(settings) as session:
            service = ThumbnailCascadeService(session, storage, DerivativeGenerator(settings, storage))
            return await service.run(source)

    return asyncio.run(_run())


def test_cascade_fills_every_empty_level(db, storage, seed_model):
    model_id, studio_id = seed_model(studio="Acme")
    source = _seed_media(db, storage, model_id, payload=encode(noise_image(1, size=(640, 480))))

    assert _run_cascade(source) == ["set", "model", "studio"]

    async def _studio(repo):
        return await repo.get_studio_by_id(studio_id)

    studio = db(_studio)
    assert studio.logo_path == "uploads/covers/studios/acme/logo_acme.webp"
    assert storage.exists(studio.logo_thumb_path)


def test_cascade_is_idempotent(db, storage, seed_model):
    model_id, _ = seed_model(studio="Acme")
    source = _seed_media(db, storage, model_id, payload=encode(noise_image(2, size=(640, 480))))

    assert _run_cascade(source) == ["set", "model", "studio"]
    assert _run_cascade(source) == []


def test_cascade_stops_at_models_without_a_studio(db, storage, seed_model):
    model_id, _ = seed_model()
    source = _seed_media(db, storage, model_id, payload=encode(noise_image(3, size=(640, 480))))

    assert _run_cascade(source) == ["set", "model"]


def test_cascade_failure_is_swallowed_per_level(db, storage, seed_model):
    model_id, _ = seed_model(studio="Acme")
    # No file on disk: every level fails to render, none raises.
    source = _seed_media(db, storage, model_id, payload=None)

    assert _run_cascade(source) == []

    async def _set(repo):
        return await repo.get_set_by_id(source.set_id)

    media_set = db(_set)
    assert media_set.cover_image_path is None
    assert not storage.exists("uploads/covers/sets/beach/cover_beach.webp")
