import asyncio
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from gallery.core.config import get_settings
from gallery.core.db import create_engine, create_schema, session_scope
from gallery.core.storage import get_storage
from gallery.db.repository import GalleryRepository
from gallery.main import create_app
from gallery.services.gallery_service import GalleryService
from gallery.services.ingest_service import IngestService

from factories import TEST_JWT_SECRET, build_token


@pytest.fixture(autouse=True)
def configure_environment(monkeypatch, tmp_path):
    db_path = tmp_path / "gallery_test.db"
    storage_root = tmp_path / "storage"

    monkeypatch.setenv("GALLERY_ENV", "test")
    monkeypatch.setenv("GALLERY_LOG_LEVEL", "debug")
    monkeypatch.setenv("GALLERY_DB_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("GALLERY_STORAGE_ROOT", str(storage_root))
    monkeypatch.setenv("GALLERY_JWT_SECRET", TEST_JWT_SECRET)
    # No ffmpeg in the test environment: video thumbnails use the placeholder.
    monkeypatch.setenv("GALLERY_FFMPEG_BINARY", str(tmp_path / "missing-ffmpeg"))
    monkeypatch.setenv("GALLERY_FFPROBE_BINARY", str(tmp_path / "missing-ffprobe"))
    monkeypatch.delenv("GALLERY_SET_NAME_POLICY", raising=False)
    monkeypatch.delenv("GALLERY_MAX_UPLOAD_SIZE_BYTES", raising=False)

    get_settings.cache_clear()
    settings = get_settings()
    engine = create_engine(settings)

    async def _setup() -> None:
        await create_schema(engine)
        await engine.dispose()

    asyncio.run(_setup())

    yield settings

    get_settings.cache_clear()


@pytest.fixture()
def settings(configure_environment):
    return get_settings()


@pytest.fixture()
def storage(settings):
    return get_storage(settings)


@pytest.fixture()
def client(configure_environment):
    app = create_app()
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def db():
    """Run ``await fn(repo)`` against a fresh session and return its result."""

    def _call(fn):
        async def _run():
            async with session_scope(get_settings()) as session:
                result = await fn(GalleryRepository(session))
                await session.commit()
                return result

        return asyncio.run(_run())

    return _call


@pytest.fixture()
def seed_model(db):
    """Create a model (optionally under a new studio); returns ``(model_id, studio_id)``."""

    def _seed(name: str = "Jane Doe", studio: str | None = None, **model_fields):
        async def _create(repo: GalleryRepository):
            studio_id = None
            if studio:
                studio_id = (await repo.create_studio(studio)).id
            model = await repo.create_model(name, studio_id=studio_id, **model_fields)
            return model.id, studio_id

        return db(_create)

    return _seed


@pytest.fixture()
def run_ingest():
    def _ingest(model_id: int, archive_path: Path, source_name: str | None = None):
        settings = get_settings()

        async def _run():
            async with session_scope(settings) as session:
                service = IngestService(settings, get_storage(settings), session)
                return await service.ingest_archive(
                    model_id=model_id,
                    archive_path=archive_path,
                    source_name=source_name or archive_path.name,
                )

        return asyncio.run(_run())

    return _ingest


@pytest.fixture()
def gallery():
    """Run ``await fn(service)`` with a GalleryService bound to a fresh session."""

    def _call(fn):
        settings = get_settings()

        async def _run():
            async with session_scope(settings) as session:
                return await fn(GalleryService(settings, get_storage(settings), session))

        return asyncio.run(_run())

    return _call


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token(scopes=['admin'])}"}


@pytest.fixture()
def viewer_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token(scopes=['read'])}"}
