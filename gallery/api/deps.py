from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gallery.core.auth import AuthContext, require_admin
from gallery.core.config import Settings, get_settings
from gallery.core.storage import MediaStorage
from gallery.services.gallery_service import GalleryService
from gallery.services.ingest_service import IngestService


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    if not isinstance(session_factory, async_sessionmaker):
        raise RuntimeError("session_factory_not_configured")
    async with session_factory() as session:
        yield session


def get_storage(request: Request) -> MediaStorage:
    storage: MediaStorage = request.app.state.storage
    return storage


def get_app_settings() -> Settings:
    return get_settings()


async def get_ingest_service(
    session: AsyncSession = Depends(get_session),
    storage: MediaStorage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> AsyncIterator[IngestService]:
    service = IngestService(settings, storage, session)
    yield service


async def get_gallery_service(
    session: AsyncSession = Depends(get_session),
    storage: MediaStorage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> AsyncIterator[GalleryService]:
    service = GalleryService(settings, storage, session)
    yield service


IngestServiceDependency = Annotated[IngestService, Depends(get_ingest_service)]
GalleryServiceDependency = Annotated[GalleryService, Depends(get_gallery_service)]
AdminDependency = Annotated[AuthContext, Depends(require_admin)]
SettingsDependency = Annotated[Settings, Depends(get_app_settings)]


__all__ = [
    "get_session",
    "get_storage",
    "get_app_settings",
    "get_ingest_service",
    "get_gallery_service",
    "IngestServiceDependency",
    "GalleryServiceDependency",
    "AdminDependency",
    "SettingsDependency",
]
