from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from gallery.api.v1 import get_api_router
from gallery.core.config import get_settings
from gallery.core.db import create_engine, create_session_factory
from gallery.core.logging import configure_logging, get_logger, level_from_name
from gallery.core.storage import get_storage


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(level=level_from_name(settings.log_level))
    logger = get_logger(component="app")
    storage = get_storage(settings)
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings
        app.state.storage = storage
        app.state.engine = engine
        app.state.session_factory = session_factory
        settings.upload_temp_dir.mkdir(parents=True, exist_ok=True)
        logger.info("app_started", environment=settings.environment, storage_root=str(settings.storage_root))
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )

    app.include_router(get_api_router())
    return app


app = create_app()


__all__ = ["app", "create_app"]
