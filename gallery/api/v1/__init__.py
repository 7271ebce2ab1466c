"""Versioned API routing for the gallery service."""

from fastapi import APIRouter

from . import routes_admin, routes_sets, routes_system, routes_uploads

ROUTE_MODULES = (routes_system, routes_admin, routes_uploads, routes_sets)


def get_api_router() -> APIRouter:
    """``/v1`` router: health and admin checks, ZIP and set uploads, set management."""
    router = APIRouter(prefix="/v1")
    for module in ROUTE_MODULES:
        router.include_router(module.router)
    return router


__all__ = ["ROUTE_MODULES", "get_api_router"]
