from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from gallery.api import deps
from gallery.domain import MediaNotFoundError, SetNotFoundError

from . import schemas


router = APIRouter(tags=["sets"])


@router.get("/sets/{set_id}", response_model=schemas.SetSnapshot)
async def get_set(set_id: int, service: deps.GalleryServiceDependency, context: deps.AdminDependency) -> schemas.SetSnapshot:
    try:
        snapshot = await service.get_set_snapshot(set_id)
    except SetNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="set_not_found") from exc
    return schemas.SetSnapshot(**snapshot)


@router.put("/sets/{set_id}/media/order", response_model=schemas.SetSnapshot)
async def reorder_media(
    set_id: int,
    payload: schemas.ReorderRequest,
    service: deps.GalleryServiceDependency,
    context: deps.AdminDependency,
) -> schemas.SetSnapshot:
    try:
        snapshot = await service.reorder_media(set_id, payload.media_ids)
    except SetNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="set_not_found") from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return schemas.SetSnapshot(**snapshot)


@router.delete("/sets/{set_id}", response_model=schemas.DeleteSetResponse)
async def delete_set(set_id: int, service: deps.GalleryServiceDependency, context: deps.AdminDependency) -> schemas.DeleteSetResponse:
    try:
        result = await service.delete_set(set_id)
    except SetNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="set_not_found") from exc
    return schemas.DeleteSetResponse(**result)


@router.delete("/media/{media_id}", response_model=schemas.DeleteMediaResponse)
async def delete_media(
    media_id: int,
    service: deps.GalleryServiceDependency,
    context: deps.AdminDependency,
) -> schemas.DeleteMediaResponse:
    try:
        result = await service.delete_media(media_id)
    except MediaNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="media_not_found") from exc
    return schemas.DeleteMediaResponse(**result)


__all__ = ["router"]
