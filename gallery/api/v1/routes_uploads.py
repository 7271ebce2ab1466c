from __future__ import annotations

from pathlib import Path
from typing import List
from uuid import uuid4

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from gallery.api import deps
from gallery.core.logging import get_logger
from gallery.domain import ArchiveError, ModelNotFoundError, SetNotFoundError
from gallery.services.ingest_service import StagedFile

from . import schemas


router = APIRouter(tags=["uploads"])
logger = get_logger(component="upload_routes")

SPOOL_CHUNK_SIZE = 1024 * 1024


async def _spool(upload: UploadFile, temp_dir: Path, max_bytes: int) -> Path:
    """Copy an upload to ``temp_dir`` in 1 MiB chunks, enforcing the size limit."""
    temp_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(upload.filename or "").suffix.lower() or ".bin"
    target = temp_dir / f"{uuid4().hex}{suffix}"
    written = 0
    try:
        with target.open("wb") as handle:
            while chunk := await upload.read(SPOOL_CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="upload_too_large")
                handle.write(chunk)
    except BaseException:
        target.unlink(missing_ok=True)
        raise
    finally:
        await upload.close()
    logger.info("upload_spooled", filename=upload.filename, path=target.name, size_bytes=written)
    return target


@router.post(
    "/models/{model_id}/upload-zip",
    response_model=schemas.UploadResponse,
    summary="Create sets for a model from a ZIP of set folders",
)
async def upload_zip(
    model_id: int,
    service: deps.IngestServiceDependency,
    context: deps.AdminDependency,
    settings: deps.SettingsDependency,
    archive: UploadFile = File(..., alias="zipfile"),
) -> schemas.UploadResponse:
    if not archive.filename or not archive.filename.lower().endswith(".zip"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="archive_required")

    archive_path = await _spool(archive, settings.upload_temp_dir, settings.max_upload_size_bytes)
    try:
        result = await service.ingest_archive(
            model_id=model_id,
            archive_path=archive_path,
            source_name=archive.filename,
        )
    except ModelNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="model_not_found") from exc
    except ArchiveError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_archive") from exc
    return schemas.UploadResponse(**result.as_dict())


@router.post(
    "/sets/{set_id}/upload",
    response_model=schemas.SetUploadResponse,
    summary="Add images and videos to an existing set",
)
async def upload_to_set(
    set_id: int,
    service: deps.IngestServiceDependency,
    context: deps.AdminDependency,
    settings: deps.SettingsDependency,
    media: List[UploadFile] = File(...),
) -> schemas.SetUploadResponse:
    staged: List[StagedFile] = []
    try:
        for upload in media:
            path = await _spool(upload, settings.upload_temp_dir, settings.max_upload_size_bytes)
            staged.append(StagedFile(filename=upload.filename or path.name, path=path, content_type=upload.content_type))
    except BaseException:
        for item in staged:
            item.path.unlink(missing_ok=True)
        raise

    try:
        result = await service.ingest_files(set_id=set_id, staged=staged)
    except SetNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="set_not_found") from exc
    return schemas.SetUploadResponse(**result.as_dict())


__all__ = ["router"]
