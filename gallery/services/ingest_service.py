from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Literal, Optional, Protocol, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gallery.core.config import Settings
from gallery.core.logging import get_logger, upload_context
from gallery.core.storage import MediaStorage
from gallery.db.models import Media, MediaKind, Model
from gallery.db.repository import GalleryRepository
from gallery.domain import (
    ArchiveExtractor,
    ArchiveFile,
    DerivativeGenerator,
    DerivativeResult,
    HashInfo,
    ModelNotFoundError,
    SetNotFoundError,
    UnsupportedMediaError,
    classify,
    guess_mime_type,
    handler_for,
    infer_set_structure,
)
from gallery.ingest.hashing import filename_fragment
from gallery.ingest.media_types import extension_of
from gallery.ingest.slugs import safe_stem

from .thumbnail_cascade import CoverSource, ThumbnailCascadeService

Payload = Union[bytes, Path]
FileStatus = Literal["processed", "duplicate", "failed"]


class Report(Protocol):
    errors: List[str]
    warnings: List[str]


@dataclass(slots=True)
class SetProgress:
    """Running state for one set; ``next_sort_order`` only advances on a processed file."""

    name: str
    set_id: int
    slug: str
    created: bool
    media_dir: str
    thumbs_dir: str
    next_sort_order: int
    processed: int = 0
    skipped: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "id": self.set_id,
            "slug": self.slug,
            "created": self.created,
            "processed": self.processed,
            "skipped": self.skipped,
        }


@dataclass(slots=True)
class UploadResult:
    sets_created: int = 0
    files_processed: int = 0
    files_skipped: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    sets: List[SetProgress] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.files_processed > 0 or not self.errors

    @property
    def message(self) -> str:
        return (
            f"Processed {self.files_processed} files into {len(self.sets)} sets "
            f"({self.sets_created} created, {self.files_skipped} duplicates skipped)"
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "setsCreated": self.sets_created,
            "filesProcessed": self.files_processed,
            "filesSkipped": self.files_skipped,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "sets": [progress.as_dict() for progress in self.sets],
        }


@dataclass(slots=True, frozen=True)
class StagedFile:
    """An uploaded file spooled to disk, waiting to be ingested into a set."""

    filename: str
    path: Path
    content_type: Optional[str] = None


@dataclass(slots=True)
class DirectUploadResult:
    uploaded: List[dict[str, Any]] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    total: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": bool(self.uploaded) or not self.errors,
            "uploaded": len(self.uploaded),
            "skipped": len(self.duplicates),
            "total": self.total,
            "files": list(self.uploaded),
            "duplicates": list(self.duplicates),
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass(slots=True)
class IngestContext:
    """Per-upload state. Holds plain values only, never ORM rows."""

    model_id: int
    studio_slug: str
    source_name: str
    result: UploadResult = field(default_factory=UploadResult)


@dataclass(slots=True)
class FileOutcome:
    status: FileStatus
    summary: Optional[dict[str, Any]] = None


class IngestService:
    def __init__(self, settings: Settings, storage: MediaStorage, session: AsyncSession):
        self.settings = settings
        self.storage = storage
        self.session = session
        self.repo = GalleryRepository(session)
        self.generator = DerivativeGenerator(settings, storage)
        self.cascade = ThumbnailCascadeService(session, storage, self.generator)
        self.logger = get_logger(component="ingest_service")

    # -- archive ingestion ----------------------------------------------

    async def ingest_archive(
        self,
        *,
        model_id: int,
        archive_path: Path,
        source_name: str,
        remove_archive: bool = True,
    ) -> UploadResult:
        """Turn a ZIP of set folders into sets and media for one model.

        Raises ``ModelNotFoundError`` or ``ArchiveError`` before any row is
        written; once the archive is open every problem is reported in the
        returned summary instead. The archive file is deleted afterwards
        unless ``remove_archive`` is false.
        """
        with upload_context(model_id=model_id, source_name=source_name):
            return await self._ingest_archive(Path(archive_path), model_id, source_name, remove_archive)

    async def _ingest_archive(
        self,
        archive_path: Path,
        model_id: int,
        source_name: str,
        remove_archive: bool,
    ) -> UploadResult:
        try:
            model = await self.repo.get_model_by_id(model_id)
            if model is None:
                raise ModelNotFoundError(model_id)
            context = IngestContext(
                model_id=model.id,
                studio_slug=await self._studio_slug(model),
                source_name=source_name,
            )

            extractor = ArchiveExtractor(archive_path)
            await asyncio.to_thread(extractor.open)
            try:
                entries = await asyncio.to_thread(extractor.entries)
                structure = infer_set_structure(entries)
                context.result.errors.extend(structure.errors)
                self.logger.info("archive_opened", entries=len(entries), sets=len(structure.sets), files=structure.file_count)

                for set_name, files in structure.sets.items():
                    await self._ingest_archive_set(context, extractor, set_name, files)
            finally:
                extractor.close()
        finally:
            if remove_archive:
                archive_path.unlink(missing_ok=True)

        result = context.result
        self.logger.info(
            "archive_ingested",
            sets_created=result.sets_created,
            files_processed=result.files_processed,
            files_skipped=result.files_skipped,
            errors=len(result.errors),
        )
        return result

    async def _ingest_archive_set(
        self,
        context: IngestContext,
        extractor: ArchiveExtractor,
        set_name: str,
        files: List[ArchiveFile],
    ) -> None:
        result = context.result
        try:
            progress = await self._open_archive_set(context, set_name)
        except Exception as exc:
            await self.session.rollback()
            self.logger.warning("set_failed", model_id=context.model_id, set_name=set_name, error=str(exc))
            result.errors.append(f'Failed to process set "{set_name}": {exc}')
            return

        result.sets.append(progress)
        if progress.created:
            result.sets_created += 1

        for archive_file in files:
            outcome = await self._ingest_file(
                progress,
                result,
                name=archive_file.name,
                kind=MediaKind.image,
                load=lambda entry=archive_file: extractor.read(entry.path),
            )
            if outcome.status == "processed":
                result.files_processed += 1
            elif outcome.status == "duplicate":
                result.files_skipped += 1

        await self._finalise_set(progress, result)

    async def _open_archive_set(self, context: IngestContext, set_name: str) -> SetProgress:
        media_set = None
        created = False
        if self.settings.set_name_policy == "merge":
            media_set = await self.repo.find_set(context.model_id, set_name)
        if media_set is None:
            media_set = await self.repo.create_set(
                model_id=context.model_id,
                name=set_name,
                description=f"Uploaded from ZIP file: {context.source_name}",
            )
            created = True
        progress = SetProgress(
            name=set_name,
            set_id=media_set.id,
            slug=media_set.slug,
            created=created,
            media_dir=self.storage.media_dir(context.studio_slug, media_set.slug),
            thumbs_dir=self.storage.thumbs_dir(context.studio_slug, media_set.slug),
            next_sort_order=await self.repo.next_sort_order(media_set.id),
        )
        await self.session.commit()
        await asyncio.to_thread(self._ensure_set_dirs, progress)
        self.logger.info("set_opened", set_id=progress.set_id, set_name=set_name, created=created)
        return progress

    # -- direct set upload ----------------------------------------------

    async def ingest_files(self, *, set_id: int, staged: List[StagedFile]) -> DirectUploadResult:
        """Add spooled files to an existing set; the spooled copies are always removed."""
        with upload_context(set_id=set_id, files=len(staged)):
            return await self._ingest_files(set_id, staged)

    async def _ingest_files(self, set_id: int, staged: List[StagedFile]) -> DirectUploadResult:
        result = DirectUploadResult()
        try:
            media_set = await self.repo.get_set_by_id(set_id)
            if media_set is None:
                raise SetNotFoundError(set_id)
            model = await self.repo.get_model_by_id(media_set.model_id)
            studio_slug = await self._studio_slug(model) if model else self.settings.independent_studio_slug
            progress = SetProgress(
                name=media_set.name,
                set_id=media_set.id,
                slug=media_set.slug,
                created=False,
                media_dir=self.storage.media_dir(studio_slug, media_set.slug),
                thumbs_dir=self.storage.thumbs_dir(studio_slug, media_set.slug),
                next_sort_order=await self.repo.next_sort_order(media_set.id),
            )
            await asyncio.to_thread(self._ensure_set_dirs, progress)

            for item in staged:
                try:
                    kind = classify(item.filename, item.content_type)
                except UnsupportedMediaError as exc:
                    result.errors.append(f'Failed to process "{item.filename}": {exc}')
                    continue
                outcome = await self._ingest_file(
                    progress,
                    result,
                    name=item.filename,
                    kind=kind,
                    load=lambda staged_file=item: staged_file.path,
                    content_type=item.content_type,
                )
                if outcome.status == "processed" and outcome.summary is not None:
                    result.uploaded.append(outcome.summary)
                elif outcome.status == "duplicate":
                    result.duplicates.append(item.filename)

            await self._finalise_set(progress, result)
            result.total = await self.repo.count_media(progress.set_id)
        finally:
            for item in staged:
                item.path.unlink(missing_ok=True)
        return result

    # -- per file -------------------------------------------------------

    async def _ingest_file(
        self,
        progress: SetProgress,
        report: Report,
        *,
        name: str,
        kind: MediaKind,
        load: Callable[[], Payload],
        content_type: Optional[str] = None,
    ) -> FileOutcome:
        """hash -> dedup -> store -> derive -> record -> cascade, for one file."""
        logger = self.logger.bind(set_id=progress.set_id, set_name=progress.name, filename=name)
        handler = handler_for(kind)
        written: List[str] = []
        try:
            payload = await asyncio.to_thread(load)

            hash_info: Optional[HashInfo]
            try:
                hash_info = await asyncio.to_thread(handler.fingerprint, payload)
            except Exception as exc:
                hash_info = None
                logger.warning("hash_failed", error=str(exc))
                report.warnings.append(f'Could not hash "{name}", duplicate detection disabled: {exc}')

            if hash_info is not None and await self.repo.get_media_by_hash(progress.set_id, hash_info.value):
                progress.skipped += 1
                logger.info("file_skipped_duplicate", hash=hash_info.value)
                return FileOutcome(status="duplicate")

            fragment = filename_fragment(hash_info)
            base_name, original_key = self._original_key(progress, name, fragment)
            written.append(original_key)
            await asyncio.to_thread(self._persist, payload, original_key)

            derived: DerivativeResult = await asyncio.to_thread(
                handler.derive, self.generator, original_key, progress.thumbs_dir, base_name
            )
            written.extend(key for key in (derived.display_path, derived.thumb_path) if key and key != original_key)
            report.warnings.extend(derived.warnings)

            try:
                media = await self.repo.insert_media(
                    set_id=progress.set_id,
                    filename=name,
                    original_path=original_key,
                    display_path=derived.display_path,
                    thumb_path=derived.thumb_path,
                    file_type=kind,
                    mime_type=content_type or guess_mime_type(name, kind),
                    filesize=self.storage.size(original_key),
                    width=derived.width,
                    height=derived.height,
                    duration=derived.duration,
                    sort_order=progress.next_sort_order,
                    content_hash=hash_info.value if hash_info else None,
                    hash_algo=hash_info.algo if hash_info else None,
                )
                await self.session.commit()
            except IntegrityError:
                # Another upload committed the same (set, hash) between the check and the insert.
                await self.session.rollback()
                self._remove(written)
                progress.skipped += 1
                logger.info("file_skipped_duplicate", hash=hash_info.value if hash_info else None, race=True)
                return FileOutcome(status="duplicate")
        except Exception as exc:
            await self.session.rollback()
            self._remove(written)
            logger.warning("file_failed", error=str(exc))
            report.errors.append(f'Failed to process "{name}": {exc}')
            return FileOutcome(status="failed")

        progress.next_sort_order += 1
        progress.processed += 1
        summary = media_summary(media)
        logger.info("file_processed", media_id=media.id, sort_order=media.sort_order, kind=kind.value)

        # Snapshot first: a failed cascade level rolls back and expires the row.
        try:
            await self.cascade.run(CoverSource.from_media(media))
        except Exception as exc:
            logger.warning("cascade_failed", media_id=summary["id"], error=str(exc))
        return FileOutcome(status="processed", summary=summary)

    def _original_key(self, progress: SetProgress, name: str, fragment: str) -> tuple[str, str]:
        stem = safe_stem(name)
        extension = extension_of(name)
        base_name = f"{stem}_{fragment}"
        key = f"{progress.media_dir}/{base_name}{extension}"
        attempt = 2
        while self.storage.exists(key):
            base_name = f"{stem}_{fragment}_{attempt}"
            key = f"{progress.media_dir}/{base_name}{extension}"
            attempt += 1
        return base_name, key

    def _persist(self, payload: Payload, key: str) -> None:
        if isinstance(payload, (bytes, bytearray)):
            self.storage.write_bytes(key, bytes(payload))
        else:
            self.storage.move_into(payload, key)

    def _remove(self, keys: List[str]) -> None:
        for key in keys:
            try:
                self.storage.remove(key)
            except OSError as exc:
                self.logger.warning("cleanup_failed", path=key, error=str(exc))

    # -- helpers ----------------------------------------------------------

    async def _finalise_set(self, progress: SetProgress, report: Report) -> None:
        try:
            await self.repo.recompute_set_aggregates(progress.set_id)
            await self.session.commit()
        except Exception as exc:
            await self.session.rollback()
            self.logger.warning("set_finalise_failed", set_id=progress.set_id, error=str(exc))
            report.errors.append(f'Failed to update totals for set "{progress.name}": {exc}')

    async def _studio_slug(self, model: Model) -> str:
        if model.studio_id is None:
            return self.settings.independent_studio_slug
        studio = await self.repo.get_studio_by_id(model.studio_id)
        return studio.slug if studio else self.settings.independent_studio_slug

    def _ensure_set_dirs(self, progress: SetProgress) -> None:
        self.storage.ensure_dir(progress.media_dir)
        self.storage.ensure_dir(progress.thumbs_dir)


def media_summary(media: Media) -> dict[str, Any]:
    return {
        "id": media.id,
        "filename": media.filename,
        "fileType": media.file_type.value,
        "mimeType": media.mime_type,
        "originalPath": media.original_path,
        "displayPath": media.display_path,
        "thumbPath": media.thumb_path,
        "filesize": media.filesize,
        "width": media.width,
        "height": media.height,
        "duration": media.duration,
        "sortOrder": media.sort_order,
        "hash": media.hash,
    }


__all__ = [
    "DirectUploadResult",
    "IngestContext",
    "IngestService",
    "SetProgress",
    "StagedFile",
    "UploadResult",
    "media_summary",
]
