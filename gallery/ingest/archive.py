from __future__ import annotations

import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .errors import ArchiveError

COPY_CHUNK_SIZE = 1024 * 1024


@dataclass(slots=True, frozen=True)
class ArchiveEntry:
    """One member of an uploaded archive, as listed in its central directory."""

    path: str
    is_dir: bool
    size: int


class ArchiveExtractor:
    """Random-access reader over a ZIP archive on disk.

    Only the central directory is read when the archive is opened; entries are
    decompressed one at a time on request, so archives larger than memory (and
    ZIP64 archives beyond 2 GiB) can be ingested.
    """

    def __init__(self, archive_path: Path):
        self.archive_path = Path(archive_path)
        self._zip: Optional[zipfile.ZipFile] = None

    def open(self) -> "ArchiveExtractor":
        if self._zip is not None:
            return self
        if not self.archive_path.is_file():
            raise ArchiveError(f"Archive not found: {self.archive_path.name}")
        try:
            self._zip = zipfile.ZipFile(self.archive_path, mode="r", allowZip64=True)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as exc:
            raise ArchiveError(f"Invalid ZIP archive: {exc}") from exc
        return self

    def close(self) -> None:
        if self._zip is None:
            return
        handle, self._zip = self._zip, None
        handle.close()

    def __enter__(self) -> "ArchiveExtractor":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def _handle(self) -> zipfile.ZipFile:
        if self._zip is None:
            raise ArchiveError("Archive is not open")
        return self._zip

    def entries(self) -> List[ArchiveEntry]:
        """Entries in archive order."""
        return [
            ArchiveEntry(path=info.filename, is_dir=info.is_dir(), size=info.file_size)
            for info in self._handle.infolist()
        ]

    def read(self, path: str) -> bytes:
        try:
            return self._handle.read(path)
        except KeyError as exc:
            raise ArchiveError(f"Entry not found in archive: {path}") from exc

    def extract_to(self, path: str, destination: Path) -> Path:
        """Stream a single entry to ``destination`` without loading it whole."""
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._handle.open(path, "r") as source, destination.open("wb") as target:
                shutil.copyfileobj(source, target, COPY_CHUNK_SIZE)
        except KeyError as exc:
            raise ArchiveError(f"Entry not found in archive: {path}") from exc
        return destination


__all__ = ["ArchiveEntry", "ArchiveExtractor"]
