from __future__ import annotations

import shutil
from pathlib import Path, PurePosixPath

from .config import Settings

UPLOADS_DIR = "uploads"
MEDIA_DIR = f"{UPLOADS_DIR}/media"
THUMBS_DIR = f"{UPLOADS_DIR}/thumbs"
COVERS_DIR = f"{UPLOADS_DIR}/covers"


class MediaStorage:
    """Filesystem tree for originals, derivatives and covers.

    Every path handed to or returned from this class (except ``resolve``) is a
    relative POSIX key such as ``uploads/media/<studio>/<set>/file.jpg``; those
    keys are what the database stores.
    """

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def resolve(self, key: str) -> Path:
        relative = PurePosixPath(key)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Storage keys must be relative: {key}")
        return self.base_path.joinpath(*relative.parts)

    @staticmethod
    def media_dir(studio_slug: str, set_slug: str) -> str:
        return f"{MEDIA_DIR}/{studio_slug}/{set_slug}"

    @staticmethod
    def thumbs_dir(studio_slug: str, set_slug: str) -> str:
        return f"{THUMBS_DIR}/{studio_slug}/{set_slug}"

    @staticmethod
    def covers_dir(entity_kind: str, slug: str) -> str:
        return f"{COVERS_DIR}/{entity_kind}/{slug}"

    def ensure_dir(self, key: str) -> Path:
        path = self.resolve(key)
        # exist_ok makes concurrent creators of the same set directory harmless.
        path.mkdir(parents=True, exist_ok=True)
        return path

    def exists(self, key: str) -> bool:
        return self.resolve(key).exists()

    def write_bytes(self, key: str, payload: bytes) -> Path:
        path = self.resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
        return path

    def move_into(self, source: Path, key: str) -> Path:
        path = self.resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(path))
        return path

    def size(self, key: str) -> int:
        return self.resolve(key).stat().st_size

    def remove(self, key: str | None) -> bool:
        if not key:
            return False
        path = self.resolve(key)
        if not path.exists():
            return False
        path.unlink()
        return True


def get_storage(settings: Settings) -> MediaStorage:
    return MediaStorage(base_path=Path(settings.storage_root))


__all__ = ["MediaStorage", "get_storage", "MEDIA_DIR", "THUMBS_DIR", "COVERS_DIR"]
