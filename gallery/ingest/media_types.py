from __future__ import annotations

import mimetypes
from pathlib import PurePosixPath
from typing import Optional

from gallery.db.models import MediaKind

from .errors import UnsupportedMediaError

# Extensions accepted inside ZIP archives; archives carry images only.
ARCHIVE_IMAGE_EXTENSIONS = (
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".webp",
    ".bmp",
    ".tiff",
    ".avif",
    ".heif",
    ".heic",
    ".jxl",
)

VIDEO_EXTENSIONS = (".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".mkv")

IMAGE_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/bmp",
        "image/tiff",
        "image/avif",
        "image/heif",
        "image/heic",
        "image/jxl",
    }
)
VIDEO_MIME_TYPES = frozenset(
    {
        "video/mp4",
        "video/avi",
        "video/mov",
        "video/quicktime",
        "video/wmv",
        "video/x-ms-wmv",
        "video/flv",
        "video/x-flv",
        "video/webm",
        "video/mkv",
        "video/x-matroska",
        "video/x-msvideo",
    }
)


def extension_of(filename: str) -> str:
    return PurePosixPath(filename).suffix.lower()


def is_archive_image(filename: str) -> bool:
    return extension_of(filename) in ARCHIVE_IMAGE_EXTENSIONS


def classify(filename: str, content_type: Optional[str] = None) -> MediaKind:
    """Decide the media kind once per file, from the declared MIME type or the extension."""
    declared = (content_type or "").split(";")[0].strip().lower()
    if declared in IMAGE_MIME_TYPES:
        return MediaKind.image
    if declared in VIDEO_MIME_TYPES:
        return MediaKind.video

    extension = extension_of(filename)
    if extension in ARCHIVE_IMAGE_EXTENSIONS:
        return MediaKind.image
    if extension in VIDEO_EXTENSIONS:
        return MediaKind.video
    raise UnsupportedMediaError(f"File type of {filename!r} is not supported")


def guess_mime_type(filename: str, kind: MediaKind) -> str:
    guessed, _ = mimetypes.guess_type(filename)
    if guessed:
        return guessed
    extension = extension_of(filename).lstrip(".") or "octet-stream"
    return f"{kind.value}/{extension}"


__all__ = [
    "ARCHIVE_IMAGE_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "classify",
    "extension_of",
    "guess_mime_type",
    "is_archive_image",
]
