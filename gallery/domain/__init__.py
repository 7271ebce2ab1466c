"""Domain entities and ingest utilities reused by the services and the API."""

from gallery.ingest.archive import ArchiveEntry, ArchiveExtractor
from gallery.ingest.derivatives import CoverPaths, DerivativeGenerator, DerivativeResult
from gallery.ingest.errors import (
    ArchiveError,
    DerivativeError,
    IngestError,
    MediaNotFoundError,
    ModelNotFoundError,
    SetNotFoundError,
    UnsupportedMediaError,
)
from gallery.ingest.handlers import MediaHandler, handler_for
from gallery.ingest.hashing import HashInfo
from gallery.ingest.media_types import classify, guess_mime_type
from gallery.ingest.slugs import slugify
from gallery.ingest.structure import ArchiveFile, SetStructure, infer_set_structure

__all__ = [
    "ArchiveEntry",
    "ArchiveError",
    "ArchiveExtractor",
    "ArchiveFile",
    "CoverPaths",
    "DerivativeError",
    "DerivativeGenerator",
    "DerivativeResult",
    "HashInfo",
    "IngestError",
    "MediaHandler",
    "MediaNotFoundError",
    "ModelNotFoundError",
    "SetNotFoundError",
    "SetStructure",
    "UnsupportedMediaError",
    "classify",
    "guess_mime_type",
    "handler_for",
    "infer_set_structure",
    "slugify",
]
