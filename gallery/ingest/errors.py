from __future__ import annotations


class IngestError(Exception):
    """Base class for ingestion failures."""


class ArchiveError(IngestError):
    """The uploaded archive cannot be opened or is not a ZIP container."""


class ModelNotFoundError(IngestError):
    def __init__(self, model_id: int):
        super().__init__(f"Model {model_id} not found")
        self.model_id = model_id


class SetNotFoundError(IngestError):
    def __init__(self, set_id: int):
        super().__init__(f"Set {set_id} not found")
        self.set_id = set_id


class MediaNotFoundError(IngestError):
    def __init__(self, media_id: int):
        super().__init__(f"Media {media_id} not found")
        self.media_id = media_id


class UnsupportedMediaError(IngestError):
    """The file is neither a supported image nor a supported video."""


class DerivativeError(IngestError):
    """A required derivative (display or stored original) could not be produced."""


__all__ = [
    "IngestError",
    "ArchiveError",
    "ModelNotFoundError",
    "SetNotFoundError",
    "MediaNotFoundError",
    "UnsupportedMediaError",
    "DerivativeError",
]
