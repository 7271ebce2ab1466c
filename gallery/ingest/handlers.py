from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

from gallery.db.models import MediaKind

from .derivatives import DerivativeGenerator, DerivativeResult
from .hashing import HashInfo, ImageSource, hash_image, hash_video

Fingerprint = Callable[[ImageSource], HashInfo]
Derive = Callable[[DerivativeGenerator, str, str, str], DerivativeResult]


@dataclass(slots=True, frozen=True)
class MediaHandler:
    """The fingerprint and derivative functions for one media kind."""

    kind: MediaKind
    fingerprint: Fingerprint
    derive: Derive


HANDLERS: Dict[MediaKind, MediaHandler] = {
    MediaKind.image: MediaHandler(
        kind=MediaKind.image,
        fingerprint=hash_image,
        derive=DerivativeGenerator.derive_image,
    ),
    MediaKind.video: MediaHandler(
        kind=MediaKind.video,
        fingerprint=hash_video,
        derive=DerivativeGenerator.derive_video,
    ),
}


def handler_for(kind: MediaKind) -> MediaHandler:
    return HANDLERS[kind]


__all__ = ["HANDLERS", "MediaHandler", "handler_for"]
