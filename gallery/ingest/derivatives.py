from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

from PIL import Image, ImageOps

from gallery.core.config import Settings
from gallery.core.logging import get_logger
from gallery.core.storage import MediaStorage

from .errors import DerivativeError
from .video import extract_frame, frame_offset_seconds, load_placeholder, probe_video

Size = Tuple[int, int]


@dataclass(slots=True)
class DerivativeResult:
    """Paths and measurements produced for one stored original."""

    display_path: str
    thumb_path: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    duration: Optional[float] = None
    warnings: List[str] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class CoverPaths:
    cover_path: str
    thumb_path: str


def has_alpha(image: Image.Image) -> bool:
    if image.mode in ("RGBA", "LA", "PA"):
        return True
    return image.mode == "P" and "transparency" in image.info


def fit_cover(image: Image.Image, box: Size) -> Image.Image:
    """Centre-crop ``image`` to fill ``box``, shrinking but never enlarging.

    When the source is smaller than the box along either edge it keeps its
    pixels: the result is cropped to the box's edge where the source is larger
    and left at the source's edge where it is smaller.
    """
    box_w, box_h = box
    width, height = image.size
    if width >= box_w and height >= box_h:
        return ImageOps.fit(image, box, method=Image.Resampling.LANCZOS)

    target_w, target_h = min(width, box_w), min(height, box_h)
    left = (width - target_w) // 2
    top = (height - target_h) // 2
    return image.crop((left, top, left + target_w, top + target_h))


def _webp_ready(image: Image.Image) -> Image.Image:
    return image.convert("RGBA") if has_alpha(image) else image.convert("RGB")


class DerivativeGenerator:
    """Produces display files, thumbnails and cover images under the storage tree."""

    def __init__(self, settings: Settings, storage: MediaStorage):
        self.settings = settings
        self.storage = storage
        self.logger = get_logger(component="derivatives")

    @property
    def thumbnail_box(self) -> Size:
        return (self.settings.thumbnail_width, self.settings.thumbnail_height)

    @property
    def cover_box(self) -> Size:
        return (self.settings.cover_width, self.settings.cover_height)

    # -- images ---------------------------------------------------------

    def create_display(self, original_key: str, base_name: str) -> Tuple[str, Size]:
        """Bounded display derivative; the original itself when already within bounds."""
        source = self.storage.resolve(original_key)
        bound = self.settings.display_max_edge
        try:
            with Image.open(source) as raw:
                image = ImageOps.exif_transpose(raw)
                image.load()
        except Exception as exc:
            raise DerivativeError(f"Cannot read image: {exc}") from exc

        width, height = image.size
        if max(width, height) <= bound:
            return original_key, (width, height)

        resized = image.copy()
        resized.thumbnail((bound, bound), Image.Resampling.LANCZOS)
        directory = PurePosixPath(original_key).parent.as_posix()
        if has_alpha(resized):
            key = f"{directory}/{base_name}_display.png"
            resized.convert("RGBA").save(self.storage.resolve(key), "PNG", optimize=True)
        else:
            key = f"{directory}/{base_name}_display.jpg"
            resized.convert("RGB").save(
                self.storage.resolve(key),
                "JPEG",
                quality=self.settings.display_quality,
                progressive=True,
                optimize=True,
            )
        return key, resized.size

    def create_thumbnail(self, source: Path | Image.Image, thumb_key: str) -> Optional[str]:
        """Best-effort cover-cropped WebP thumbnail; returns None when it cannot be made."""
        try:
            if isinstance(source, Image.Image):
                image = source
            else:
                with Image.open(source) as raw:
                    image = ImageOps.exif_transpose(raw)
                    image.load()
            thumb = fit_cover(_webp_ready(image), self.thumbnail_box)
            target = self.storage.resolve(thumb_key)
            target.parent.mkdir(parents=True, exist_ok=True)
            thumb.save(target, "WEBP", quality=self.settings.thumbnail_quality)
        except Exception as exc:
            self.logger.warning("thumbnail_failed", thumb_path=thumb_key, error=str(exc))
            self.storage.remove(thumb_key)
            return None
        return thumb_key

    def derive_image(self, original_key: str, thumbs_dir: str, base_name: str) -> DerivativeResult:
        display_key, (width, height) = self.create_display(original_key, base_name)
        result = DerivativeResult(display_path=display_key, width=width, height=height)
        thumb_key = f"{thumbs_dir}/{base_name}.webp"
        result.thumb_path = self.create_thumbnail(self.storage.resolve(display_key), thumb_key)
        if result.thumb_path is None:
            result.warnings.append(f'Thumbnail could not be generated for "{base_name}"')
        return result

    # -- video ----------------------------------------------------------

    def derive_video(self, original_key: str, thumbs_dir: str, base_name: str) -> DerivativeResult:
        source = self.storage.resolve(original_key)
        result = DerivativeResult(display_path=original_key)
        try:
            metadata = probe_video(source, binary=self.settings.ffprobe_binary)
        except Exception as exc:
            self.logger.warning("ffprobe_failed", path=original_key, error=str(exc))
            result.warnings.append(f'Video metadata unavailable for "{base_name}"')
        else:
            result.width, result.height, result.duration = metadata.width, metadata.height, metadata.duration

        frame, measured = self._frame_and_size(source, result.duration)
        if measured is not None and (result.width is None or result.height is None):
            # ffprobe gave no dimensions; fall back to the decoded frame.
            result.width, result.height = measured
        result.thumb_path = self.create_thumbnail(frame, f"{thumbs_dir}/{base_name}.webp")
        return result

    def video_frame(self, source: Path, duration: Optional[float]) -> Image.Image:
        """Representative frame of a video, or the placeholder when none can be extracted."""
        frame, _ = self._frame_and_size(source, duration)
        return frame

    def _frame_and_size(
        self, source: Path, duration: Optional[float]
    ) -> Tuple[Image.Image, Optional[Tuple[int, int]]]:
        offset = frame_offset_seconds(duration)
        self.settings.upload_temp_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(dir=self.settings.upload_temp_dir) as scratch:
            frame_path = Path(scratch) / "frame.jpg"
            size = extract_frame(source, offset, frame_path, binary=self.settings.ffmpeg_binary)
            if size is not None:
                with Image.open(frame_path) as frame:
                    return frame.convert("RGB"), size

        self.logger.info("video_frame_placeholder", path=str(source.name), offset_s=offset)
        return load_placeholder(self.settings.video_placeholder_path, self.thumbnail_box), None

    # -- covers ---------------------------------------------------------

    def create_cover(self, source: Path | Image.Image, entity_kind: str, slug: str, stem: str) -> CoverPaths:
        """Write ``<stem>_<slug>.webp`` and its ``_thumb`` twin under the covers tree."""
        if isinstance(source, Image.Image):
            image = source
        else:
            with Image.open(source) as raw:
                image = ImageOps.exif_transpose(raw)
                image.load()
        image = _webp_ready(image)

        directory = self.storage.ensure_dir(self.storage.covers_dir(entity_kind, slug))
        cover_name = f"{stem}_{slug}.webp"
        thumb_name = f"{stem}_{slug}_thumb.webp"

        fit_cover(image, self.cover_box).save(directory / cover_name, "WEBP", quality=self.settings.cover_quality)
        fit_cover(image, self.thumbnail_box).save(directory / thumb_name, "WEBP", quality=self.settings.thumbnail_quality)

        base_key = self.storage.covers_dir(entity_kind, slug)
        return CoverPaths(cover_path=f"{base_key}/{cover_name}", thumb_path=f"{base_key}/{thumb_name}")


__all__ = ["CoverPaths", "DerivativeGenerator", "DerivativeResult", "fit_cover", "has_alpha"]
