from __future__ import annotations

import json
import math
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import cv2  # type: ignore
from PIL import Image, ImageDraw

MIN_FRAME_OFFSET_S = 1.0
MAX_FRAME_OFFSET_S = 30.0
FRAME_OFFSET_RATIO = 0.1

PLACEHOLDER_BACKGROUND = (48, 48, 52)
PLACEHOLDER_FOREGROUND = (170, 170, 176)


@dataclass(slots=True)
class VideoMetadata:
    width: Optional[int] = None
    height: Optional[int] = None
    duration: Optional[float] = None
    codec: Optional[str] = None


def frame_offset_seconds(duration: Optional[float]) -> float:
    """Representative frame position: 10% into the clip, kept within [1s, 30s]."""
    if duration is None or not math.isfinite(duration) or duration <= 0:
        return MIN_FRAME_OFFSET_S
    return min(max(duration * FRAME_OFFSET_RATIO, MIN_FRAME_OFFSET_S), MAX_FRAME_OFFSET_S)


def run_ffprobe(target: Path, *, binary: str = "ffprobe") -> Dict[str, Any]:
    command = [
        binary,
        "-v",
        "error",
        "-show_format",
        "-show_streams",
        "-print_format",
        "json",
        str(target),
    ]
    proc = subprocess.run(
        command,
        check=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    return json.loads(proc.stdout)


def parse_video_metadata(raw: Dict[str, Any]) -> VideoMetadata:
    """Pick the first video stream's geometry and the container duration."""
    streams: List[Dict[str, Any]] = raw.get("streams") or []
    video = next((stream for stream in streams if stream.get("codec_type") == "video"), None)
    metadata = VideoMetadata(duration=_parse_duration((raw.get("format") or {}).get("duration")))
    if video is None:
        return metadata

    metadata.width = _safe_int(video.get("width"))
    metadata.height = _safe_int(video.get("height"))
    metadata.codec = video.get("codec_name")
    if metadata.duration is None:
        metadata.duration = _parse_duration(video.get("duration"))
    return metadata


def probe_video(target: Path, *, binary: str = "ffprobe") -> VideoMetadata:
    return parse_video_metadata(run_ffprobe(target, binary=binary))


def _parse_duration(value: Any) -> Optional[float]:
    if value in (None, "", "N/A"):
        return None
    try:
        duration = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(duration) or duration < 0:
        return None
    return round(duration, 3)


def _safe_int(value: Any) -> Optional[int]:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def extract_frame(
    video_path: Path,
    timestamp: float,
    output_path: Path,
    *,
    binary: str = "ffmpeg",
) -> Tuple[int, int] | None:
    """Grab one frame at ``timestamp`` into ``output_path``; returns its size or None."""
    command = [
        binary,
        "-nostdin",
        "-v",
        "error",
        "-ss",
        f"{max(timestamp, 0.0):.3f}",
        "-i",
        str(video_path),
        "-frames:v",
        "1",
        "-q:v",
        "2",
        "-y",
        str(output_path),
    ]
    try:
        subprocess.run(command, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except (subprocess.CalledProcessError, FileNotFoundError):
        output_path.unlink(missing_ok=True)
        return None

    try:
        return _image_dimensions(output_path)
    except RuntimeError:
        output_path.unlink(missing_ok=True)
        return None


def _image_dimensions(image_path: Path) -> Tuple[int, int]:
    image = cv2.imread(str(image_path))
    if image is None:
        raise RuntimeError(f"Failed to read extracted frame at {image_path}")
    height, width = image.shape[:2]
    return width, height


def render_placeholder(size: Tuple[int, int]) -> Image.Image:
    """Neutral dark tile with a play triangle, used when no frame can be extracted."""
    width, height = size
    image = Image.new("RGB", (width, height), PLACEHOLDER_BACKGROUND)
    draw = ImageDraw.Draw(image)
    radius = max(min(width, height) // 6, 4)
    cx, cy = width // 2, height // 2
    draw.polygon(
        [(cx - radius // 2, cy - radius), (cx - radius // 2, cy + radius), (cx + radius, cy)],
        fill=PLACEHOLDER_FOREGROUND,
    )
    return image


def load_placeholder(configured: Optional[Path], size: Tuple[int, int]) -> Image.Image:
    if configured is not None and Path(configured).is_file():
        with Image.open(configured) as image:
            return image.convert("RGB")
    return render_placeholder(size)


__all__ = [
    "VideoMetadata",
    "extract_frame",
    "frame_offset_seconds",
    "load_placeholder",
    "parse_video_metadata",
    "probe_video",
    "render_placeholder",
    "run_ffprobe",
]
