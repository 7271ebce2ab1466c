from __future__ import annotations

import pytest
from PIL import Image

from gallery.core.config import get_settings
from gallery.core.storage import get_storage
from gallery.ingest.derivatives import DerivativeGenerator
from gallery.ingest.video import (
    extract_frame,
    frame_offset_seconds,
    parse_video_metadata,
    render_placeholder,
)

from factories import mean_colour


@pytest.mark.parametrize(
    ("duration", "expected"),
    [(None, 1.0), (0.0, 1.0), (4.0, 1.0), (25.0, 2.5), (120.0, 12.0), (3600.0, 30.0)],
)
def test_frame_offset_is_clamped(duration, expected):
    assert frame_offset_seconds(duration) == pytest.approx(expected)


def test_parse_video_metadata_uses_first_video_stream():
    raw = {
        "format": {"duration": "12.3456"},
        "streams": [
            {"codec_type": "audio", "codec_name": "aac"},
            {"codec_type": "video", "codec_name": "h264", "width": 1920, "height": 1080},
            {"codec_type": "video", "codec_name": "mjpeg", "width": 320, "height": 180},
        ],
    }

    metadata = parse_video_metadata(raw)

    assert (metadata.width, metadata.height) == (1920, 1080)
    assert metadata.duration == pytest.approx(12.346)
    assert metadata.codec == "h264"


def test_parse_video_metadata_tolerates_missing_values():
    metadata = parse_video_metadata({"format": {"duration": "N/A"}, "streams": [{"codec_type": "video", "width": 0}]})

    assert metadata.width is None
    assert metadata.height is None
    assert metadata.duration is None


def test_parse_video_metadata_falls_back_to_stream_duration():
    metadata = parse_video_metadata({"format": {}, "streams": [{"codec_type": "video", "duration": "8.0"}]})
    assert metadata.duration == pytest.approx(8.0)


def test_extract_frame_without_ffmpeg_returns_none(tmp_path):
    output = tmp_path / "frame.jpg"
    assert extract_frame(tmp_path / "clip.mp4", 1.0, output, binary=str(tmp_path / "no-ffmpeg")) is None
    assert not output.exists()


def test_placeholder_has_requested_size():
    assert render_placeholder((400, 300)).size == (400, 300)


def test_video_without_ffmpeg_gets_placeholder_thumbnail(settings, storage):
    generator = DerivativeGenerator(settings, storage)
    key = "uploads/media/independent/set/clip_abcd1234.mp4"
    storage.write_bytes(key, b"\x00\x00\x00\x18ftypmp42 not a real movie")

    result = generator.derive_video(key, "uploads/thumbs/independent/set", "clip_abcd1234")

    assert result.display_path == key
    assert result.thumb_path == "uploads/thumbs/independent/set/clip_abcd1234.webp"
    assert (result.width, result.height, result.duration) == (None, None, None)
    assert result.warnings
    with Image.open(storage.resolve(result.thumb_path)) as thumb:
        assert thumb.format == "WEBP"
        assert thumb.size == (400, 300)


def test_configured_placeholder_is_used(monkeypatch, tmp_path):
    placeholder = tmp_path / "placeholder.png"
    Image.new("RGB", (800, 600), (10, 200, 10)).save(placeholder)
    monkeypatch.setenv("GALLERY_VIDEO_PLACEHOLDER_PATH", str(placeholder))
    get_settings.cache_clear()
    settings = get_settings()
    storage = get_storage(settings)
    generator = DerivativeGenerator(settings, storage)
    key = "uploads/media/independent/set/clip_abcd1234.mp4"
    storage.write_bytes(key, b"not a movie")

    result = generator.derive_video(key, "uploads/thumbs/independent/set", "clip_abcd1234")

    red, green, blue = mean_colour(storage.resolve(result.thumb_path))
    assert green > 150 and red < 60 and blue < 60
