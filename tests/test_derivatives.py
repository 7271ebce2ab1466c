from __future__ import annotations

from PIL import Image

from gallery.ingest.derivatives import DerivativeGenerator, fit_cover, has_alpha

from factories import encode, noise_image


def _store(storage, key: str, image: Image.Image, fmt: str = "PNG") -> str:
    storage.write_bytes(key, encode(image, fmt))
    return key


def test_fit_cover_crops_large_sources_to_the_box():
    result = fit_cover(noise_image(1, size=(1600, 900)), (400, 300))
    assert result.size == (400, 300)


def test_fit_cover_never_enlarges_small_sources():
    assert fit_cover(noise_image(1, size=(200, 100)), (400, 300)).size == (200, 100)
    assert fit_cover(noise_image(1, size=(900, 120)), (400, 300)).size == (400, 120)


def test_display_passes_through_images_within_bounds(settings, storage):
    generator = DerivativeGenerator(settings, storage)
    key = _store(storage, "uploads/media/independent/set/small_abcd1234.png", noise_image(1, size=(1000, 800)))

    display_key, size = generator.create_display(key, "small_abcd1234")

    assert display_key == key
    assert size == (1000, 800)


def test_display_never_upscales(settings, storage):
    generator = DerivativeGenerator(settings, storage)
    key = _store(storage, "uploads/media/independent/set/tiny_abcd1234.png", noise_image(1, size=(60, 40)))

    display_key, size = generator.create_display(key, "tiny_abcd1234")

    assert display_key == key
    assert size == (60, 40)


def test_large_opaque_image_becomes_progressive_jpeg(settings, storage):
    generator = DerivativeGenerator(settings, storage)
    key = _store(storage, "uploads/media/independent/set/wide_abcd1234.png", noise_image(2, size=(3000, 1500)))

    display_key, size = generator.create_display(key, "wide_abcd1234")

    assert display_key == "uploads/media/independent/set/wide_abcd1234_display.jpg"
    assert size == (2048, 1024)
    with Image.open(storage.resolve(display_key)) as display:
        assert display.format == "JPEG"
        assert display.size == (2048, 1024)
        assert display.info.get("progressive") or display.info.get("progression")


def test_large_alpha_image_becomes_png(settings, storage):
    generator = DerivativeGenerator(settings, storage)
    source = noise_image(3, size=(1300, 2600), mode="RGBA")
    key = _store(storage, "uploads/media/independent/set/tall_abcd1234.png", source)

    display_key, size = generator.create_display(key, "tall_abcd1234")

    assert display_key.endswith("tall_abcd1234_display.png")
    assert size == (1024, 2048)
    with Image.open(storage.resolve(display_key)) as display:
        assert display.format == "PNG"
        assert has_alpha(display)


def test_display_applies_exif_orientation(settings, storage):
    generator = DerivativeGenerator(settings, storage)
    stored = noise_image(4, size=(2400, 3000)).transpose(Image.Transpose.ROTATE_90)
    exif = Image.Exif()
    exif[0x0112] = 6
    key = "uploads/media/independent/set/rotated_abcd1234.jpg"
    storage.write_bytes(key, encode(stored, "JPEG", quality=90, exif=exif.tobytes()))

    _, size = generator.create_display(key, "rotated_abcd1234")

    # Stored 3000x2400 landscape, shown 2400x3000 portrait.
    assert size == (1638, 2048)


def test_thumbnail_is_cover_cropped_webp(settings, storage):
    generator = DerivativeGenerator(settings, storage)
    key = _store(storage, "uploads/media/independent/set/big_abcd1234.png", noise_image(5, size=(1200, 1200)))

    thumb_key = generator.create_thumbnail(storage.resolve(key), "uploads/thumbs/independent/set/big_abcd1234.webp")

    assert thumb_key == "uploads/thumbs/independent/set/big_abcd1234.webp"
    with Image.open(storage.resolve(thumb_key)) as thumb:
        assert thumb.format == "WEBP"
        assert thumb.size == (400, 300)


def test_thumbnail_failure_is_not_fatal(settings, storage):
    generator = DerivativeGenerator(settings, storage)
    storage.write_bytes("uploads/media/independent/set/broken.jpg", b"not really a jpeg")

    thumb_key = generator.create_thumbnail(
        storage.resolve("uploads/media/independent/set/broken.jpg"),
        "uploads/thumbs/independent/set/broken.webp",
    )

    assert thumb_key is None
    assert not storage.exists("uploads/thumbs/independent/set/broken.webp")


def test_derive_image_reports_dimensions_and_paths(settings, storage):
    generator = DerivativeGenerator(settings, storage)
    key = _store(storage, "uploads/media/studio/set/pic_abcd1234.png", noise_image(6, size=(640, 480)))

    result = generator.derive_image(key, "uploads/thumbs/studio/set", "pic_abcd1234")

    assert result.display_path == key
    assert result.thumb_path == "uploads/thumbs/studio/set/pic_abcd1234.webp"
    assert (result.width, result.height) == (640, 480)
    assert result.duration is None
    assert result.warnings == []


def test_cover_writes_cover_and_thumb(settings, storage):
    generator = DerivativeGenerator(settings, storage)

    paths = generator.create_cover(noise_image(8, size=(1600, 1200)), "sets", "beach-day", "cover")

    assert paths.cover_path == "uploads/covers/sets/beach-day/cover_beach-day.webp"
    assert paths.thumb_path == "uploads/covers/sets/beach-day/cover_beach-day_thumb.webp"
    with Image.open(storage.resolve(paths.cover_path)) as cover:
        assert cover.size == (800, 600)
    with Image.open(storage.resolve(paths.thumb_path)) as thumb:
        assert thumb.size == (400, 300)


def test_video_dimensions_fall_back_to_the_extracted_frame(settings, storage, monkeypatch):
    def no_ffprobe(*args, **kwargs):
        raise FileNotFoundError("ffprobe")

    def fake_extract(video, timestamp, out, binary="ffmpeg"):
        noise_image(9, size=(640, 360)).save(out, "JPEG")
        return (640, 360)

    monkeypatch.setattr("gallery.ingest.derivatives.probe_video", no_ffprobe)
    monkeypatch.setattr("gallery.ingest.derivatives.extract_frame", fake_extract)
    generator = DerivativeGenerator(settings, storage)
    storage.write_bytes("uploads/media/studio/set/clip_abcd1234.mp4", b"\x00\x00\x00\x18ftypmp42")

    result = generator.derive_video("uploads/media/studio/set/clip_abcd1234.mp4", "uploads/thumbs/studio/set", "clip_abcd1234")

    assert (result.width, result.height) == (640, 360)
    assert result.duration is None
    assert result.thumb_path == "uploads/thumbs/studio/set/clip_abcd1234.webp"
    assert any("metadata unavailable" in warning for warning in result.warnings)
