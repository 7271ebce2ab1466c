from __future__ import annotations

import io
import random
import zipfile
from pathlib import Path
from typing import Mapping, Sequence, Tuple

import jwt
from PIL import Image

TEST_JWT_SECRET = "test-secret"

RED = (220, 40, 40)
GREEN = (40, 200, 60)
BLUE = (40, 40, 220)


def noise_image(seed: int, size: Tuple[int, int] = (320, 240), base: Sequence[int] = RED, mode: str = "RGB") -> Image.Image:
    """Blocky random pattern around ``base``; distinct seeds give distinct perceptual hashes."""
    rng = random.Random(seed)
    grid_w, grid_h = 16, 12
    cells = [
        tuple(max(0, min(255, channel + rng.randint(-35, 35))) for channel in base[:3])
        for _ in range(grid_w * grid_h)
    ]
    small = Image.new("RGB", (grid_w, grid_h))
    small.putdata(cells)
    image = small.resize(size, Image.Resampling.NEAREST)
    if mode == "RGBA":
        image = image.convert("RGBA")
        image.putalpha(180)
    return image


def smooth_image(size: Tuple[int, int] = (640, 480)) -> Image.Image:
    """Large soft shapes, the kind of picture that survives lossy re-encoding."""
    width, height = size
    gradient = Image.linear_gradient("L").resize(size)
    image = Image.merge("RGB", (gradient, gradient.transpose(Image.Transpose.FLIP_LEFT_RIGHT), Image.new("L", size, 90)))
    stripe = Image.new("RGB", (width // 3, height), (250, 250, 250))
    image.paste(stripe, (width // 3, 0))
    return image


def encode(image: Image.Image, fmt: str = "PNG", **params) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, fmt, **params)
    return buffer.getvalue()


def png_bytes(seed: int, base: Sequence[int] = RED, size: Tuple[int, int] = (320, 240)) -> bytes:
    return encode(noise_image(seed, size=size, base=base))


def build_zip(path: Path, entries: Mapping[str, bytes] | Sequence[Tuple[str, bytes]]) -> Path:
    """Write a ZIP with the given members in order; names ending in ``/`` become directories."""
    items = entries.items() if isinstance(entries, Mapping) else entries
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as archive:
        for name, payload in items:
            if name.endswith("/"):
                archive.writestr(zipfile.ZipInfo(name), b"")
            else:
                archive.writestr(name, payload)
    return path


def mean_colour(path: Path) -> Tuple[float, float, float]:
    with Image.open(path) as image:
        rgb = image.convert("RGB")
        pixels = list(rgb.getdata())
    count = len(pixels)
    return tuple(sum(pixel[index] for pixel in pixels) / count for index in range(3))  # type: ignore[return-value]


def build_token(*, scopes: list[str] | None = None, user_id: str | None = "admin-1") -> str:
    payload: dict[str, object] = {}
    if scopes:
        payload["scopes"] = scopes
    if user_id:
        payload["sub"] = user_id
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")
