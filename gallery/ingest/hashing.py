from __future__ import annotations

import io
from dataclasses import dataclass
from hashlib import sha256
from pathlib import Path
from typing import Literal, Optional, Union
from uuid import uuid4

import imagehash
from PIL import Image, ImageOps

HashAlgo = Literal["phash", "sha256"]
ImageSource = Union[bytes, Path]


@dataclass(slots=True, frozen=True)
class HashInfo:
    """A content digest together with the algorithm that produced it."""

    algo: HashAlgo
    value: str

    @property
    def fragment(self) -> str:
        return self.value[:8]


def compute_sha256(path: Path, *, chunk_size: int = 8 * 1024 * 1024) -> str:
    """Return a hexadecimal SHA256 digest for the file.

    Args:
        path: The path to the file.
        chunk_size: The chunk size to use when reading the file.

    Returns:
        The hexadecimal SHA256 digest.
    """
    digest = sha256()
    with Path(path).open("rb") as handle:
        while chunk := handle.read(chunk_size):
            digest.update(chunk)
    return digest.hexdigest()


def sha256_bytes(payload: bytes) -> str:
    return sha256(payload).hexdigest()


def _open_image(source: ImageSource) -> Image.Image:
    if isinstance(source, (bytes, bytearray)):
        return Image.open(io.BytesIO(source))
    return Image.open(Path(source))


def perceptual_hash(source: ImageSource) -> str:
    """DCT perceptual hash of the EXIF-oriented pixels, as a hex string.

    Two encodings of the same picture (PNG and a high quality JPEG, a re-save,
    a stripped EXIF block) hash to the same or a very close value.
    """
    with _open_image(source) as image:
        oriented = ImageOps.exif_transpose(image)
        return str(imagehash.phash(oriented.convert("RGB")))


def hash_image(source: ImageSource) -> HashInfo:
    return HashInfo(algo="phash", value=perceptual_hash(source))


def hash_video(source: ImageSource) -> HashInfo:
    if isinstance(source, (bytes, bytearray)):
        return HashInfo(algo="sha256", value=sha256_bytes(bytes(source)))
    return HashInfo(algo="sha256", value=compute_sha256(Path(source)))


def hamming_distance(left: str, right: str) -> int:
    return imagehash.hex_to_hash(left) - imagehash.hex_to_hash(right)


def filename_fragment(hash_info: Optional[HashInfo]) -> str:
    """Eight hex characters for stored file names; random when the file could not be hashed."""
    return hash_info.fragment if hash_info else uuid4().hex[:8]


__all__ = [
    "HashInfo",
    "compute_sha256",
    "filename_fragment",
    "hamming_distance",
    "hash_image",
    "hash_video",
    "perceptual_hash",
    "sha256_bytes",
]
