from __future__ import annotations

import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str, *, fallback: str = "set") -> str:
    """Lower-case ASCII slug with runs of other characters collapsed to ``-``."""
    normalised = unicodedata.normalize("NFKD", str(text)).encode("ascii", "ignore").decode("ascii")
    slug = _NON_ALNUM.sub("-", normalised.lower()).strip("-")
    return slug or fallback


_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")


def safe_stem(filename: str) -> str:
    """Filesystem-safe stem of an uploaded file name (extension removed)."""
    stem = filename.rsplit("/", 1)[-1]
    if "." in stem:
        stem = stem.rsplit(".", 1)[0]
    normalised = unicodedata.normalize("NFKD", stem).encode("ascii", "ignore").decode("ascii")
    return _UNSAFE_FILENAME.sub("_", normalised).strip("._") or "file"


def suffixed(base_slug: str, attempt: int) -> str:
    """Candidate slug for the given attempt: ``base``, ``base-2``, ``base-3``..."""
    if attempt <= 1:
        return base_slug
    return f"{base_slug}-{attempt}"


__all__ = ["safe_stem", "slugify", "suffixed"]
