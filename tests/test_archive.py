from __future__ import annotations

from pathlib import Path

import pytest

from gallery.ingest.archive import ArchiveEntry, ArchiveExtractor
from gallery.ingest.errors import ArchiveError

from factories import build_zip


def test_entries_are_listed_in_archive_order(tmp_path: Path):
    archive = build_zip(tmp_path / "sets.zip", [("Set/", b""), ("Set/b.jpg", b"bb"), ("Set/a.jpg", b"a")])

    with ArchiveExtractor(archive) as extractor:
        entries = extractor.entries()

    assert entries == [
        ArchiveEntry(path="Set/", is_dir=True, size=0),
        ArchiveEntry(path="Set/b.jpg", is_dir=False, size=2),
        ArchiveEntry(path="Set/a.jpg", is_dir=False, size=1),
    ]


def test_read_and_extract_single_entries(tmp_path: Path):
    payload = b"x" * (3 * 1024 * 1024 + 7)
    archive = build_zip(tmp_path / "sets.zip", {"Set/big.jpg": payload, "Set/small.jpg": b"small"})

    with ArchiveExtractor(archive) as extractor:
        assert extractor.read("Set/small.jpg") == b"small"
        target = extractor.extract_to("Set/big.jpg", tmp_path / "out" / "big.jpg")

    assert target.read_bytes() == payload


def test_missing_entry_raises_archive_error(tmp_path: Path):
    archive = build_zip(tmp_path / "sets.zip", {"Set/a.jpg": b"a"})

    with ArchiveExtractor(archive) as extractor:
        with pytest.raises(ArchiveError):
            extractor.read("Set/missing.jpg")


def test_handle_is_released_on_exit_even_after_errors(tmp_path: Path):
    archive = build_zip(tmp_path / "sets.zip", {"Set/a.jpg": b"a"})
    extractor = ArchiveExtractor(archive)

    with pytest.raises(RuntimeError):
        with extractor:
            raise RuntimeError("boom")

    with pytest.raises(ArchiveError):
        extractor.entries()
    extractor.close()


def test_corrupt_archive_is_rejected(tmp_path: Path):
    bogus = tmp_path / "bogus.zip"
    bogus.write_bytes(b"this is not a zip file")

    with pytest.raises(ArchiveError):
        ArchiveExtractor(bogus).open()


def test_missing_archive_is_rejected(tmp_path: Path):
    with pytest.raises(ArchiveError):
        ArchiveExtractor(tmp_path / "absent.zip").open()
