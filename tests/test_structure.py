from __future__ import annotations

from gallery.ingest.archive import ArchiveEntry
from gallery.ingest.structure import infer_set_structure


def _entries(*paths: str) -> list[ArchiveEntry]:
    return [ArchiveEntry(path=path, is_dir=path.endswith("/"), size=10) for path in paths]


def _names(structure) -> dict[str, list[str]]:
    return {name: [item.name for item in files] for name, files in structure.sets.items()}


def test_top_level_folders_become_sets():
    structure = infer_set_structure(_entries("SetA/", "SetA/1.jpg", "SetA/2.png", "SetB/3.webp"))

    assert _names(structure) == {"SetA": ["1.jpg", "2.png"], "SetB": ["3.webp"]}
    assert structure.errors == []
    assert structure.file_count == 3


def test_single_wrapper_directory_is_ignored():
    structure = infer_set_structure(_entries("Upload/", "Upload/SetA/", "Upload/SetA/a.jpg", "Upload/SetB/b.jpg"))

    assert _names(structure) == {"SetA": ["a.jpg"], "SetB": ["b.jpg"]}


def test_depth_is_decided_per_file():
    structure = infer_set_structure(_entries("Root/x.jpg", "Root/SetB/y.jpg"))

    assert _names(structure) == {"Root": ["x.jpg"], "SetB": ["y.jpg"]}


def test_deeper_paths_use_second_segment():
    structure = infer_set_structure(_entries("Wrap/Set/extra/deep.jpg"))

    assert _names(structure) == {"Set": ["deep.jpg"]}


def test_root_level_files_are_reported_and_skipped():
    structure = infer_set_structure(_entries("cover.jpg", "Set/a.jpg"))

    assert _names(structure) == {"Set": ["a.jpg"]}
    assert structure.errors == ['Skipping file "cover.jpg" - not in a set folder']


def test_unsupported_extensions_are_reported_and_skipped():
    structure = infer_set_structure(_entries("Set/notes.txt", "Set/clip.mp4", "Set/a.JPG", "Set/b.heic"))

    assert _names(structure) == {"Set": ["a.JPG", "b.heic"]}
    assert structure.errors == [
        'Skipping file "Set/notes.txt" - not a supported image format',
        'Skipping file "Set/clip.mp4" - not a supported image format',
    ]


def test_archive_order_is_preserved_within_and_across_sets():
    structure = infer_set_structure(_entries("B/2.jpg", "A/9.jpg", "B/1.jpg", "A/3.jpg"))

    assert list(structure.sets) == ["B", "A"]
    assert _names(structure) == {"B": ["2.jpg", "1.jpg"], "A": ["9.jpg", "3.jpg"]}


def test_empty_segments_are_ignored():
    structure = infer_set_structure(_entries("/Set//a.jpg"))

    assert _names(structure) == {"Set": ["a.jpg"]}
