from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .archive import ArchiveEntry
from .media_types import is_archive_image


@dataclass(slots=True, frozen=True)
class ArchiveFile:
    """A leaf file assigned to a candidate set."""

    path: str
    name: str
    size: int


@dataclass(slots=True)
class SetStructure:
    """Candidate sets in order of first appearance, plus non-fatal skip messages."""

    sets: Dict[str, List[ArchiveFile]] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return sum(len(files) for files in self.sets.values())


def set_name_for(segments: List[str]) -> str:
    # "Set/img.jpg" -> Set ; "Wrapper/Set/img.jpg" -> Set ; deeper paths keep segment[1].
    if len(segments) >= 3:
        return segments[1]
    return segments[0]


def infer_set_structure(entries: Iterable[ArchiveEntry]) -> SetStructure:
    """Group archive entries into sets by directory depth.

    The decision is made per file, so one archive may mix wrapped and
    unwrapped layouts and yield sets from both.
    """
    structure = SetStructure()
    for entry in entries:
        if entry.is_dir:
            continue

        segments = [segment for segment in entry.path.split("/") if segment]
        if len(segments) < 2:
            structure.errors.append(f'Skipping file "{entry.path}" - not in a set folder')
            continue

        filename = segments[-1]
        if not is_archive_image(filename):
            structure.errors.append(f'Skipping file "{entry.path}" - not a supported image format')
            continue

        set_name = set_name_for(segments)
        structure.sets.setdefault(set_name, []).append(ArchiveFile(path=entry.path, name=filename, size=entry.size))
    return structure


__all__ = ["ArchiveFile", "SetStructure", "infer_set_structure", "set_name_for"]
