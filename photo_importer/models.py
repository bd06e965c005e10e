from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Optional


class Rejection(Enum):
    """Why a file cannot go into the date-organized tree."""
    NOT_PHOTO = "not a photo"
    BAD_METADATA = "bad exif"


class Action(Enum):
    COPY = "copy"
    SKIP = "skip"
    OMIT = "omit"
    FAIL = "fail"


class EventKind(Enum):
    SKIPPED = "skipped"
    OMITTED = "omitted"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class Entry:
    """
    A classified directory entry found during a walk.
    """
    path: Path
    is_directory: bool
    is_file: bool
    size: int


@dataclass(frozen=True)
class Metadata:
    """
    Capture metadata read from a photo's EXIF header.
    """
    original: Optional[datetime]   # EXIF DateTimeOriginal
    modified: Optional[datetime]   # Image DateTime, used when original is missing
    make: str
    model: str

    @property
    def timestamp(self) -> Optional[datetime]:
        return self.original or self.modified


@dataclass(frozen=True)
class Destination:
    path: Optional[Path]
    size: int = 0


@dataclass(frozen=True)
class PlannedAction:
    """
    What the importer will do with one source file.

    Built by the resolver; the deduplicator may hand back a copy with a
    rewritten destination path, nothing else changes before execution.
    """
    source: Entry
    destination: Destination
    action: Action
    error: Optional[Exception] = None


@dataclass(frozen=True)
class ImportEvent:
    kind: EventKind
    source: Entry
    destination: Optional[Destination] = None
    error: Optional[Exception] = None


@dataclass
class ImportSummary:
    counts: Dict[EventKind, int] = field(default_factory=lambda: {kind: 0 for kind in EventKind})

    def add(self, kind: EventKind):
        self.counts[kind] += 1

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def __str__(self) -> str:
        parts = ", ".join(f"{kind.value}={count}" for kind, count in self.counts.items())
        return f"{self.total} files ({parts})"
