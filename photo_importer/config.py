"""
Configuration constants and per-run options for the photo importer.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set

from .models import Rejection

# --- File Type Definitions ---
# Only JPEGs carry the EXIF header the importer understands.
PHOTO_EXTS = {'.jpg'}
PHOTO_OUTPUT_EXT = '.jpg'

# --- Metadata Parsing ---
ORIGINAL_DATE_TAG = 'EXIF DateTimeOriginal'
MODIFIED_DATE_TAG = 'Image DateTime'
MAKE_TAG = 'Image Make'
MODEL_TAG = 'Image Model'
EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"

# --- Organization ---
# {output}/{year}/{MM}-{DD}/{hh}-{mm}-{ss}-{camera}.jpg
FOLDER_PATTERN = "{year}/{month:02d}-{day:02d}"
FILENAME_PATTERN = "{hour:02d}-{minute:02d}-{second:02d}-{camera}"
DUPLICATE_SUFFIX = "__{n}"

# Default bucket folder names under the output root
NO_EXIF_DIR = "no-exif"
OTHER_DIR = "other"

# --- Copying & Performance ---
COPY_CHUNK_SIZE = 1024 * 1024  # 1 MB chunks for streamed copies
DEFAULT_CONCURRENCY = (os.cpu_count() or 1) * 2


@dataclass
class ImportOptions:
    """
    Settings for a single import run.

    `buckets` maps each rejection reason to the folder that receives such
    files, or to None when the file should be reported as a failure.
    """
    input_root: Path = Path('.')
    output_root: Path = Path('.')
    buckets: Dict[Rejection, Optional[Path]] = field(
        default_factory=lambda: {Rejection.NOT_PHOTO: None, Rejection.BAD_METADATA: None}
    )
    concurrency: int = DEFAULT_CONCURRENCY
    skip_dirs: Set[Path] = field(default_factory=set)
    dry_run: bool = False

    @classmethod
    def with_default_buckets(cls, input_root: Path, output_root: Path, **kwargs) -> "ImportOptions":
        """Routes bad-metadata photos to output/no-exif and everything else to output/other."""
        buckets = {
            Rejection.BAD_METADATA: output_root / NO_EXIF_DIR,
            Rejection.NOT_PHOTO: output_root / OTHER_DIR,
        }
        return cls(input_root=input_root, output_root=output_root, buckets=buckets, **kwargs)

    def bucket_for(self, reason: Rejection) -> Optional[Path]:
        return self.buckets.get(reason)

    def excluded_dirs(self) -> Set[Path]:
        """Directories the walker must not descend into: skip list, buckets and a nested output root."""
        excluded = {Path(p) for p in self.skip_dirs}
        excluded.update(p for p in self.buckets.values() if p is not None)
        if self.output_root.resolve() != self.input_root.resolve():
            excluded.add(self.output_root)
        return {p.resolve() for p in excluded}
