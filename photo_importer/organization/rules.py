import logging
import re
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List

from .. import config
from ..config import ImportOptions
from ..exceptions import NotAPhotoError, BadMetadataError, RejectedFileError
from ..models import Action, Destination, Entry, Metadata, PlannedAction

# Same character class as JavaScript's \w plus '-': ASCII only
_UNSAFE_CAMERA_CHARS = re.compile(r'[^\w\-]+', re.ASCII)


def camera_name(make: str, model: str) -> str:
    """
    Joins make and model tokens with '-', dropping repeated tokens.

    'Canon' + 'Canon EOS 5D' -> 'Canon-EOS-5D'
    """
    tokens: List[str] = []
    for token in make.split() + model.split():
        if token not in tokens:
            tokens.append(token)
    return _UNSAFE_CAMERA_CHARS.sub('', '-'.join(tokens))


def build_destination_path(output_root: Path, taken_at: datetime, camera: str) -> Path:
    folder = output_root / config.FOLDER_PATTERN.format(
        year=taken_at.year, month=taken_at.month, day=taken_at.day
    )
    name = config.FILENAME_PATTERN.format(
        hour=taken_at.hour, minute=taken_at.minute, second=taken_at.second, camera=camera
    )
    return folder / f"{name}{config.PHOTO_OUTPUT_EXT}"


def destination_for(output_root: Path, metadata: Metadata) -> Path:
    return build_destination_path(
        output_root, metadata.timestamp, camera_name(metadata.make, metadata.model)
    )


class DestinationResolver:
    """
    Decides what happens to one source file.

    Photos with usable metadata are planned as COPY or SKIP depending on
    what is already at their destination. Rejected files go to the bucket
    configured for their reason (OMIT) or are reported as failures (FAIL).
    """

    def __init__(self, options: ImportOptions, reader):
        self.options = options
        self.reader = reader

    def resolve(self, source: Entry) -> PlannedAction:
        try:
            destination = self._get_destination(source)
        except RejectedFileError as e:
            return self._rejected(source, e)
        except OSError as e:
            logging.debug(f"Cannot resolve destination for {source.path}: {e}")
            return PlannedAction(source, Destination(None), Action.FAIL, e)

        # Destination at least as large as the source is taken as a finished copy
        if source.size > destination.size:
            action = Action.COPY
        else:
            logging.debug(f"{destination.path} already present ({destination.size} bytes)")
            action = Action.SKIP
        return PlannedAction(source, destination, action)

    def _get_destination(self, source: Entry) -> Destination:
        if source.path.suffix.lower() not in config.PHOTO_EXTS:
            raise NotAPhotoError(source.path)

        metadata = self.reader.read(source.path)
        if metadata.timestamp is None or not metadata.make or not metadata.model:
            raise BadMetadataError(source.path)

        dest_path = destination_for(self.options.output_root, metadata)
        if not self.options.dry_run:
            dest_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            size = dest_path.stat().st_size
        except FileNotFoundError:
            size = 0
        return Destination(dest_path, size)

    def _rejected(self, source: Entry, error: RejectedFileError) -> PlannedAction:
        bucket = self.options.bucket_for(error.reason)
        if bucket is None:
            return PlannedAction(source, Destination(None), Action.FAIL, error)
        return PlannedAction(source, Destination(bucket / source.path.name), Action.OMIT, error)

    def recheck(self, planned: PlannedAction) -> PlannedAction:
        """Re-decides COPY/SKIP after the destination path was rewritten."""
        try:
            size = planned.destination.path.stat().st_size
        except FileNotFoundError:
            size = 0
        except OSError as e:
            return replace(planned, action=Action.FAIL, error=e)
        action = Action.COPY if planned.source.size > size else Action.SKIP
        return replace(planned, destination=Destination(planned.destination.path, size), action=action)
