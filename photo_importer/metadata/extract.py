import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import exifread

from .. import config
from ..exceptions import BadMetadataError
from ..models import Metadata


class MetadataReader:
    """
    Reads capture metadata from JPEG files using 'exifread'.

    Only the tags needed for organization are looked at:
      - capture time: DateTimeOriginal, falling back to the IFD0 DateTime
      - camera: Make and Model
    A file missing any of these is rejected with BadMetadataError.
    """

    def read(self, path: Path) -> Metadata:
        try:
            with path.open('rb') as f:
                # details=False skips maker notes and thumbnails
                tags = exifread.process_file(f, details=False)
        except OSError:
            raise
        except Exception as e:
            # exifread surfaces malformed headers as assorted exception types
            logging.debug(f"ExifRead failed for {path}: {e}")
            raise BadMetadataError(path, f"unreadable exif ({e})") from e

        if not tags:
            raise BadMetadataError(path, "no exif")

        original = self._parse_exif_date(tags.get(config.ORIGINAL_DATE_TAG))
        modified = self._parse_exif_date(tags.get(config.MODIFIED_DATE_TAG))
        make = self._text(tags.get(config.MAKE_TAG))
        model = self._text(tags.get(config.MODEL_TAG))

        if not (original or modified) or not make or not model:
            raise BadMetadataError(path)

        return Metadata(original=original, modified=modified, make=make, model=model)

    def _text(self, tag) -> Optional[str]:
        if tag is None:
            return None
        value = str(tag).strip().strip('\x00').strip()
        return value or None

    def _parse_exif_date(self, tag) -> Optional[datetime]:
        """EXIF dates look like 'YYYY:MM:DD HH:MM:SS'; anything else counts as missing."""
        value = self._text(tag)
        if not value:
            return None
        try:
            return datetime.strptime(value, config.EXIF_DATE_FORMAT)
        except ValueError:
            return None
