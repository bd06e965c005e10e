"""
Custom exception hierarchy for the photo importer.

Per-file conditions (rejections, copy failures) are turned into events at
the file's own processing boundary; only InputRootError and unexpected
errors abort a run.
"""
from .models import Rejection


class PhotoImporterError(Exception):
    """Base exception for all photo importer errors."""
    pass


class RejectedFileError(PhotoImporterError):
    """A file the importer recognizes but cannot place in the dated tree."""
    reason: Rejection

    def __init__(self, path, message: str):
        super().__init__(f"{message}: {path}")
        self.path = path


class NotAPhotoError(RejectedFileError):
    """Raised when a file does not have a photo extension."""
    reason = Rejection.NOT_PHOTO

    def __init__(self, path):
        super().__init__(path, "not a photo")


class BadMetadataError(RejectedFileError):
    """Raised when EXIF metadata is unreadable or lacks date, make or model."""
    reason = Rejection.BAD_METADATA

    def __init__(self, path, detail: str = "bad exif"):
        super().__init__(path, detail)


class FileOperationError(PhotoImporterError):
    """Raised when a copy cannot be carried out."""
    pass


class InputRootError(PhotoImporterError):
    """Raised when the input root cannot be walked at all."""
    pass
