import threading
from datetime import datetime
from pathlib import Path

import pytest

from photo_importer.config import ImportOptions
from photo_importer.exceptions import BadMetadataError
from photo_importer.models import Metadata, Rejection
from photo_importer.reporting import CollectingSink

TAKEN_AT = datetime(2020, 5, 1, 10, 20, 30)


class FakeReader:
    """
    Stands in for MetadataReader: returns the same metadata for every file
    unless a per-name override (Metadata or exception) is registered.
    """

    def __init__(self, default=None):
        self.default = default or Metadata(original=TAKEN_AT, modified=None, make="Acme", model="X100")
        self.overrides = {}
        self.calls = []
        self._lock = threading.Lock()

    def read(self, path: Path) -> Metadata:
        with self._lock:
            self.calls.append(path)
        result = self.overrides.get(path.name, self.default)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def reader():
    return FakeReader()


@pytest.fixture
def sink():
    return CollectingSink()


@pytest.fixture
def src(tmp_path):
    p = tmp_path / "src"
    p.mkdir()
    return p


@pytest.fixture
def dest(tmp_path):
    return tmp_path / "dest"


@pytest.fixture
def options(src, dest):
    """Options with both rejections reported as failures."""
    return ImportOptions(input_root=src, output_root=dest, concurrency=4)


@pytest.fixture
def bucket_options(src, dest):
    return ImportOptions.with_default_buckets(src, dest, concurrency=4)


def bad_metadata(name="x.jpg"):
    return BadMetadataError(Path(name))
