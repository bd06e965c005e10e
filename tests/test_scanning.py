import errno
import os
from pathlib import Path

import pytest

import photo_importer.scanning.filesystem as filesystem
from photo_importer.config import ImportOptions
from photo_importer.exceptions import InputRootError
from photo_importer.models import EventKind, Metadata
from photo_importer.organization.mover import FileMover
from photo_importer.organization.rules import DestinationResolver
from photo_importer.scanning.filesystem import DirectoryWalker, classify

from conftest import FakeReader, TAKEN_AT, bad_metadata


def make_walker(options, reader, sink, skip_dirs=None):
    resolver = DestinationResolver(options, reader)
    mover = FileMover(sink)
    return DirectoryWalker(resolver, mover, max_workers=options.concurrency,
                           skip_dirs=skip_dirs if skip_dirs is not None else options.excluded_dirs())


def test_classify_file_and_directory(tmp_path):
    f = tmp_path / "a.jpg"
    f.write_bytes(b"12345")

    entry = classify(f)
    assert entry.is_file and not entry.is_directory
    assert entry.size == 5

    entry = classify(tmp_path)
    assert entry.is_directory and not entry.is_file


def test_classify_accepts_any_regular_file(tmp_path):
    f = tmp_path / "notes.txt"
    f.write_text("hello")
    assert classify(f).is_file


def test_classify_missing_entry_is_ignored(tmp_path):
    assert classify(tmp_path / "gone.jpg") is None


def test_classify_symlink_loop_is_ignored(tmp_path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    os.symlink(b, a)
    os.symlink(a, b)
    assert classify(a) is None


def test_walk_recurses_into_subdirectories(options, src, dest, sink):
    (src / "top.jpg").write_bytes(b"top")
    sub = src / "2020" / "trip"
    sub.mkdir(parents=True)
    (sub / "deep.jpg").write_bytes(b"deep")

    reader = FakeReader()
    reader.overrides["deep.jpg"] = Metadata(original=TAKEN_AT.replace(second=31), modified=None,
                                            make="Acme", model="X100")

    make_walker(options, reader, sink).walk(src)

    assert sink.summary.counts[EventKind.SUCCEEDED] == 2
    assert (dest / "2020" / "05-01" / "10-20-30-Acme-X100.jpg").read_bytes() == b"top"
    assert (dest / "2020" / "05-01" / "10-20-31-Acme-X100.jpg").read_bytes() == b"deep"


def test_walk_dedups_collisions_within_directory(options, src, dest, sink, reader):
    for name in ("a.jpg", "b.jpg", "c.jpg"):
        (src / name).write_bytes(name.encode())

    make_walker(options, reader, sink).walk(src)

    day = dest / "2020" / "05-01"
    names = sorted(p.name for p in day.iterdir())
    assert names == ["10-20-30-Acme-X100.jpg", "10-20-30-Acme-X100__1.jpg", "10-20-30-Acme-X100__2.jpg"]
    contents = sorted(p.read_bytes() for p in day.iterdir())
    assert contents == [b"a.jpg", b"b.jpg", b"c.jpg"]


def test_walk_twice_only_skips(options, src, dest, reader):
    from photo_importer.reporting import CollectingSink

    for name in ("a.jpg", "b.jpg"):
        (src / name).write_bytes(name.encode() * 10)
    (src / "c.jpg").write_bytes(b"c")

    first = CollectingSink()
    make_walker(options, reader, first).walk(src)
    assert first.summary.counts[EventKind.SUCCEEDED] == 3

    second = CollectingSink()
    make_walker(options, reader, second).walk(src)
    assert second.summary.counts[EventKind.SKIPPED] == 3
    assert second.summary.total == 3

    day = dest / "2020" / "05-01"
    assert len(list(day.iterdir())) == 3
    assert not list(day.glob("*__3*"))


def test_walk_many_files_reports_every_file_once(src, dest, sink, reader):
    options = ImportOptions(input_root=src, output_root=dest, concurrency=8)
    for i in range(500):
        name = f"img_{i:03d}.jpg" if i % 5 else f"note_{i:03d}.txt"
        (src / name).write_bytes(b"x" * (i + 1))

    make_walker(options, reader, sink).walk(src)

    assert sink.summary.total == 500
    sources = [e.source.path for e in sink.events]
    assert len(set(sources)) == 500
    assert sink.summary.counts[EventKind.SUCCEEDED] == 400
    assert sink.summary.counts[EventKind.FAILED] == 100
    assert len(list((dest / "2020" / "05-01").iterdir())) == 400


def test_walk_skips_configured_dirs(options, src, sink, reader):
    skip = src / "skip_me"
    skip.mkdir()
    (skip / "hidden.jpg").write_bytes(b"x")
    (src / "kept.jpg").write_bytes(b"y")

    make_walker(options, reader, sink, skip_dirs={skip.resolve()}).walk(src)

    assert [e.source.path.name for e in sink.events] == ["kept.jpg"]


@pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0, reason="root ignores permissions")
def test_walk_unreadable_subdirectory_is_treated_as_empty(options, src, sink, reader):
    locked = src / "locked"
    locked.mkdir()
    (locked / "secret.jpg").write_bytes(b"x")
    (src / "open.jpg").write_bytes(b"y")
    locked.chmod(0)
    try:
        make_walker(options, reader, sink).walk(src)
    finally:
        locked.chmod(0o755)

    assert [e.source.path.name for e in sink.events] == ["open.jpg"]


def test_walk_missing_root_raises(options, tmp_path, sink, reader):
    with pytest.raises(InputRootError):
        make_walker(options, reader, sink).walk(tmp_path / "nope")


def test_walk_per_file_failures_do_not_stop_the_walk(options, src, sink, reader):
    (src / "good.jpg").write_bytes(b"good")
    (src / "bad.jpg").write_bytes(b"bad")
    reader.overrides["bad.jpg"] = bad_metadata("bad.jpg")
    sub = src / "sub"
    sub.mkdir()
    (sub / "later.txt").write_text("t")

    make_walker(options, reader, sink).walk(src)

    kinds = {e.source.path.name: e.kind for e in sink.events}
    assert kinds == {
        "good.jpg": EventKind.SUCCEEDED,
        "bad.jpg": EventKind.FAILED,
        "later.txt": EventKind.FAILED,
    }


def fail_for(monkeypatch, name, target, error):
    """Makes os.<name> raise `error` for one path and behave normally otherwise."""
    real = getattr(os, name)

    def fake(path, *args, **kwargs):
        if isinstance(path, (str, os.PathLike)) and Path(path) == target:
            raise error
        return real(path, *args, **kwargs)

    monkeypatch.setattr(filesystem.os, name, fake)


def test_classify_permission_denied_is_ignored(monkeypatch, tmp_path):
    f = tmp_path / "a.jpg"
    f.write_bytes(b"x")
    fail_for(monkeypatch, "stat", f, PermissionError(errno.EACCES, "denied"))

    assert classify(f) is None


def test_classify_other_errors_propagate(monkeypatch, tmp_path):
    f = tmp_path / "a.jpg"
    f.write_bytes(b"x")
    fail_for(monkeypatch, "stat", f, OSError(errno.EIO, "I/O error"))

    with pytest.raises(OSError):
        classify(f)


def test_walk_denied_subdirectory_is_treated_as_empty(monkeypatch, options, src, sink, reader):
    locked = src / "locked"
    locked.mkdir()
    (locked / "secret.jpg").write_bytes(b"x")
    (src / "open.jpg").write_bytes(b"y")
    fail_for(monkeypatch, "scandir", locked, PermissionError(errno.EACCES, "denied"))

    make_walker(options, reader, sink).walk(src)

    assert [e.source.path.name for e in sink.events] == ["open.jpg"]


def test_walk_vanished_subdirectory_is_treated_as_empty(monkeypatch, options, src, sink, reader):
    gone = src / "gone"
    gone.mkdir()
    (src / "open.jpg").write_bytes(b"y")
    fail_for(monkeypatch, "scandir", gone, FileNotFoundError(errno.ENOENT, "gone"))

    make_walker(options, reader, sink).walk(src)

    assert sink.summary.total == 1


def test_walk_subdirectory_io_error_is_fatal(monkeypatch, options, src, sink, reader):
    broken = src / "broken"
    broken.mkdir()
    fail_for(monkeypatch, "scandir", broken, OSError(errno.EIO, "I/O error"))

    with pytest.raises(OSError) as excinfo:
        make_walker(options, reader, sink).walk(src)
    assert excinfo.value.errno == errno.EIO


def test_walk_unreadable_root_raises(monkeypatch, options, src, sink, reader):
    fail_for(monkeypatch, "scandir", src, PermissionError(errno.EACCES, "denied"))

    with pytest.raises(InputRootError) as excinfo:
        make_walker(options, reader, sink).walk(src)
    assert isinstance(excinfo.value.__cause__, PermissionError)


def test_walk_visits_subdirectories_in_listing_order(options, src, sink, reader):
    for folder, name in (("B", "x.jpg"), ("a", "y.jpg")):
        (src / folder).mkdir()
        (src / folder / name).write_bytes(b"z")

    make_walker(options, reader, sink).walk(src)

    assert [e.source.path.name for e in sink.events] == ["y.jpg", "x.jpg"]
