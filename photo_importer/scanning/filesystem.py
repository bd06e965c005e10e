import errno
import logging
import os
import stat
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Set

from ..exceptions import InputRootError
from ..models import Action, Entry, PlannedAction
from ..organization.dedupe import deduplicate
from ..organization.mover import FileMover
from ..organization.rules import DestinationResolver


def classify(path: Path) -> Optional[Entry]:
    """
    Stats a directory entry (following symlinks).

    Returns None when the entry vanished, is not accessible or is a symlink
    loop, so a walk never stops because of one racing entry.
    """
    try:
        info = os.stat(path)
    except (FileNotFoundError, PermissionError):
        return None
    except OSError as e:
        if e.errno == errno.ELOOP:
            return None
        raise

    return Entry(
        path=path,
        is_directory=stat.S_ISDIR(info.st_mode),
        is_file=stat.S_ISREG(info.st_mode),
        size=info.st_size,
    )


class DirectoryWalker:
    """
    Depth-first walk that imports one directory at a time.

    Within a directory, classification, destination resolution and copying
    run on a bounded thread pool. Subdirectories are walked one after the
    other so at most one directory's files are in flight.
    """

    def __init__(self,
                 resolver: DestinationResolver,
                 mover: FileMover,
                 max_workers: int,
                 skip_dirs: Optional[Set[Path]] = None):
        self.resolver = resolver
        self.mover = mover
        self.max_workers = max(1, max_workers)
        self.skip_dirs = skip_dirs or set()

    def walk(self, root: Path):
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            self._walk(root, pool, is_root=True)

    def _walk(self, directory: Path, pool: ThreadPoolExecutor, is_root: bool = False):
        entries = self._list(directory, is_root)

        classified = [e for e in pool.map(classify, entries) if e is not None]
        # entries are already in listing order
        directories = [e.path for e in classified if e.is_directory]
        files = [e for e in classified if e.is_file]

        if files:
            self._import_batch(files, pool)

        for subdir in directories:
            if self._is_skipped(subdir):
                logging.info(f"Skipping {subdir}")
                continue
            self._walk(subdir, pool)

    def _import_batch(self, files: List[Entry], pool: ThreadPoolExecutor):
        logging.debug(f"Importing {len(files)} files from {files[0].path.parent}")
        planned = list(pool.map(self.resolver.resolve, files))
        planned = self._reconcile(planned, deduplicate(planned))
        # list() drains the iterator so unexpected worker errors surface here
        list(pool.map(self.mover.execute, planned))

    def _reconcile(self, before: List[PlannedAction], after: List[PlannedAction]) -> List[PlannedAction]:
        """Re-checks COPY/SKIP decisions for actions the deduplicator renamed."""
        result = []
        for old, new in zip(before, after):
            if new is not old and new.action in (Action.COPY, Action.SKIP):
                new = self.resolver.recheck(new)
            result.append(new)
        return result

    def _list(self, directory: Path, is_root: bool) -> List[Path]:
        try:
            with os.scandir(directory) as it:
                names = [entry.name for entry in it]
        except OSError as e:
            if is_root:
                raise InputRootError(f"Cannot list input root {directory}: {e}") from e
            if not isinstance(e, (PermissionError, FileNotFoundError)):
                raise
            logging.warning(f"Cannot list {directory}: {e}")
            return []

        # Sort for stable traversal order
        names.sort(key=str.lower)
        return [directory / name for name in names]

    def _is_skipped(self, directory: Path) -> bool:
        if not self.skip_dirs:
            return False
        return directory.resolve() in self.skip_dirs
