import shutil
import logging
from pathlib import Path

from .. import config
from ..exceptions import FileOperationError
from ..models import Action, EventKind, ImportEvent, PlannedAction


def stream_copy(src: Path, dest: Path, chunk_size: int = config.COPY_CHUNK_SIZE):
    """
    Copies src to dest in chunks, then carries over timestamps like shutil.copy2.
    A destination that already holds fewer bytes is overwritten from the start.
    """
    if dest.exists() and src.samefile(dest):
        raise shutil.SameFileError(f"{src} and {dest} are the same file")

    with open(src, 'rb') as fsrc, open(dest, 'wb') as fdst:
        shutil.copyfileobj(fsrc, fdst, chunk_size)

    try:
        shutil.copystat(src, dest)
    except OSError as e:
        # Bytes are in place; stat copying fails on some filesystems (FAT, SMB)
        logging.debug(f"Could not copy timestamps to {dest}: {e}")


class FileMover:
    """
    Applies planned actions and reports one event per file to the sink.
    """

    def __init__(self, sink, dry_run: bool = False):
        self.sink = sink
        self.dry_run = dry_run

    def execute(self, planned: PlannedAction):
        action = planned.action
        src = planned.source.path
        dest = planned.destination.path

        if action is Action.FAIL:
            return self._emit(EventKind.FAILED, planned)
        if action is Action.SKIP:
            return self._emit(EventKind.SKIPPED, planned)

        if action not in (Action.COPY, Action.OMIT):
            raise ValueError(f"Unknown action: {action}")

        if self.dry_run:
            logging.info(f"[DRY RUN] Copy {src} -> {dest}")
        else:
            try:
                if action is Action.OMIT:
                    dest.parent.mkdir(parents=True, exist_ok=True)
                stream_copy(src, dest)
            except OSError as e:
                logging.debug(f"Failed to copy {src} -> {dest}: {e}")
                error = FileOperationError(f"Failed to copy {src} -> {dest}: {e}")
                error.__cause__ = e
                return self._emit(EventKind.FAILED, planned, error)

        kind = EventKind.OMITTED if action is Action.OMIT else EventKind.SUCCEEDED
        return self._emit(kind, planned)

    def _emit(self, kind: EventKind, planned: PlannedAction, error=None) -> ImportEvent:
        event = ImportEvent(
            kind=kind,
            source=planned.source,
            destination=planned.destination if planned.destination.path is not None else None,
            error=error or planned.error,
        )
        self.sink.emit(event)
        return event
