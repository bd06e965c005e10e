import csv
import logging
import threading
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .exceptions import FileOperationError
from .models import EventKind, ImportEvent, ImportSummary


class EventSink:
    """
    Receives one event per processed file.

    emit() is called from pool workers, so implementations must be thread-safe.
    """

    def emit(self, event: ImportEvent):
        raise NotImplementedError

    def close(self):
        pass


class CollectingSink(EventSink):
    """Keeps every event in memory and counts them per kind."""

    def __init__(self):
        self.events: List[ImportEvent] = []
        self.summary = ImportSummary()
        self._lock = threading.Lock()

    def emit(self, event: ImportEvent):
        with self._lock:
            self.events.append(event)
            self.summary.add(event.kind)

    def of_kind(self, kind: EventKind) -> List[ImportEvent]:
        with self._lock:
            return [e for e in self.events if e.kind is kind]


def printable(text) -> str:
    """Replaces undecodable filename bytes (surrogate escapes) with \\xNN sequences."""
    return str(text).encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")


def describe(event: ImportEvent) -> str:
    """One human readable line for an event."""
    return printable(_describe(event))


def _describe(event: ImportEvent) -> str:
    src = event.source
    dest = event.destination
    if event.kind is EventKind.SKIPPED:
        return f"skipped {src.path} -> {dest.path} ({src.size} -> {dest.size})"
    if event.kind is EventKind.OMITTED:
        return f"copied {src.path} -> {dest.path} ({event.error})"
    if event.kind is EventKind.FAILED:
        return f"failed to copy {src.path} due to {event.error}"
    return f"copied {src.path} -> {dest.path}"


class ConsoleReporter(EventSink):
    """
    Prints a line per file as soon as it is processed, under a tqdm counter.
    """

    def __init__(self, disable_progress: bool = False):
        self._lock = threading.Lock()
        self._bar = tqdm(desc="Importing", unit="file", disable=disable_progress)

    def emit(self, event: ImportEvent):
        line = describe(event)
        with self._lock:
            self._bar.update(1)
            tqdm.write(line)
        if event.kind is EventKind.FAILED:
            logging.debug(line)

    def close(self):
        self._bar.close()


class CsvReportWriter(EventSink):
    """
    Writes a per-file status report.

    Columns: source,size,status,destination,destination_size,error
    """

    HEADERS = ["source", "size", "status", "destination", "destination_size", "error"]

    def __init__(self, out_csv: Path):
        self._lock = threading.Lock()
        try:
            out_csv.parent.mkdir(parents=True, exist_ok=True)
            # surrogateescape writes undecodable filenames back as their original bytes
            self._file = out_csv.open("w", newline="", encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            raise FileOperationError(f"Cannot write report {out_csv}: {e}") from e
        self._writer = csv.writer(self._file)
        self._writer.writerow(self.HEADERS)

    def emit(self, event: ImportEvent):
        dest = event.destination
        row = [
            str(event.source.path),
            event.source.size,
            event.kind.value,
            str(dest.path) if dest else "",
            dest.size if dest else "",
            str(event.error) if event.error else "",
        ]
        with self._lock:
            self._writer.writerow(row)

    def close(self):
        with self._lock:
            self._file.close()


class FanOutSink(EventSink):
    """Forwards each event to several sinks."""

    def __init__(self, *sinks: Optional[EventSink]):
        self.sinks = [s for s in sinks if s is not None]

    def emit(self, event: ImportEvent):
        for sink in self.sinks:
            sink.emit(event)

    def close(self):
        for sink in self.sinks:
            sink.close()
