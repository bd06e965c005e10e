import logging
from typing import Optional

from .config import ImportOptions
from .exceptions import InputRootError
from .metadata.extract import MetadataReader
from .models import ImportSummary
from .organization.mover import FileMover
from .organization.rules import DestinationResolver
from .reporting import CollectingSink, EventSink, FanOutSink
from .scanning.filesystem import DirectoryWalker


class PhotoImporterApp:
    def __init__(self,
                 options: ImportOptions,
                 reader=None,
                 sink: Optional[EventSink] = None):
        self.options = options
        self.reader = reader or MetadataReader()
        self.sink = sink

    def run(self) -> ImportSummary:
        """
        Imports every file under the input root in one pass.
        1. Walk directories depth-first, one at a time
        2. Resolve destinations and deduplicate per directory
        3. Copy/skip/omit/fail each file, reporting an event per file

        Per-file problems end up in events; only an unusable input root or an
        unexpected error raises.
        """
        input_root = self.options.input_root
        if not input_root.is_dir():
            raise InputRootError(f"Input root is not a directory: {input_root}")

        collector = CollectingSink()
        sink = FanOutSink(collector, self.sink)

        resolver = DestinationResolver(self.options, self.reader)
        mover = FileMover(sink, dry_run=self.options.dry_run)
        walker = DirectoryWalker(
            resolver,
            mover,
            max_workers=self.options.concurrency,
            skip_dirs=self.options.excluded_dirs(),
        )

        logging.info(f"Importing {input_root} -> {self.options.output_root} "
                     f"(workers={self.options.concurrency}, dry_run={self.options.dry_run})")
        walker.walk(input_root)

        logging.info(f"Import complete: {collector.summary}")
        return collector.summary
