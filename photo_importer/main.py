import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import config
from .config import ImportOptions
from .core import PhotoImporterApp
from .exceptions import PhotoImporterError
from .models import Rejection
from .reporting import ConsoleReporter, CsvReportWriter, FanOutSink


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to the console and, optionally, a file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )

    # Turn down exifread's own chatter (it logs "File format not recognized")
    logging.getLogger("exifread").setLevel(logging.ERROR)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Photo Importer: copy photos into a date/camera organized tree")

    p.add_argument("input", nargs="?", type=Path, default=Path("."), help="Directory to import from (default: .)")
    p.add_argument("output", nargs="?", type=Path, default=Path("."), help="Directory to import to (default: .)")

    p.add_argument("--no-exif-dir", type=Path, default=None,
                   help=f"Where photos without usable EXIF go (default: output/{config.NO_EXIF_DIR})")
    p.add_argument("--other-dir", type=Path, default=None,
                   help=f"Where non-photo files go (default: output/{config.OTHER_DIR})")
    p.add_argument("--no-buckets", action="store_true",
                   help="Report non-photos and photos without EXIF as failures instead of copying them aside")
    p.add_argument("--concurrency", type=int, default=config.DEFAULT_CONCURRENCY,
                   help=f"Files processed in parallel per directory (default: {config.DEFAULT_CONCURRENCY})")
    p.add_argument("--skip-dirs-file", type=Path, default=None, help="File containing paths to ignore")
    p.add_argument("--dry-run", action="store_true", help="Simulate actions without modifying disk")
    p.add_argument("--report-csv", type=Path, default=None, help="Write a per-file status report CSV")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return p.parse_args(argv)


def load_skip_dirs(skip_file: Optional[Path]) -> set[Path]:
    """
    Reads one directory per line (blank lines and # comments ignored).

    Relative entries are taken relative to the skip file itself, so the same
    file works from any working directory. Paths come back resolved.
    """
    if not skip_file:
        return set()
    if not skip_file.is_file():
        logging.warning(f"Skip list {skip_file} not found; nothing will be skipped")
        return set()

    base = skip_file.resolve().parent
    skips = set()
    for line in skip_file.read_text(encoding="utf-8").splitlines():
        entry = line.strip()
        if entry and not entry.startswith("#"):
            skips.add((base / Path(entry).expanduser()).resolve())
    return skips


def build_options(args) -> ImportOptions:
    input_root = args.input.resolve()
    output_root = args.output.resolve()

    options = ImportOptions.with_default_buckets(
        input_root,
        output_root,
        concurrency=max(1, args.concurrency),
        skip_dirs=load_skip_dirs(args.skip_dirs_file),
        dry_run=args.dry_run,
    )
    if args.no_buckets:
        options.buckets = {reason: None for reason in Rejection}
    else:
        if args.no_exif_dir:
            options.buckets[Rejection.BAD_METADATA] = args.no_exif_dir.resolve()
        if args.other_dir:
            options.buckets[Rejection.NOT_PHOTO] = args.other_dir.resolve()
    return options


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    options = build_options(args)
    logging.info("=== Photo Importer Started ===")
    logging.info(f"Source: {options.input_root}")
    logging.info(f"Dest:   {options.output_root}")

    sink = FanOutSink()
    try:
        report = CsvReportWriter(args.report_csv) if args.report_csv else None
        sink = FanOutSink(ConsoleReporter(), report)
        PhotoImporterApp(options, sink=sink).run()
    except KeyboardInterrupt:
        logging.warning("Import cancelled by user.")
        return 1
    except PhotoImporterError as e:
        logging.error(f"Import stopped: {e}")
        return 1
    except Exception:
        logging.exception("Import stopped due to an unexpected error.")
        return 1
    finally:
        sink.close()

    if report:
        logging.info(f"Report written to {args.report_csv}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
