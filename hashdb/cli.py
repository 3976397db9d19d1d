import argparse
import sys
import sqlite3
import logging
import threading
from typing import NoReturn, Optional

from .config import HashDBConfig
from .filler import FillProgress, HardDeviceError
from .fingerprint import HASH_LENGTHS
from .operations import HashDBOperations
from .results import RunReport

# Configure logging to write to file only, not stdout
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    filename='hashdb.log',
    filemode='a'
)
logger = logging.getLogger('hashdb')

MODES = ('scrub', 'scan', 'migrate', 'mark', 'fill', 'receipt', 'restorefs', 'restoredb')


def print_error_and_exit(error_message: str, exit_code: int = 1) -> NoReturn:
    """
    Print an error message and exit the program with the specified exit code.

    Args:
        error_message (str): The error message to display
        exit_code (int, optional): The exit code to use. Defaults to 1.
    """
    logger.error(error_message)
    print(f"Error: {error_message}", file=sys.stderr)
    sys.exit(exit_code)


def finish_report(report: RunReport) -> None:
    """Print a run summary and exit non-zero if any file was skipped on error."""
    print(report.summary())
    for failure in report.failures:
        print(f"  {failure.kind.value}: {failure.path}", file=sys.stderr)
    if not report.ok:
        sys.exit(1)


class StatusPrinter:
    """Prints fill progress every few seconds from a background thread."""

    def __init__(self, progress: FillProgress, drive: str, interval: float):
        self.progress = progress
        self.drive = drive
        self.interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            print(f"{self.progress.remaining} files remaining to be copied to {self.drive}.", flush=True)

    def __enter__(self) -> 'StatusPrinter':
        self._thread.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._stop.set()
        self._thread.join()


def run_mode(ops: HashDBOperations, mode: str, drive: str, args: argparse.Namespace) -> None:
    if mode == 'receipt':
        path = ops.receipt(drive)
        print(f"Receipt written to {path}")
        return
    if mode == 'restoredb':
        added = ops.restoredb(drive, args.receipt)
        print(f"Restored {added} records into {ops.config.db_path}")
        return
    if mode == 'fill' and args.status_interval:
        with StatusPrinter(ops.progress, drive, args.status_interval):
            report = ops.fill(drive)
    else:
        report = getattr(ops, mode)(drive)
    if mode == 'fill':
        print(f"{ops.remaining()} files remaining to be copied.")
    finish_report(report)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Content-addressed, diff-based backup reconciliation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--db-path", default=None, help="Path to the index database (default: hashdb.db)")
    parser.add_argument("--drive-path", default=None, help="Directory where drives are mounted (default: /media)")
    parser.add_argument("--source-drive", default=None, help="Name of the drive being backed up (default: Live)")
    parser.add_argument("--generation", type=int, default=None, help="Active backup generation (default: 1)")
    parser.add_argument(
        "--subfolder",
        dest="subfolders",
        action="append",
        default=None,
        help="Only index this folder of the source drive (repeatable)"
    )
    parser.add_argument(
        "--exclude-path",
        dest="exclude_paths",
        action="append",
        default=None,
        help="Skip source files whose path contains this fragment (repeatable)"
    )
    parser.add_argument("--algorithm", choices=sorted(HASH_LENGTHS), default=None, help="Fingerprint algorithm (default: sha512)")
    parser.add_argument("--status-interval", type=float, default=0, help="Print fill progress every N seconds (0 disables)")
    parser.add_argument("--receipt", default=None, help="Receipt file for restoredb (default: newest on the drive)")
    parser.add_argument("mode", type=str.lower, choices=MODES, help="Mode of operation")
    parser.add_argument("drive", help="Drive identifier")
    return parser


def main(argv: Optional[list] = None) -> None:
    """
    Main entry point for the hashdb command line interface.
    Parses arguments, builds the run configuration and dispatches the mode.
    """
    args = build_parser().parse_args(argv)

    try:
        config = HashDBConfig.from_options(
            db_path=args.db_path,
            drive_path=args.drive_path,
            source_drive=args.source_drive,
            generation=args.generation,
            subfolders=args.subfolders,
            exclude_paths=args.exclude_paths,
            algorithm=args.algorithm,
        )
    except ValueError as e:
        print_error_and_exit(f"Invalid configuration: {str(e)}")

    logger.info(f"Starting {args.mode} of '{args.drive}' (source '{config.source_drive}', generation {config.generation})")
    try:
        with HashDBOperations(config) as ops:
            run_mode(ops, args.mode, args.drive, args)
    except HardDeviceError as e:
        print_error_and_exit(f"Device failure, run aborted: {str(e)}")
    except sqlite3.Error as e:
        print_error_and_exit(f"Index error: {str(e)}")
    except FileNotFoundError as e:
        print_error_and_exit(f"File not found: {str(e)}")
    except ValueError as e:
        print_error_and_exit(f"Invalid value: {str(e)}")
    except OSError as e:
        print_error_and_exit(f"OS error: {str(e)}")


if __name__ == "__main__":
    main()
