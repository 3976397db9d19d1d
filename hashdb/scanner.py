import os
import logging
import re
from pathlib import Path
from typing import Iterator, Optional

from .config import HashDBConfig
from .database import InventoryDatabase
from .fingerprint import FingerprintError, compute
from .layout import RESTORE_AREA, hash_from_blob_path, relative_path
from .results import FailureKind, RunReport


logger = logging.getLogger('hashdb')

SCRUB = 'scrub'
SCAN = 'scan'

RECEIPT_SUFFIX = ' hashdb.dump'

# Multi-volume archive parts (.r01, .r02, ...) should be extracted before backup
ARCHIVE_FRAGMENT = re.compile(r'\.r\d{2}$', re.IGNORECASE)
# Lightroom catalogs and previews stored as loose directories
CATALOG_DIR_SUFFIXES = ('.lrdata', '.lrcat')


class Scanner:
    """Walks a drive and adds a record for every file not yet indexed."""

    def __init__(self, db: InventoryDatabase, config: HashDBConfig):
        self.db = db
        self.config = config

    def scrub(self, drive: str) -> RunReport:
        """Index a drive by reading and fingerprinting every new file."""
        return self._index(drive, SCRUB)

    def scan(self, drive: str) -> RunReport:
        """
        Index a drive without reading content.

        The hash of each file is taken from its sharded location, which is only
        meaningful on a drive already laid out by hash. Content is not verified.
        """
        return self._index(drive, SCAN)

    def _index(self, drive: str, mode: str) -> RunReport:
        drive_root = self.config.drive_root(drive)
        if not drive_root.is_dir():
            raise ValueError(f"Drive root '{drive_root}' does not exist or is not a directory")

        report = RunReport(mode, drive)
        generation = self.config.generation
        logger.info(f"Starting {mode} of drive '{drive}' at '{drive_root}' (generation {generation})")

        for file_path in self._walk(drive, drive_root):
            rel_path = relative_path(drive_root, file_path)
            try:
                rel_path.encode('utf-8')
            except UnicodeEncodeError as e:
                # The index stores text paths; names that are not valid UTF-8 cannot be recorded
                printable = rel_path.encode('utf-8', 'backslashreplace').decode('utf-8')
                report.fail(printable, FailureKind.UNREADABLE, f"File name is not valid UTF-8: {str(e)}")
                continue

            if self.db.find_by_key(drive, generation, rel_path) is not None:
                report.skipped += 1
                continue

            content_hash = self._fingerprint(file_path, rel_path, mode, report)
            if content_hash is None:
                continue

            if self.db.insert_if_absent(drive, generation, rel_path, content_hash):
                logger.debug(f"Indexed '{rel_path}' - {content_hash}")
                report.processed += 1
            else:
                # Another run indexed it between the lookup and the insert
                report.skipped += 1

            if report.processed and report.processed % 1000 == 0:
                logger.info(f"{mode}: indexed {report.processed} files on '{drive}'")

        logger.info(report.summary())
        return report

    def _fingerprint(self, file_path: Path, rel_path: str, mode: str, report: RunReport) -> Optional[str]:
        if mode == SCAN:
            try:
                return hash_from_blob_path(file_path, self.config.hash_length)
            except ValueError as e:
                report.fail(rel_path, FailureKind.UNRECOGNIZED_LAYOUT, str(e))
                return None

        try:
            return compute(file_path, self.config.algorithm, self.config.chunk_size)
        except FingerprintError as e:
            kind = FailureKind.MISSING if isinstance(e.cause, FileNotFoundError) else FailureKind.UNREADABLE
            report.fail(rel_path, kind, str(e))
            return None

    def _walk(self, drive: str, drive_root: Path) -> Iterator[Path]:
        """Yield the regular files of a drive that the inclusion policy accepts."""
        if self.config.is_source(drive):
            tops = [drive_root / s.strip('/') for s in self.config.subfolders] or [drive_root]
        else:
            tops = [drive_root]

        for top in tops:
            if not top.is_dir():
                logger.warning(f"Skipping missing folder '{top}'")
                continue
            for root, dirs, files in os.walk(top, onerror=self._walk_error):
                root_path = Path(root)
                dirs.sort()
                if not self.config.is_source(drive) and root_path == drive_root and RESTORE_AREA in dirs:
                    dirs.remove(RESTORE_AREA)
                for name in dirs:
                    if name.lower().endswith(CATALOG_DIR_SUFFIXES):
                        logger.warning(f"Do not store catalog directories, export or archive them instead: '{root_path / name}'")

                for name in sorted(files):
                    file_path = root_path / name
                    if self._excluded(drive, drive_root, file_path):
                        continue
                    if ARCHIVE_FRAGMENT.search(name):
                        logger.warning(f"Archive fragment should be extracted: '{file_path}'")
                    if not file_path.is_file() or file_path.is_symlink():
                        continue
                    yield file_path

    def _excluded(self, drive: str, drive_root: Path, file_path: Path) -> bool:
        if file_path.name in self.config.exclude_names:
            return True
        if not self.config.is_source(drive):
            return file_path.parent == drive_root and file_path.name.endswith(RECEIPT_SUFFIX)
        rel_path = relative_path(drive_root, file_path)
        return any(fragment in rel_path for fragment in self.config.exclude_paths)

    @staticmethod
    def _walk_error(error: OSError) -> None:
        logger.warning(f"Could not list directory '{error.filename}': {str(error)}")
