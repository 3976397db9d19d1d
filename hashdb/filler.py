import os
import errno
import shutil
import logging
import threading
from dataclasses import dataclass

from .config import HashDBConfig
from .database import FileRecord, InventoryDatabase
from .layout import CURRENT_AREA, absolute_path, blob_path, temp_blob_path
from .results import RunReport


logger = logging.getLogger('hashdb')


class HardDeviceError(RuntimeError):
    """Raised when storage reports a device-level failure; the run cannot continue."""


@dataclass(frozen=True)
class ProgressSnapshot:
    total: int
    copied: int
    deduplicated: int
    failed: int

    @property
    def remaining(self) -> int:
        return max(self.total - self.copied - self.deduplicated - self.failed, 0)


class FillProgress:
    """
    Counters for a running fill.

    Updated by the filling thread and safe to read from any other thread.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._total = 0
        self._copied = 0
        self._deduplicated = 0
        self._failed = 0

    def start(self, total: int) -> None:
        with self._lock:
            self._total = total
            self._copied = 0
            self._deduplicated = 0
            self._failed = 0

    def copied(self) -> None:
        with self._lock:
            self._copied += 1

    def deduplicated(self) -> None:
        with self._lock:
            self._deduplicated += 1

    def failed(self) -> None:
        with self._lock:
            self._failed += 1

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(self._total, self._copied, self._deduplicated, self._failed)

    @property
    def remaining(self) -> int:
        return self.snapshot().remaining


class Filler:
    """Copies every source file that has no backup drive yet onto a backup drive."""

    def __init__(self, db: InventoryDatabase, config: HashDBConfig, progress: FillProgress = None):
        self.db = db
        self.config = config
        self.progress = progress or FillProgress()

    def fill(self, drive: str) -> RunReport:
        """
        Copy unassigned source content into the canonical layout of a backup drive.

        Each file is copied to a hash-named temporary path, moved into
        current/, and only then assigned, so an interrupted run leaves the
        record unassigned and the next run picks it up again.

        Raises:
            ValueError: If drive is the source drive or a drive root is missing
            HardDeviceError: If a device reports an I/O error
        """
        if self.config.is_source(drive):
            raise ValueError(f"Cannot fill the source drive '{drive}'")
        source_root = self.config.drive_root(self.config.source_drive)
        target_root = self.config.drive_root(drive)
        for root in (source_root, target_root):
            if not root.is_dir():
                raise ValueError(f"Drive root '{root}' does not exist or is not a directory")

        generation = self.config.generation
        source_drive = self.config.source_drive
        report = RunReport('fill', drive)
        self.progress.start(self.db.count_unassigned(source_drive, generation))
        logger.info(f"Filling '{drive}' with {self.progress.remaining} files from '{source_drive}' (generation {generation})")

        for record in self.db.iterate(source_drive, generation, unassigned_only=True):
            target = blob_path(target_root, CURRENT_AREA, record.content_hash)

            if target.exists():
                self.db.update_assignment(record, drive)
                self.progress.deduplicated()
                report.skipped += 1
                continue

            try:
                self._copy_blob(record, source_root, target_root)
            except OSError as e:
                if e.errno == errno.EIO:
                    logger.error(f"Device failure while copying '{record.path}' to '{drive}': {str(e)}")
                    raise HardDeviceError(f"Device failure while copying '{record.path}': {str(e)}") from e
                self.progress.failed()
                report.fail_os_error(record.path, e)
                continue

            self.db.update_assignment(record, drive)
            self.progress.copied()
            report.processed += 1
            if report.processed % 100 == 0:
                logger.info(f"Copied {report.processed} files, {self.progress.remaining} remaining for '{drive}'")

        logger.info(report.summary())
        return report

    def _copy_blob(self, record: FileRecord, source_root, target_root) -> None:
        source = absolute_path(source_root, record.path)
        temp = temp_blob_path(target_root, record.content_hash)
        target = blob_path(target_root, CURRENT_AREA, record.content_hash)

        try:
            shutil.copyfile(source, temp)
            os.makedirs(target.parent, exist_ok=True)
            os.replace(temp, target)
        except OSError:
            self._discard_partial(temp)
            raise
        logger.debug(f"Copied '{record.path}' to '{target}'")

    @staticmethod
    def _discard_partial(temp) -> None:
        try:
            os.unlink(temp)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial copy '{temp}': {str(e)}")
