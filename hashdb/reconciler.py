import os
import logging

from .config import HashDBConfig
from .database import InventoryDatabase
from .layout import CURRENT_AREA, DEPRECATED_AREA, absolute_path, blob_path, prune_empty_dirs
from .results import RunReport


logger = logging.getLogger('hashdb')


class Reconciler:
    """
    Moves content an old backup still needs into the canonical layout.

    Files are only ever renamed within the backup drive. Content the source
    drive no longer has stays where it is for the operator to review.
    """

    def __init__(self, db: InventoryDatabase, config: HashDBConfig):
        self.db = db
        self.config = config

    def migrate(self, drive: str) -> RunReport:
        """
        Relocate every still-wanted file of a backup drive into current/.

        Args:
            drive: Backup drive identifier

        Returns:
            RunReport: processed counts moved blobs, skipped counts files left in place

        Raises:
            ValueError: If drive is the source drive or its root is missing
        """
        if self.config.is_source(drive):
            raise ValueError(f"Cannot migrate the source drive '{drive}'")
        drive_root = self.config.drive_root(drive)
        if not drive_root.is_dir():
            raise ValueError(f"Drive root '{drive_root}' does not exist or is not a directory")

        report = RunReport('migrate', drive)
        generation = self.config.generation
        source_drive = self.config.source_drive
        unwanted = 0
        logger.info(f"Migrating wanted content on '{drive}' into '{CURRENT_AREA}/' (generation {generation})")

        for record in self.db.iterate(drive, generation):
            if self.db.find_by_hash(record.content_hash, source_drive, generation) is None:
                unwanted += 1
                report.skipped += 1
                continue

            current = absolute_path(drive_root, record.path)
            target = blob_path(drive_root, CURRENT_AREA, record.content_hash)

            if current == target:
                report.skipped += 1
                continue
            if target.exists():
                logger.debug(f"Blob {record.content_hash} already in place, leaving duplicate '{record.path}'")
                report.skipped += 1
                continue
            if not current.exists():
                logger.debug(f"'{record.path}' no longer present, already relocated")
                report.skipped += 1
                continue

            try:
                os.makedirs(target.parent, exist_ok=True)
                os.rename(current, target)
                logger.debug(f"Moved '{record.path}' to '{target}'")
                report.processed += 1
            except OSError as e:
                report.fail_os_error(record.path, e)

        logger.info(f"{unwanted} files on '{drive}' are no longer wanted and were left in place")
        prune_empty_dirs(drive_root / DEPRECATED_AREA)
        logger.info(report.summary())
        return report
