import os
import logging
from pathlib import Path

from .config import HashDBConfig
from .database import InventoryDatabase
from .layout import CURRENT_AREA, hash_from_blob_path, relative_path
from .results import FailureKind, RunReport


logger = logging.getLogger('hashdb')


class Allocator:
    """Marks source records whose content is already present on a backup drive."""

    def __init__(self, db: InventoryDatabase, config: HashDBConfig):
        self.db = db
        self.config = config

    def mark(self, drive: str) -> RunReport:
        """
        Assign every unassigned source record whose blob exists in current/.

        Records that already name a backup drive keep it.
        """
        if self.config.is_source(drive):
            raise ValueError(f"Cannot mark against the source drive '{drive}'")
        drive_root = self.config.drive_root(drive)
        current_root = drive_root / CURRENT_AREA
        if not drive_root.is_dir():
            raise ValueError(f"Drive root '{drive_root}' does not exist or is not a directory")

        report = RunReport('mark', drive)
        generation = self.config.generation
        logger.info(f"Marking content already present on '{drive}' (generation {generation})")

        for root, _, files in os.walk(current_root):
            for name in files:
                file_path = Path(root) / name
                try:
                    content_hash = hash_from_blob_path(file_path, self.config.hash_length)
                except ValueError as e:
                    report.fail(relative_path(drive_root, file_path), FailureKind.UNRECOGNIZED_LAYOUT, str(e))
                    continue

                assigned = 0
                for record in self.db.find_all_by_hash(content_hash, generation):
                    if record.drive != self.config.source_drive or record.backup_drive is not None:
                        continue
                    if self.db.update_assignment(record, drive):
                        assigned += 1
                if assigned:
                    logger.debug(f"Blob {content_hash} satisfies {assigned} records")
                    report.processed += assigned
                else:
                    report.skipped += 1

        logger.info(report.summary())
        return report
