import os
import shutil
import logging
from pathlib import Path

from .config import HashDBConfig
from .database import InventoryDatabase
from .layout import (
    DEPRECATED_AREA, RESTORE_AREA, absolute_path, hash_from_blob_path, is_blob_area_path, prune_empty_dirs,
    relative_path,
)
from .results import FailureKind, RunReport


logger = logging.getLogger('hashdb')


class Restorer:
    """Rebuilds original-looking trees from the deprecated blobs of a backup drive."""

    def __init__(self, db: InventoryDatabase, config: HashDBConfig):
        self.db = db
        self.config = config

    def restorefs(self, drive: str) -> RunReport:
        """
        Recreate every file recorded for each deprecated blob under restorefs/.

        All records sharing a blob's hash are restored, whichever drive they
        came from, except records of scanned backup drives that point into
        their current/ or deprecated/ areas, which describe blobs rather than
        original files. Earlier records receive copies and the last one
        receives the blob itself, so the blob leaves deprecated/ exactly once.
        Blobs no record refers to stay where they are.
        """
        drive_root = self.config.drive_root(drive)
        deprecated_root = drive_root / DEPRECATED_AREA
        restore_root = drive_root / RESTORE_AREA
        if not deprecated_root.is_dir():
            raise ValueError(f"No deprecated area at '{deprecated_root}'")

        report = RunReport('restorefs', drive)
        generation = self.config.generation
        logger.info(f"Restoring files from '{deprecated_root}' to '{restore_root}' (generation {generation})")

        blobs = []
        for root, _, files in os.walk(deprecated_root):
            blobs.extend(Path(root) / name for name in files)

        for blob in sorted(blobs):
            rel_blob = relative_path(drive_root, blob)
            try:
                content_hash = hash_from_blob_path(blob, self.config.hash_length)
            except ValueError as e:
                report.fail(rel_blob, FailureKind.UNRECOGNIZED_LAYOUT, str(e))
                continue

            records = [
                r for r in self.db.find_all_by_hash(content_hash, generation)
                if r.drive != drive and (self.config.is_source(r.drive) or not is_blob_area_path(r.path))
            ]
            if not records:
                logger.debug(f"No record refers to '{rel_blob}', leaving it in place")
                report.skipped += 1
                continue

            last = len(records) - 1
            for i, record in enumerate(records):
                destination = absolute_path(restore_root / record.drive, record.path)
                try:
                    os.makedirs(destination.parent, exist_ok=True)
                    if i == last:
                        shutil.move(str(blob), str(destination))
                    else:
                        shutil.copyfile(blob, destination)
                    report.processed += 1
                except OSError as e:
                    report.fail_os_error(f"/{record.drive}{record.path}", e)

        prune_empty_dirs(deprecated_root)
        logger.info(report.summary())
        return report
