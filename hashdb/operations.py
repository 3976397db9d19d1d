import logging
from pathlib import Path
from typing import Optional, Union

from .allocator import Allocator
from .config import HashDBConfig
from .database import InventoryDatabase
from .filler import FillProgress, Filler
from .receipt import restore_receipt, write_receipt
from .reconciler import Reconciler
from .restorer import Restorer
from .results import RunReport
from .scanner import Scanner


# Get logger instance (configuration is handled in cli.py)
logger = logging.getLogger('hashdb')


class HashDBOperations:
    """Runs the indexing, reconciliation and restore modes against one index."""

    def __init__(self, config: HashDBConfig):
        """
        Open the index named by the configuration.

        Args:
            config (HashDBConfig): Settings for this run

        Raises:
            sqlite3.Error: If the index cannot be opened
        """
        self.config = config
        self.db = InventoryDatabase(config.db_path)
        self.progress = FillProgress()
        logger.debug(f"Initialized HashDBOperations with index at {config.db_path}")

    def scrub(self, drive: str) -> RunReport:
        """Index a drive by reading every new file."""
        return Scanner(self.db, self.config).scrub(drive)

    def scan(self, drive: str) -> RunReport:
        """Index a hash-named drive from file locations alone."""
        return Scanner(self.db, self.config).scan(drive)

    def migrate(self, drive: str) -> RunReport:
        """Move still-wanted content of a backup drive into current/."""
        return Reconciler(self.db, self.config).migrate(drive)

    def mark(self, drive: str) -> RunReport:
        """Assign source records already satisfied by current/ on a backup drive."""
        return Allocator(self.db, self.config).mark(drive)

    def fill(self, drive: str) -> RunReport:
        """Copy the remaining source content onto a backup drive."""
        return Filler(self.db, self.config, self.progress).fill(drive)

    def restorefs(self, drive: str) -> RunReport:
        """Rebuild original trees from the deprecated area of a drive."""
        return Restorer(self.db, self.config).restorefs(drive)

    def receipt(self, drive: str) -> Path:
        """Export the index to the root of a drive."""
        return write_receipt(self.db, self.config, drive)

    def restoredb(self, drive: str, receipt_path: Optional[Union[str, Path]] = None) -> int:
        """Load a receipt back into the index."""
        return restore_receipt(self.db, self.config, drive, receipt_path)

    def remaining(self) -> int:
        """
        Number of source files of the active generation not yet on any backup drive.

        Reads the index, so it reflects every fill that has committed so far.
        """
        return self.db.count_unassigned(self.config.source_drive, self.config.generation)

    def close(self) -> None:
        """Close the index connection."""
        if hasattr(self, 'db') and self.db:
            logger.debug("Closing index connection")
            self.db.close()

    def __enter__(self) -> 'HashDBOperations':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
