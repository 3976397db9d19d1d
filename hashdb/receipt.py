import logging
from datetime import date
from pathlib import Path
from typing import Optional, Union

from .config import HashDBConfig
from .database import InventoryDatabase
from .scanner import RECEIPT_SUFFIX


logger = logging.getLogger('hashdb')


def receipt_name(day: Optional[date] = None) -> str:
    """File name of the receipt written on a given day."""
    day = day or date.today()
    return f"{day.strftime('%Y-%m-%d')}{RECEIPT_SUFFIX}"


def find_latest_receipt(drive_root: Union[str, Path]) -> Optional[Path]:
    """Most recent receipt at the root of a drive, by the date in its name."""
    receipts = sorted(Path(drive_root).glob(f"*{RECEIPT_SUFFIX}"))
    return receipts[-1] if receipts else None


def write_receipt(db: InventoryDatabase, config: HashDBConfig, drive: str,
                  day: Optional[date] = None) -> Path:
    """
    Export the whole index to the root of a drive.

    The receipt is what allows a backup to be restored without the original
    index.

    Receipts only go to backup drives, since the source drive is indexed
    by scrub and would pick the receipt up as content.

    Returns:
        Path: Location of the written receipt
    """
    if config.is_source(drive):
        raise ValueError(f"Cannot write a receipt to the source drive '{drive}'")
    drive_root = config.drive_root(drive)
    if not drive_root.is_dir():
        raise ValueError(f"Drive root '{drive_root}' does not exist or is not a directory")

    target = drive_root / receipt_name(day)
    logger.info(f"Writing receipt of '{config.db_path}' to '{target}'")
    db.export_to(target)
    return target


def restore_receipt(db: InventoryDatabase, config: HashDBConfig, drive: str,
                    receipt_path: Optional[Union[str, Path]] = None) -> int:
    """
    Load the records of a receipt into the index.

    Uses the given receipt file, or the newest receipt at the drive root.
    Records already present in the index are kept unchanged.

    Returns:
        int: Number of records added
    """
    if receipt_path is None:
        receipt_path = find_latest_receipt(config.drive_root(drive))
        if receipt_path is None:
            raise FileNotFoundError(f"No receipt found at the root of '{config.drive_root(drive)}'")
    receipt_path = Path(receipt_path)
    if not receipt_path.is_file():
        raise FileNotFoundError(f"Receipt '{receipt_path}' does not exist")

    added = db.import_from(receipt_path)
    logger.info(f"Restored {added} records from '{receipt_path}' into '{config.db_path}'")
    return added
