"""
HashDB - content-addressed, diff-based backup reconciliation.

This package indexes drives by content hash, transforms old backup drives
into the current backup without deleting anything, and copies only the
content a backup is still missing.
"""

__version__ = "0.1.0"

# Export public API
from .config import HashDBConfig
from .database import FileRecord, InventoryDatabase
from .operations import HashDBOperations

__all__ = ["FileRecord", "HashDBConfig", "HashDBOperations", "InventoryDatabase"]
