import sqlite3
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Union


logger = logging.getLogger('hashdb')

# Rows fetched per query while iterating a drive lazily
BATCH_SIZE = 1000


@dataclass(frozen=True)
class FileRecord:
    """One indexed file: unique on (drive, generation, path)."""

    id: int
    drive: str
    generation: int
    path: str
    content_hash: str
    timestamp: str
    backup_drive: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'FileRecord':
        return cls(
            id=row['id'],
            drive=row['drive'],
            generation=row['generation'],
            path=row['path'],
            content_hash=row['content_hash'],
            timestamp=row['timestamp'],
            backup_drive=row['backup_drive'],
        )


class InventoryDatabase:
    """
    Keyed store of file records.

    Only equality lookups are used. Uniqueness of (drive, generation, path) is
    enforced by the schema, and the backup drive of a record can only be set
    while it is still empty, so concurrent runs against disjoint drives are safe.
    """

    COLUMNS = "id, drive, generation, path, content_hash, timestamp, backup_drive"

    def __init__(self, db_path: str = "hashdb.db"):
        """Open the index and create the schema if it doesn't exist."""
        self.db_path = db_path
        self.conn = sqlite3.connect(db_path)
        self.conn.row_factory = sqlite3.Row
        self._create_tables()

    def _create_tables(self):
        cursor = self.conn.cursor()
        cursor.execute('''
        CREATE TABLE IF NOT EXISTS files (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            drive TEXT NOT NULL,
            generation INTEGER NOT NULL,
            path TEXT NOT NULL,
            content_hash TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            backup_drive TEXT,
            UNIQUE (drive, generation, path)
        )
        ''')
        cursor.execute('''
        CREATE INDEX IF NOT EXISTS idx_files_hash
        ON files (content_hash, generation, drive)
        ''')
        cursor.execute('''
        CREATE INDEX IF NOT EXISTS idx_files_unassigned
        ON files (drive, generation, backup_drive)
        ''')
        self.conn.commit()

    def insert_if_absent(self, drive: str, generation: int, path: str, content_hash: str,
                         timestamp: Optional[str] = None) -> bool:
        """
        Add a file record unless one already exists for its key.

        Returns:
            bool: True if a new record was inserted
        """
        if timestamp is None:
            timestamp = datetime.now().isoformat()
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT OR IGNORE INTO files (drive, generation, path, content_hash, timestamp) "
            "VALUES (?, ?, ?, ?, ?)",
            (drive, generation, path, content_hash, timestamp)
        )
        self.conn.commit()
        return cursor.rowcount == 1

    def find_by_key(self, drive: str, generation: int, path: str) -> Optional[FileRecord]:
        cursor = self.conn.cursor()
        cursor.execute(
            f"SELECT {self.COLUMNS} FROM files WHERE drive = ? AND generation = ? AND path = ?",
            (drive, generation, path)
        )
        row = cursor.fetchone()
        return FileRecord.from_row(row) if row else None

    def find_by_hash(self, content_hash: str, drive: str, generation: int) -> Optional[FileRecord]:
        """First record on a drive carrying the given content hash."""
        cursor = self.conn.cursor()
        cursor.execute(
            f"SELECT {self.COLUMNS} FROM files "
            "WHERE content_hash = ? AND drive = ? AND generation = ? ORDER BY id LIMIT 1",
            (content_hash, drive, generation)
        )
        row = cursor.fetchone()
        return FileRecord.from_row(row) if row else None

    def find_all_by_hash(self, content_hash: str, generation: int) -> List[FileRecord]:
        """Every record in a generation carrying the given hash, across all drives."""
        cursor = self.conn.cursor()
        cursor.execute(
            f"SELECT {self.COLUMNS} FROM files WHERE content_hash = ? AND generation = ? ORDER BY id",
            (content_hash, generation)
        )
        return [FileRecord.from_row(row) for row in cursor.fetchall()]

    def iterate(self, drive: str, generation: int, unassigned_only: bool = False) -> Iterator[FileRecord]:
        """
        Lazily yield the records of a drive in primary key order.

        Rows are fetched in batches keyed on the last id seen, so records may be
        updated while the iteration is in progress.
        """
        query = f"SELECT {self.COLUMNS} FROM files WHERE drive = ? AND generation = ? AND id > ?"
        if unassigned_only:
            query += " AND backup_drive IS NULL"
        query += " ORDER BY id LIMIT ?"

        last_id = 0
        while True:
            cursor = self.conn.cursor()
            cursor.execute(query, (drive, generation, last_id, BATCH_SIZE))
            rows = cursor.fetchall()
            if not rows:
                return
            for row in rows:
                yield FileRecord.from_row(row)
            last_id = rows[-1]['id']

    def update_assignment(self, record: FileRecord, backup_drive: str) -> bool:
        """
        Record the backup drive holding a file's content.

        The first assignment wins: a record that already has a backup drive is
        left unchanged.

        Returns:
            bool: True if the record was updated
        """
        cursor = self.conn.cursor()
        cursor.execute(
            "UPDATE files SET backup_drive = ? WHERE id = ? AND backup_drive IS NULL",
            (backup_drive, record.id)
        )
        self.conn.commit()
        return cursor.rowcount == 1

    def count_unassigned(self, drive: str, generation: int) -> int:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT COUNT(*) AS count FROM files WHERE drive = ? AND generation = ? AND backup_drive IS NULL",
            (drive, generation)
        )
        return cursor.fetchone()['count']

    def count_records(self, drive: Optional[str] = None, generation: Optional[int] = None) -> int:
        cursor = self.conn.cursor()
        query = "SELECT COUNT(*) AS count FROM files WHERE 1 = 1"
        params = []
        if drive is not None:
            query += " AND drive = ?"
            params.append(drive)
        if generation is not None:
            query += " AND generation = ?"
            params.append(generation)
        cursor.execute(query, params)
        return cursor.fetchone()['count']

    def export_to(self, target_path: Union[str, Path]) -> None:
        """Write a consistent copy of the whole index to target_path."""
        target = sqlite3.connect(str(target_path))
        try:
            self.conn.backup(target)
        finally:
            target.close()

    def import_from(self, source_path: Union[str, Path]) -> int:
        """
        Merge the records of an exported index into this one.

        Existing keys are kept as they are.

        Returns:
            int: Number of records added
        """
        before = self.conn.total_changes
        cursor = self.conn.cursor()
        cursor.execute("ATTACH DATABASE ? AS receipt", (str(source_path),))
        try:
            cursor.execute('''
            INSERT OR IGNORE INTO files (drive, generation, path, content_hash, timestamp, backup_drive)
            SELECT drive, generation, path, content_hash, timestamp, backup_drive
            FROM receipt.files ORDER BY id
            ''')
            self.conn.commit()
        except sqlite3.Error:
            self.conn.rollback()
            raise
        finally:
            cursor.execute("DETACH DATABASE receipt")
        return self.conn.total_changes - before

    def close(self):
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
