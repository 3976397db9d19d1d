from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from .fingerprint import DEFAULT_CHUNK_SIZE, HASH_LENGTHS


DEFAULT_EXCLUDE_NAMES = ('.DS_Store',)


@dataclass(frozen=True)
class HashDBConfig:
    """
    Settings shared by every component of a run.

    Built once at startup and passed explicitly; nothing in the package keeps
    its own copy of these values between runs.

    Attributes:
        db_path: SQLite file holding the inventory index
        drive_path: Directory under which every drive is mounted
        source_drive: Identifier of the drive being backed up
        generation: Active backup lineage; records of other generations are ignored
        subfolders: Only these folders of the source drive are indexed (empty means all)
        exclude_names: File names never indexed
        exclude_paths: Path fragments that exclude any file containing them
        algorithm: Fingerprint algorithm used for content identity
        chunk_size: Read size used while fingerprinting
    """

    db_path: str = 'hashdb.db'
    drive_path: str = '/media'
    source_drive: str = 'Live'
    generation: int = 1
    subfolders: Tuple[str, ...] = ()
    exclude_names: Tuple[str, ...] = DEFAULT_EXCLUDE_NAMES
    exclude_paths: Tuple[str, ...] = field(default_factory=tuple)
    algorithm: str = 'sha512'
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        if not self.source_drive:
            raise ValueError("A source drive name is required")
        if self.generation < 0:
            raise ValueError(f"Invalid generation: {self.generation}")
        if self.algorithm not in HASH_LENGTHS:
            raise ValueError(f"Unsupported hash algorithm: {self.algorithm}")
        if self.chunk_size <= 0:
            raise ValueError(f"Invalid chunk size: {self.chunk_size}")

    @property
    def hash_length(self) -> int:
        return HASH_LENGTHS[self.algorithm]

    def drive_root(self, drive: str) -> Path:
        """Filesystem root of a drive."""
        return Path(self.drive_path) / drive

    def is_source(self, drive: str) -> bool:
        return drive == self.source_drive

    @classmethod
    def from_options(cls, **options) -> 'HashDBConfig':
        """
        Build a config from command line options.

        Options whose value is None keep the field default, so argparse
        results can be passed straight through.
        """
        values = {}
        for key, value in options.items():
            if value is None:
                continue
            if isinstance(value, list):
                value = tuple(value)
            values[key] = value
        return cls(**values)
