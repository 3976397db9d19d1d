import os
import time
import uuid
import hashlib
import tempfile
from pathlib import Path

import pytest

from hashdb.config import HashDBConfig
from hashdb.database import InventoryDatabase
from hashdb.layout import CURRENT_AREA, DEPRECATED_AREA, blob_path


SOURCE_DRIVE = "Live"
BACKUP_DRIVE = "Backup1"


def sha512_of(content: bytes) -> str:
    return hashlib.sha512(content).hexdigest()


def write_file(path: Path, content) -> Path:
    """Create a file (and its parent folders) with text or bytes content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = 'wb' if isinstance(content, bytes) else 'w'
    with open(path, mode) as f:
        f.write(content)
    return path


def place_blob(drive_root: Path, area: str, content: bytes) -> Path:
    """Store content at its sharded location inside an area of a drive."""
    return write_file(blob_path(drive_root, area, sha512_of(content)), content)


# ---- Individual fixtures for flexible test composition ----

@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def config(temp_dir):
    """Configuration pointing at a drive folder inside the temporary directory."""
    drive_path = temp_dir / "media"
    (drive_path / SOURCE_DRIVE).mkdir(parents=True)
    (drive_path / BACKUP_DRIVE).mkdir(parents=True)
    return HashDBConfig(
        db_path=str(temp_dir / f"test_{uuid.uuid4().hex[:8]}.db"),
        drive_path=str(drive_path),
        source_drive=SOURCE_DRIVE,
        generation=1,
    )


@pytest.fixture
def db_connection(config):
    """Create and return an index connection."""
    db = InventoryDatabase(config.db_path)
    yield db
    db.close()


# ---- Base test class for inheritance-based testing ----

class TestBase:
    """Base class for hashdb tests: one drive folder and one fresh index per test."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.working_dir = Path(self.temp_dir.name)

        self.drive_path = self.working_dir / "media"
        self.source_root = self.drive_path / SOURCE_DRIVE
        self.backup_root = self.drive_path / BACKUP_DRIVE
        os.makedirs(self.source_root)
        os.makedirs(self.backup_root)

        self.db_path = self.working_dir / f"test_{uuid.uuid4().hex[:8]}.db"
        self.config = self.make_config()

        self._create_test_files()
        self.db = InventoryDatabase(str(self.db_path))

    def tearDown(self):
        self._safe_cleanup()

    @pytest.fixture(autouse=True)
    def _setup_teardown_fixture(self):
        self.setUp()
        yield
        self.tearDown()

    def make_config(self, **overrides) -> HashDBConfig:
        values = dict(
            db_path=str(self.db_path),
            drive_path=str(self.drive_path),
            source_drive=SOURCE_DRIVE,
            generation=1,
        )
        values.update(overrides)
        return HashDBConfig(**values)

    def _create_test_files(self):
        """Live drive: two photos with identical content, one distinct photo, one binary."""
        write_file(self.source_root / "a.jpg", b"photo one")
        write_file(self.source_root / "b.jpg", b"photo one")
        write_file(self.source_root / "c.jpg", b"photo two")
        write_file(self.source_root / "Docs" / "notes.bin", os.urandom(10000))

    def source_hashes(self):
        """Map of index path to content hash for every file on the source drive."""
        hashes = {}
        for root, _, files in os.walk(self.source_root):
            for name in files:
                path = Path(root) / name
                rel = '/' + path.relative_to(self.source_root).as_posix()
                hashes[rel] = sha512_of(path.read_bytes())
        return hashes

    def current_blobs(self, drive_root=None):
        """Every file below current/ on a backup drive."""
        current = (drive_root or self.backup_root) / CURRENT_AREA
        return sorted(p for p in current.rglob("*") if p.is_file())

    def deprecated_blob(self, content: bytes) -> Path:
        return place_blob(self.backup_root, DEPRECATED_AREA, content)

    def _safe_cleanup(self):
        try:
            self.db.close()
        except Exception:
            pass

        time.sleep(0.1)

        try:
            self.temp_dir.cleanup()
        except (PermissionError, OSError) as e:
            print(f"Warning: Could not clean up temporary directory: {e}")
