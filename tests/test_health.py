import os

import pytest

from hashdb import HashDBConfig, HashDBOperations, InventoryDatabase
from hashdb.results import FailureKind, RunReport, classify_os_error
from tests.conftest import TestBase


class TestHealth(TestBase):
    """Basic health check tests for hashdb."""

    def test_database_initialization(self):
        assert self.db is not None
        assert os.path.exists(self.db_path)

    def test_context_manager(self):
        with HashDBOperations(self.config) as ops:
            assert ops is not None

        # After exiting the context, the index should be closed
        assert ops.db.conn is None

    def test_remaining_on_empty_index(self):
        with HashDBOperations(self.config) as ops:
            assert ops.remaining() == 0


def test_config_rejects_bad_values():
    with pytest.raises(ValueError):
        HashDBConfig(source_drive="")
    with pytest.raises(ValueError):
        HashDBConfig(generation=-1)
    with pytest.raises(ValueError):
        HashDBConfig(algorithm="md5")


def test_config_from_options():
    config = HashDBConfig.from_options(
        source_drive="Koholint",
        generation=None,
        db_path="custom.db",
        subfolders=["/TV", "/Music"],
        exclude_paths=["/Phone/"],
    )

    assert config.source_drive == "Koholint"
    assert config.generation == 1
    assert config.subfolders == ("/TV", "/Music")
    assert config.exclude_paths == ("/Phone/",)
    assert config.db_path == "custom.db"
    assert config.is_source("Koholint")
    assert config.hash_length == 128


def test_classify_os_error():
    import errno

    assert classify_os_error(FileNotFoundError(errno.ENOENT, "gone")) == FailureKind.MISSING
    assert classify_os_error(PermissionError(errno.EACCES, "denied")) == FailureKind.PERMISSION
    assert classify_os_error(OSError(errno.ENOSPC, "full")) == FailureKind.DESTINATION_FULL
    assert classify_os_error(OSError(errno.EINVAL, "odd")) == FailureKind.IO_ERROR


def test_run_report_summary():
    report = RunReport("fill", "Backup1")
    report.processed = 2
    report.fail("/a.jpg", FailureKind.DESTINATION_FULL, "No space left on device")

    assert not report.ok
    assert report.summary() == "fill Backup1: 2 processed, 0 skipped, 1 failed (destination_full=1)"


def test_package_exports_open_an_index(tmp_path):
    config = HashDBConfig(db_path=str(tmp_path / "index.db"), drive_path=str(tmp_path))

    with InventoryDatabase(config.db_path) as db:
        assert db.insert_if_absent(config.source_drive, config.generation, "/a.jpg", "a" * 128)

    with HashDBOperations(config) as ops:
        assert ops.remaining() == 1
