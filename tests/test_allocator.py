import pytest

from hashdb.layout import CURRENT_AREA
from hashdb.operations import HashDBOperations
from hashdb.results import FailureKind
from tests.conftest import BACKUP_DRIVE, SOURCE_DRIVE, TestBase, place_blob, write_file


class TestMark(TestBase):
    """Recognising content already present on a backup drive."""

    def test_marks_records_whose_blob_is_present(self):
        place_blob(self.backup_root, CURRENT_AREA, b"photo one")

        with HashDBOperations(self.config) as ops:
            ops.scrub(SOURCE_DRIVE)
            report = ops.mark(BACKUP_DRIVE)

        assert report.processed == 2
        assert self.db.find_by_key(SOURCE_DRIVE, 1, "/a.jpg").backup_drive == BACKUP_DRIVE
        assert self.db.find_by_key(SOURCE_DRIVE, 1, "/b.jpg").backup_drive == BACKUP_DRIVE
        assert self.db.find_by_key(SOURCE_DRIVE, 1, "/c.jpg").backup_drive is None

    def test_existing_assignment_is_kept(self):
        other_root = self.drive_path / "Backup2"
        place_blob(other_root, CURRENT_AREA, b"photo one")
        place_blob(self.backup_root, CURRENT_AREA, b"photo one")

        with HashDBOperations(self.config) as ops:
            ops.scrub(SOURCE_DRIVE)
            ops.mark("Backup2")
            report = ops.mark(BACKUP_DRIVE)

        assert report.processed == 0
        assert self.db.find_by_key(SOURCE_DRIVE, 1, "/a.jpg").backup_drive == "Backup2"

    def test_only_active_generation_is_marked(self):
        place_blob(self.backup_root, CURRENT_AREA, b"photo one")

        with HashDBOperations(self.config) as ops:
            ops.scrub(SOURCE_DRIVE)
        with HashDBOperations(self.make_config(generation=2)) as ops:
            ops.mark(BACKUP_DRIVE)

        assert self.db.find_by_key(SOURCE_DRIVE, 1, "/a.jpg").backup_drive is None

    def test_stray_files_in_current_are_reported(self):
        write_file(self.backup_root / CURRENT_AREA / "notes.txt", b"stray")

        with HashDBOperations(self.config) as ops:
            ops.scrub(SOURCE_DRIVE)
            report = ops.mark(BACKUP_DRIVE)

        assert report.failures[0].kind == FailureKind.UNRECOGNIZED_LAYOUT
        assert self.db.count_unassigned(SOURCE_DRIVE, 1) == 4

    def test_source_drive_cannot_be_marked(self):
        with HashDBOperations(self.config) as ops:
            with pytest.raises(ValueError):
                ops.mark(SOURCE_DRIVE)
