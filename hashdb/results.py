"""Per-file outcomes and the per-run report the components hand back to the caller."""

import errno
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


logger = logging.getLogger('hashdb')


class FailureKind(Enum):
    UNREADABLE = 'unreadable'
    MISSING = 'missing'
    PERMISSION = 'permission'
    DESTINATION_FULL = 'destination_full'
    UNRECOGNIZED_LAYOUT = 'unrecognized_layout'
    IO_ERROR = 'io_error'


def classify_os_error(error: OSError) -> FailureKind:
    """Map an OSError onto the failure kind reported for the file."""
    if isinstance(error, FileNotFoundError):
        return FailureKind.MISSING
    if isinstance(error, PermissionError):
        return FailureKind.PERMISSION
    if error.errno in (errno.ENOSPC, errno.EDQUOT):
        return FailureKind.DESTINATION_FULL
    return FailureKind.IO_ERROR


@dataclass
class FileResult:
    path: str
    kind: Optional[FailureKind] = None
    message: str = ''

    @property
    def ok(self) -> bool:
        return self.kind is None


@dataclass
class RunReport:
    """Aggregated outcome of one pass over a drive."""

    mode: str
    drive: str
    processed: int = 0
    skipped: int = 0
    failures: List[FileResult] = field(default_factory=list)

    def record(self, result: FileResult) -> None:
        if result.ok:
            self.processed += 1
        else:
            self.failures.append(result)

    def fail(self, path: str, kind: FailureKind, message: str) -> None:
        logger.warning(f"{self.mode}: skipping '{path}' ({kind.value}): {message}")
        self.record(FileResult(path, kind, message))

    def fail_os_error(self, path: str, error: OSError) -> None:
        self.fail(path, classify_os_error(error), str(error))

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    def failure_counts(self) -> Dict[FailureKind, int]:
        counts: Dict[FailureKind, int] = {}
        for failure in self.failures:
            counts[failure.kind] = counts.get(failure.kind, 0) + 1
        return counts

    def summary(self) -> str:
        text = f"{self.mode} {self.drive}: {self.processed} processed, {self.skipped} skipped, {self.failed} failed"
        if self.failures:
            details = ', '.join(f"{kind.value}={count}" for kind, count in self.failure_counts().items())
            text += f" ({details})"
        return text
