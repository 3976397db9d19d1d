"""
Path helpers for the content-addressed backup layout.

A blob for hash ``H`` lives at ``<drive root>/<area>/H[:2]/H[2:]``. The two
shard segments always concatenate to exactly the hash, and every helper that
goes from a path back to a hash length-checks the result.
"""

import os
import logging
from pathlib import Path, PurePosixPath
from typing import Tuple, Union

from .fingerprint import is_hex_digest


logger = logging.getLogger('hashdb')

CURRENT_AREA = 'current'
DEPRECATED_AREA = 'deprecated'
RESTORE_AREA = 'restorefs'

SHARD_WIDTH = 2


def shard(content_hash: str) -> Tuple[str, str]:
    """Split a hash into its (prefix directory, remainder) segments."""
    if len(content_hash) <= SHARD_WIDTH:
        raise ValueError(f"Hash too short to shard: '{content_hash}'")
    return content_hash[:SHARD_WIDTH], content_hash[SHARD_WIDTH:]


def join_shard(prefix: str, rest: str, length: int) -> str:
    """
    Rebuild a hash from its shard segments.

    Args:
        prefix: First path segment (the two-character shard directory)
        rest: Second path segment (the remainder of the hash)
        length: Expected hex length of the full hash

    Returns:
        str: The reassembled hash

    Raises:
        ValueError: If the segments do not form a hex hash of the given length
    """
    if len(prefix) != SHARD_WIDTH:
        raise ValueError(f"Shard prefix must be {SHARD_WIDTH} characters: '{prefix}'")
    content_hash = prefix + rest
    if not is_hex_digest(content_hash, length):
        raise ValueError(f"'{prefix}/{rest}' does not encode a {length}-character hash")
    return content_hash


def blob_path(drive_root: Union[str, Path], area: str, content_hash: str) -> Path:
    """Location of the blob for content_hash inside an area of a drive."""
    prefix, rest = shard(content_hash)
    return Path(drive_root) / area / prefix / rest


def temp_blob_path(drive_root: Union[str, Path], content_hash: str) -> Path:
    """Hash-named staging location at the drive root used while copying."""
    return Path(drive_root) / content_hash


def hash_from_blob_path(file_path: Union[str, Path], length: int) -> str:
    """Recover a hash from the last two segments of a sharded blob path."""
    parts = Path(file_path).parts
    if len(parts) < 2:
        raise ValueError(f"'{file_path}' is not a sharded blob path")
    return join_shard(parts[-2], parts[-1], length)


def relative_path(drive_root: Union[str, Path], file_path: Union[str, Path]) -> str:
    """
    Index form of a path: POSIX separators with a leading slash.

    Raises:
        ValueError: If file_path is not inside drive_root
    """
    rel = Path(file_path).relative_to(Path(drive_root))
    return '/' + PurePosixPath(*rel.parts).as_posix()


def absolute_path(drive_root: Union[str, Path], rel_path: str) -> Path:
    """Inverse of relative_path."""
    parts = PurePosixPath(rel_path.lstrip('/')).parts
    if '..' in parts:
        raise ValueError(f"Relative path escapes the drive root: '{rel_path}'")
    return Path(drive_root).joinpath(*parts)


def is_blob_area_path(rel_path: str) -> bool:
    """True if an index path points inside the current/ or deprecated/ area of a drive."""
    parts = PurePosixPath(rel_path.lstrip('/')).parts
    return bool(parts) and parts[0] in (CURRENT_AREA, DEPRECATED_AREA)



def prune_empty_dirs(top: Union[str, Path], keep_top: bool = True) -> int:
    """
    Remove empty directories below top, deepest first.

    Returns:
        int: Number of directories removed
    """
    top = Path(top)
    if not top.is_dir():
        return 0

    removed = 0
    for root, _, _ in os.walk(top, topdown=False):
        directory = Path(root)
        if keep_top and directory == top:
            continue
        try:
            if not any(directory.iterdir()):
                directory.rmdir()
                removed += 1
        except OSError as e:
            logger.warning(f"Could not prune directory '{directory}': {str(e)}")
    logger.debug(f"Pruned {removed} empty directories under '{top}'")
    return removed
