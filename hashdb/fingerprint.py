import hashlib
import logging
from pathlib import Path
from typing import Union


logger = logging.getLogger('hashdb')

# Small reads keep memory flat and stay under per-call read limits on huge files
DEFAULT_CHUNK_SIZE = 4096

# Hex digest length for each supported algorithm
HASH_LENGTHS = {
    'sha512': 128,
    'sha256': 64,
}


class FingerprintError(OSError):
    """Raised when a file cannot be read for fingerprinting."""

    def __init__(self, path: Union[str, Path], cause: OSError):
        super().__init__(cause.errno, f"Could not fingerprint '{path}': {cause.strerror or cause}")
        self.path = str(path)
        self.cause = cause


def new_hasher(algorithm: str):
    """Return a fresh hash object for the named algorithm."""
    if algorithm not in HASH_LENGTHS:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")
    return hashlib.new(algorithm)


def compute(file_path: Union[str, Path], algorithm: str = 'sha512',
            chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    Generate a content fingerprint for a file.

    The file is read in fixed-size chunks, so memory use does not depend on
    the file size and the digest does not depend on the chunk size.

    Args:
        file_path: Path to the file to fingerprint
        algorithm: 'sha512' (canonical content identity) or 'sha256'
        chunk_size: Number of bytes read per call

    Returns:
        str: Lowercase hex digest

    Raises:
        ValueError: If the algorithm is unknown or chunk_size is not positive
        FingerprintError: If the file cannot be opened or read
    """
    if chunk_size <= 0:
        raise ValueError(f"Invalid chunk size: {chunk_size}")
    digest = new_hasher(algorithm)
    try:
        with open(file_path, 'rb') as f:
            for chunk in iter(lambda: f.read(chunk_size), b''):
                digest.update(chunk)
    except OSError as e:
        raise FingerprintError(file_path, e) from e
    return digest.hexdigest()


def is_hex_digest(value: str, length: int) -> bool:
    """Check that value is a lowercase hex string of exactly length characters."""
    if len(value) != length:
        return False
    return all(c in '0123456789abcdef' for c in value)
