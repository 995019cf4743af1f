"""
SHA-256 hash verification for downloaded protoc archives.

Digests are always computed over the raw bytes exactly as they were
downloaded, before any decompression, and compared with a constant-time
comparison.
"""

import hashlib
import logging
import secrets
from pathlib import Path
from typing import Union

from dlprotoc.core.exceptions import HashMismatchError

logger = logging.getLogger(__name__)

DIGEST_SIZE = 32
"""Size in bytes of a SHA-256 digest."""


def sha256_digest(data: bytes) -> bytes:
    """Return the raw 32-byte SHA-256 digest of data."""
    return hashlib.sha256(data).digest()


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 digest of data as a lowercase hex string."""
    return hashlib.sha256(data).hexdigest()


def compute_file_hash(file_path: Path) -> str:
    """
    Compute the SHA-256 hash of a file.

    Args:
        file_path: Path to file

    Returns:
        Hex string of hash

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while chunk := f.read(8192):
            hasher.update(chunk)
    return hasher.hexdigest()


def digests_equal(a: Union[bytes, str], b: Union[bytes, str]) -> bool:
    """
    Compare two digests in constant time.

    Hex strings are compared case-insensitively. A string that is not ASCII
    cannot be a hex digest and never compares equal.
    """
    try:
        if isinstance(a, str):
            a = a.strip().lower().encode("ascii")
        if isinstance(b, str):
            b = b.strip().lower().encode("ascii")
    except UnicodeEncodeError:
        return False
    return secrets.compare_digest(a, b)


def verify_digest(data: bytes, expected: bytes, label: str = "download") -> None:
    """
    Verify that data hashes to the expected SHA-256 digest.

    Args:
        data: Untouched downloaded bytes
        expected: Expected 32-byte digest
        label: Description used in the error message

    Raises:
        HashMismatchError: If the digest of data differs from expected
        ValueError: If expected is not a 32-byte digest
    """
    if len(expected) != DIGEST_SIZE:
        raise ValueError(
            f"Expected a {DIGEST_SIZE}-byte SHA-256 digest, got {len(expected)} bytes"
        )

    actual = sha256_digest(data)
    if not digests_equal(actual, expected):
        logger.error(f"SHA-256 mismatch for {label}")
        raise HashMismatchError(label, expected.hex(), actual.hex())

    logger.debug(f"SHA-256 verified for {label}: {actual.hex()}")
