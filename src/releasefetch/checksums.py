"""
SHA-256 helpers used for integrity verification.
"""

import hashlib
import re
from typing import Optional

from releasefetch.constants import HASH_READ_CHUNK_SIZE, SHA256_HEX_LENGTH
from releasefetch.exceptions import InvalidChecksumError
from releasefetch.log_utils import logger
from releasefetch.models import Pathish

_SHA256_RX = re.compile(rf"^[0-9a-fA-F]{{{SHA256_HEX_LENGTH}}}$")


def is_valid_sha256(value: Optional[str]) -> bool:
    """Return True if `value` is a 64-character hexadecimal string."""
    return isinstance(value, str) and bool(_SHA256_RX.match(value))


def normalize_sha256(value: Optional[str]) -> Optional[str]:
    """
    Validate an expected digest and return it lowercased.

    Surrounding whitespace is ignored and None passes through unchanged.

    Raises:
        InvalidChecksumError: If the value is not a 64-character hex digest.
    """
    if value is None:
        return None
    candidate = value.strip() if isinstance(value, str) else value
    if not is_valid_sha256(candidate):
        raise InvalidChecksumError(
            "Expected checksum must be a 64-character hexadecimal SHA-256 digest",
            value=str(value),
        )
    return candidate.lower()


def calculate_sha256(file_path: Pathish) -> Optional[str]:
    """
    Compute the SHA-256 hex digest of a file.

    Streams the file in chunks without loading it into memory. Returns the
    lowercase digest, or None if the file cannot be opened or read.
    """
    try:
        sha256_hash = hashlib.sha256()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(HASH_READ_CHUNK_SIZE), b""):
                sha256_hash.update(chunk)
        return sha256_hash.hexdigest()
    except (IOError, OSError) as e:
        logger.debug(f"Error calculating SHA-256 for {file_path}: {e}")
        return None
