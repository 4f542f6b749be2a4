# -*- coding: utf-8 -*-
"""SHA-256 provenance hashing for calculation results and imported files."""

import hashlib
import json
from typing import Any


def compute_provenance_hash(payload: Any) -> str:
    """Hash a JSON-serializable payload deterministically.

    Keys are sorted and non-JSON types (Decimal, datetime) are stringified
    so that equal inputs always yield the same digest.

    Args:
        payload: Dict, list or scalar to hash.

    Returns:
        Hex-encoded SHA-256 digest.
    """
    serialized = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def hash_bytes(data: bytes) -> str:
    """Hex SHA-256 digest of raw bytes (used for uploaded files)."""
    return hashlib.sha256(data).hexdigest()


__all__ = ["compute_provenance_hash", "hash_bytes"]
