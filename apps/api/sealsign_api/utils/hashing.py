"""Content hashing for documents, marks and audit entries."""

import hashlib
import json
from typing import Any, Union


def sha256_hex(data: Union[bytes, bytearray, str]) -> str:
    """Hex-encoded SHA-256 of raw bytes (strings are UTF-8 encoded)."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"sha256_hex expects bytes or str, got {type(data).__name__}")
    return hashlib.sha256(data).hexdigest()


def canonical_json(payload: Any) -> bytes:
    """Deterministic JSON encoding (sorted keys, no whitespace)."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")
