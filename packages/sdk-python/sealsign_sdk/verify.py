"""Offline verification of downloaded sealed documents."""

import hashlib
import hmac


def verify_sealed_document(data: bytes, expected_hash: str) -> bool:
    """Check downloaded bytes against the document's recorded ``contentHash``.

    Args:
        data: Sealed PDF bytes
        expected_hash: Hex SHA-256 from the document resource

    Returns:
        True if the bytes are exactly the sealed artifact
    """
    if not expected_hash:
        return False
    actual = hashlib.sha256(data).hexdigest()
    return hmac.compare_digest(actual, expected_hash.lower())
