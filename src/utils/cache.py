"""Cache key fingerprinting.

A fingerprint identifies one (logical input, option set) pair. Options are
canonicalised with sorted keys before hashing so the order in which a caller
supplies them never changes the key.
"""

import hashlib
import json
from typing import Any, Mapping, Optional


def canonicalize_options(options: Optional[Mapping[str, Any]]) -> str:
    """Serialise an option mapping deterministically.

    Args:
        options: Option mapping (may be None or empty)

    Returns:
        Compact JSON string with keys sorted at every level
    """
    return json.dumps(
        dict(options or {}),
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )


def compute_fingerprint(logical_input: str, options: Optional[Mapping[str, Any]] = None) -> str:
    """Compute the cache fingerprint for an input and its options.

    Uses SHA-256 so the result is a fixed-length, filesystem-safe
    identifier that doubles as the durable file name.

    Args:
        logical_input: Logical input id (e.g. "spotify:<id>")
        options: Option set for the request

    Returns:
        SHA-256 hash as hex string
    """
    combined = f"{logical_input}\n{canonicalize_options(options)}"
    return compute_content_hash(combined)


def compute_content_hash(content: str) -> str:
    """Compute SHA-256 hash of string content for cache keying.

    Args:
        content: String content to hash

    Returns:
        SHA-256 hash as hex string
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def is_fingerprint(value: str) -> bool:
    """Check that a string looks like a fingerprint (64 lowercase hex chars)."""
    return len(value) == 64 and all(c in "0123456789abcdef" for c in value)
