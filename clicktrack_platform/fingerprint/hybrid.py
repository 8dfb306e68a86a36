"""
Hybrid fingerprint combiner.

Responsibilities:
    - Merge the server-derived hash and the client-derived hash into one
      device fingerprint (SHA-256 of "server:client", lowercase hex)
    - Validate fingerprint shape before anything touches storage

Notes:
    - The combination is order-sensitive. Callers always pass the server
      hash first; swapping the arguments yields a different fingerprint.
    - A fingerprint identifies a device for one campaign + target pairing,
      not globally (see storage.keys.build_key).

LLM Prompt Example:
    "Explain why hashing two weak identity signals together yields a more
    stable device identifier than either signal alone, and what it cannot
    protect against."
"""

import hashlib
import re

FINGERPRINT_PATTERN = re.compile(r"^[a-f0-9]{64}$", re.IGNORECASE)


def combine_fingerprints(server_hash: str, client_hash: str) -> str:
    """
    Combine server and client hashes into the final fingerprint.

    Args:
        server_hash (str): 64-hex hash produced from request headers.
        client_hash (str): Opaque hash produced in the requester's runtime.

    Returns:
        str: 64-char lowercase hex SHA-256 digest of "server_hash:client_hash".
    """
    combined = f"{server_hash}:{client_hash}"
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()


def is_valid_fingerprint(fingerprint) -> bool:
    """Return True iff `fingerprint` is a 64-char hex string (any case)."""
    if not isinstance(fingerprint, str):
        return False
    return FINGERPRINT_PATTERN.fullmatch(fingerprint) is not None
