"""Request signing primitives.

A client holds a raw API key and the server-wide signing salt. Both sides
derive the same key hash from them, and every request is signed with an
HMAC of its nonce keyed by that hash. The server only ever stores the hash.
"""

import hashlib
import hmac
import secrets
from typing import Final

_API_KEY_BYTES: Final = 32  # 64 hex characters


def generate_api_key() -> str:
    """Generate a new random API key.

    Returns:
        Hex-encoded random key.
    """
    return secrets.token_hex(_API_KEY_BYTES)


def hash_api_key(api_key: str, salt: str) -> str:
    """Derive the stored one-way hash of an API key.

    Args:
        api_key: Raw API key.
        salt: Server-wide signing salt.

    Returns:
        Hex-encoded SHA256 of salt + key.
    """
    return hashlib.sha256(f'{salt}{api_key}'.encode()).hexdigest()


def compute_signature(key_hash: str, nonce: str) -> str:
    """Compute the expected request signature.

    Args:
        key_hash: Stored hash of the API key.
        nonce: Per-request nonce chosen by the client.

    Returns:
        Hex-encoded HMAC-SHA256 of the nonce, keyed by the key hash.
    """
    return hmac.new(
        key_hash.encode(),
        nonce.encode(),
        hashlib.sha256,
    ).hexdigest()


def sign_request(api_key: str, nonce: str, salt: str) -> str:
    """Client-side helper: sign a nonce with a raw API key.

    Args:
        api_key: Raw API key.
        nonce: Per-request nonce.
        salt: Server-wide signing salt.

    Returns:
        Value for the ``x-sharenote-key`` header.
    """
    return compute_signature(hash_api_key(api_key, salt), nonce)


def signatures_match(expected: str, supplied: str) -> bool:
    """Compare two signatures in constant time."""
    return hmac.compare_digest(expected.encode(), supplied.encode())
