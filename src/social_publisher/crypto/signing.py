"""HMAC signing for OAuth state."""

from __future__ import annotations

import hashlib
import hmac
import secrets

from ..constants.limits import OAUTH_NONCE_BYTES
from .encoding import b64url_encode


def sign_state(data: str, secret: str) -> str:
    """HMAC-SHA256 of data, base64url encoded without padding."""
    digest = hmac.new(secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha256).digest()
    return b64url_encode(digest)


def verify_signature(data: str, signature: str, secret: str) -> bool:
    """Check a signature in constant time.

    Returns False for any mismatch, including different lengths.
    """
    expected = sign_state(data, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


def generate_nonce() -> str:
    """Random hex nonce for OAuth state."""
    return secrets.token_hex(OAUTH_NONCE_BYTES)
