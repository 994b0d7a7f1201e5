"""PKCE (RFC 7636) verifier/challenge generation."""

from __future__ import annotations

import hashlib
import secrets
from typing import NamedTuple

from ..constants.limits import PKCE_VERIFIER_BYTES
from .encoding import b64url_encode

PKCE_METHOD = "S256"


class PkcePair(NamedTuple):
    verifier: str
    challenge: str


def generate_code_verifier() -> str:
    return b64url_encode(secrets.token_bytes(PKCE_VERIFIER_BYTES))


def generate_code_challenge(verifier: str) -> str:
    return b64url_encode(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_pkce_pair() -> PkcePair:
    """Generate a fresh verifier and its S256 challenge."""
    verifier = generate_code_verifier()
    return PkcePair(verifier=verifier, challenge=generate_code_challenge(verifier))
