"""Crypto and signing utilities.

Usage:
    from social_publisher.crypto import TokenCipher, generate_pkce_pair

    cipher = TokenCipher.from_key_string(settings.token_encryption_key)
    blob = cipher.encrypt("access-token")
    assert cipher.decrypt(blob) == "access-token"

    pair = generate_pkce_pair()
"""

from .encryption import TokenCipher, generate_key_hex
from .pkce import PkcePair, generate_code_challenge, generate_code_verifier, generate_pkce_pair
from .signing import generate_nonce, sign_state, verify_signature

__all__ = [
    "TokenCipher",
    "generate_key_hex",
    "PkcePair",
    "generate_pkce_pair",
    "generate_code_verifier",
    "generate_code_challenge",
    "sign_state",
    "verify_signature",
    "generate_nonce",
]
