"""AES-256-GCM encryption for OAuth tokens at rest.

Blob layout (base64 encoded as a whole):

    nonce (12 bytes) | auth tag (16 bytes) | ciphertext

Every call to encrypt() draws a fresh random nonce.
"""

from __future__ import annotations

import base64
import binascii
import os
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..constants.limits import ENCRYPTION_KEY_BYTES, ENCRYPTION_NONCE_BYTES, ENCRYPTION_TAG_BYTES
from ..errors import CryptoError

_MIN_BLOB_BYTES = ENCRYPTION_NONCE_BYTES + ENCRYPTION_TAG_BYTES


def generate_key_hex() -> str:
    """Generate a new 32-byte key, hex encoded (64 chars)."""
    return secrets.token_hex(ENCRYPTION_KEY_BYTES)


def _parse_key(key: str) -> bytes:
    key = key.strip()
    if not key:
        raise CryptoError("TOKEN_ENCRYPTION_KEY is not set")

    try:
        if len(key) == ENCRYPTION_KEY_BYTES * 2:
            raw = bytes.fromhex(key)
        elif len(key) == 44:
            raw = base64.b64decode(key, validate=True)
        else:
            raise CryptoError(
                "TOKEN_ENCRYPTION_KEY must be 64 hex characters or 44 base64 characters"
            )
    except (ValueError, binascii.Error) as e:
        raise CryptoError(f"TOKEN_ENCRYPTION_KEY is not valid hex or base64: {e}") from e

    if len(raw) != ENCRYPTION_KEY_BYTES:
        raise CryptoError(f"TOKEN_ENCRYPTION_KEY must decode to {ENCRYPTION_KEY_BYTES} bytes")
    return raw


class TokenCipher:
    """Authenticated encryption for token strings.

    Usage:
        cipher = TokenCipher.from_key_string(settings.token_encryption_key)
        blob = cipher.encrypt(token)
        token = cipher.decrypt(blob)
    """

    def __init__(self, key: bytes):
        if len(key) != ENCRYPTION_KEY_BYTES:
            raise CryptoError(f"Encryption key must be {ENCRYPTION_KEY_BYTES} bytes")
        self._aesgcm = AESGCM(key)

    @classmethod
    def from_key_string(cls, key: str) -> "TokenCipher":
        """Build a cipher from a hex (64 chars) or base64 (44 chars) key."""
        return cls(_parse_key(key))

    def __repr__(self) -> str:
        return "TokenCipher(key='***')"

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string.

        Args:
            plaintext: Token to encrypt.

        Returns:
            Base64 blob of nonce, tag and ciphertext.
        """
        nonce = os.urandom(ENCRYPTION_NONCE_BYTES)
        sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        # cryptography appends the tag; store it ahead of the ciphertext
        ciphertext, tag = sealed[:-ENCRYPTION_TAG_BYTES], sealed[-ENCRYPTION_TAG_BYTES:]
        return base64.b64encode(nonce + tag + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """Decrypt a blob produced by encrypt().

        Args:
            blob: Base64 blob.

        Returns:
            The original plaintext.

        Raises:
            CryptoError: If the blob is malformed, was tampered with, or the
                key is wrong.
        """
        try:
            raw = base64.b64decode(blob, validate=True)
        except (ValueError, binascii.Error) as e:
            raise CryptoError("Encrypted token is not valid base64") from e

        if len(raw) < _MIN_BLOB_BYTES:
            raise CryptoError("Encrypted token is too short")

        nonce = raw[:ENCRYPTION_NONCE_BYTES]
        tag = raw[ENCRYPTION_NONCE_BYTES:_MIN_BLOB_BYTES]
        ciphertext = raw[_MIN_BLOB_BYTES:]

        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as e:
            raise CryptoError("Encrypted token failed authentication") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CryptoError("Decrypted token is not valid UTF-8") from e
