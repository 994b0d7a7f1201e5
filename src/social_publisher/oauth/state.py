"""Signed OAuth state.

Wire form:

    base64url(json payload) + "." + base64url(hmac-sha256(payload))

The payload carries the user, platform, creation time and a random nonce,
plus the PKCE verifier when the platform needs one.
"""

from __future__ import annotations

import binascii
import json
import logging
from datetime import datetime
from typing import Optional

from ..constants.limits import OAUTH_STATE_MAX_AGE_SECONDS
from ..crypto.encoding import b64url_decode, b64url_encode
from ..crypto.signing import generate_nonce, sign_state, verify_signature
from ..utils.timestamps import epoch_ms, now_utc
from .models import OAuthState

_logger = logging.getLogger("oauth")

STATE_SEPARATOR = "."


def encode_state(state: OAuthState, secret: str) -> str:
    """Serialize and sign a state payload."""
    raw = json.dumps(state.to_payload(), separators=(",", ":"))
    payload = b64url_encode(raw.encode("utf-8"))
    return f"{payload}{STATE_SEPARATOR}{sign_state(payload, secret)}"


def create_state(
    user_id: str,
    platform: str,
    secret: str,
    code_verifier: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Build a fresh signed state string.

    Args:
        user_id: Local user starting the flow.
        platform: Platform identifier.
        secret: HMAC secret.
        code_verifier: PKCE verifier to carry through the redirect.
        now: Creation time (defaults to the current UTC time).

    Returns:
        Signed state string.
    """
    state = OAuthState(
        user_id=user_id,
        platform=platform,
        timestamp=epoch_ms(now or now_utc()),
        nonce=generate_nonce(),
        code_verifier=code_verifier,
    )
    return encode_state(state, secret)


def decode_state(
    state: str,
    secret: str,
    now: Optional[datetime] = None,
    max_age_seconds: float = OAUTH_STATE_MAX_AGE_SECONDS,
) -> Optional[OAuthState]:
    """Verify and decode a signed state string.

    Returns None for a wrong shape, a bad signature, an undecodable payload
    or a state that is max_age_seconds old or older.
    """
    if not state or state.count(STATE_SEPARATOR) != 1:
        _logger.warning("OAuth state rejected: malformed")
        return None

    payload, signature = state.split(STATE_SEPARATOR)
    if not payload or not signature or not verify_signature(payload, signature, secret):
        _logger.warning("OAuth state rejected: bad signature")
        return None

    try:
        data = json.loads(b64url_decode(payload).decode("utf-8"))
        if not isinstance(data, dict):
            raise ValueError("state payload is not an object")
        decoded = OAuthState.from_payload(data)
    except (ValueError, KeyError, TypeError, UnicodeDecodeError, binascii.Error) as e:
        _logger.warning(f"OAuth state rejected: undecodable payload ({type(e).__name__})")
        return None

    age_ms = epoch_ms(now or now_utc()) - decoded.timestamp
    if age_ms >= max_age_seconds * 1000:
        _logger.warning(f"OAuth state rejected: expired ({age_ms // 1000}s old)")
        return None

    return decoded


class StateNonceCache:
    """Remembers consumed state nonces so each state works only once.

    Entries are dropped once they are older than the state lifetime,
    since an expired state is rejected anyway.
    """

    def __init__(self, max_age_seconds: float = OAUTH_STATE_MAX_AGE_SECONDS):
        self._max_age_ms = int(max_age_seconds * 1000)
        self._seen: dict[str, int] = {}

    def consume(self, state: OAuthState, now: Optional[datetime] = None) -> bool:
        """Mark a nonce as used.

        Returns:
            True on first use, False when the nonce was already consumed.
        """
        now_ms = epoch_ms(now or now_utc())
        self._purge(now_ms)
        if state.nonce in self._seen:
            return False
        self._seen[state.nonce] = state.timestamp
        return True

    def _purge(self, now_ms: int) -> None:
        expired = [n for n, ts in self._seen.items() if now_ms - ts >= self._max_age_ms]
        for nonce in expired:
            del self._seen[nonce]

    def __len__(self) -> int:
        return len(self._seen)
