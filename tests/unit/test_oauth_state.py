"""Unit tests for signed OAuth state."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest

from social_publisher.crypto.encoding import b64url_encode
from social_publisher.crypto.signing import sign_state
from social_publisher.oauth.models import OAuthState
from social_publisher.oauth.state import StateNonceCache, create_state, decode_state, encode_state
from social_publisher.utils.timestamps import epoch_ms

from conftest import START, STATE_SECRET


def _signed(payload: dict) -> str:
    body = b64url_encode(json.dumps(payload).encode())
    return f"{body}.{sign_state(body, STATE_SECRET)}"


class TestStateRoundTrip:
    """Tests for create_state / decode_state."""

    def test_decode_returns_payload(self):
        """Test that a fresh state decodes to what was put in."""
        state = create_state("user-1", "tiktok", STATE_SECRET, code_verifier="verifier", now=START)

        decoded = decode_state(state, STATE_SECRET, now=START + timedelta(seconds=30))

        assert decoded is not None
        assert decoded.user_id == "user-1"
        assert decoded.platform == "tiktok"
        assert decoded.code_verifier == "verifier"
        assert decoded.timestamp == epoch_ms(START)
        assert len(decoded.nonce) == 32

    def test_wire_shape(self):
        """Test that the state is payload.signature with camelCase keys."""
        state = create_state("u", "twitter", STATE_SECRET, code_verifier="v", now=START)
        payload, signature = state.split(".")

        assert signature == sign_state(payload, STATE_SECRET)
        decoded = decode_state(state, STATE_SECRET, now=START)
        assert decoded.to_payload()["codeVerifier"] == "v"

    def test_verifier_omitted_when_absent(self):
        """Test that non-PKCE states carry no codeVerifier key."""
        state = OAuthState(user_id="u", platform="reddit", timestamp=1, nonce="n")

        assert "codeVerifier" not in state.to_payload()


class TestStateRejection:
    """Tests for states that must be rejected."""

    def test_expired_state(self):
        """Test that a state exactly ten minutes old is rejected."""
        state = create_state("u", "linkedin", STATE_SECRET, now=START)

        assert decode_state(state, STATE_SECRET, now=START + timedelta(minutes=10)) is None
        assert decode_state(state, STATE_SECRET, now=START + timedelta(minutes=9, seconds=59)) is not None

    def test_wrong_secret(self):
        """Test that a state signed with another secret is rejected."""
        state = create_state("u", "linkedin", "other-secret", now=START)

        assert decode_state(state, STATE_SECRET, now=START) is None

    def test_modified_payload(self):
        """Test that changing the payload breaks the signature."""
        state = create_state("u", "linkedin", STATE_SECRET, now=START)
        payload, signature = state.split(".")
        forged = b64url_encode(json.dumps({"userId": "admin"}).encode())

        assert decode_state(f"{forged}.{signature}", STATE_SECRET, now=START) is None

    @pytest.mark.parametrize("state", ["", "no-separator", "a.b.c", ".sig", "payload."])
    def test_malformed(self, state: str):
        """Test that malformed strings return None instead of raising."""
        assert decode_state(state, STATE_SECRET, now=START) is None

    def test_signed_but_not_json(self):
        """Test that a correctly signed non-JSON payload is rejected."""
        body = b64url_encode(b"not json")

        assert decode_state(f"{body}.{sign_state(body, STATE_SECRET)}", STATE_SECRET, now=START) is None

    def test_signed_but_missing_fields(self):
        """Test that a signed payload without a nonce is rejected."""
        state = _signed({"userId": "u", "platform": "tiktok", "timestamp": epoch_ms(START)})

        assert decode_state(state, STATE_SECRET, now=START) is None

    def test_signed_with_wrong_types(self):
        """Test that a signed payload with a string timestamp is rejected."""
        state = _signed({"userId": "u", "platform": "tiktok", "timestamp": "soon", "nonce": "n"})

        assert decode_state(state, STATE_SECRET, now=START) is None


class TestStateNonceCache:
    """Tests for one-time state nonces."""

    def test_second_use_rejected(self):
        """Test that a nonce is accepted once."""
        cache = StateNonceCache()
        state = OAuthState(user_id="u", platform="tiktok", timestamp=epoch_ms(START), nonce="n1")

        assert cache.consume(state, now=START)
        assert not cache.consume(state, now=START + timedelta(seconds=5))

    def test_old_entries_purged(self):
        """Test that nonces older than the state lifetime are forgotten."""
        cache = StateNonceCache()
        cache.consume(OAuthState("u", "tiktok", epoch_ms(START), "old"), now=START)

        cache.consume(
            OAuthState("u", "tiktok", epoch_ms(START + timedelta(minutes=11)), "new"),
            now=START + timedelta(minutes=11),
        )

        assert len(cache) == 1

    def test_encode_state_is_deterministic(self):
        """Test that encoding the same state twice gives the same string."""
        state = OAuthState("u", "tiktok", epoch_ms(START), "n")

        assert encode_state(state, STATE_SECRET) == encode_state(state, STATE_SECRET)
