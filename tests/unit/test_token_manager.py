"""Unit tests for TokenManager."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import httpx
import pytest

from social_publisher.config import Settings
from social_publisher.crypto import TokenCipher
from social_publisher.errors import CredentialError
from social_publisher.oauth.models import TokenSet, UserProfile
from social_publisher.oauth.service import OAuthService
from social_publisher.oauth.store import InMemoryConnectionStore
from social_publisher.oauth.token_manager import TokenManager
from social_publisher.platforms import PlatformRegistry

from conftest import START, FakeApi, FixedClock

PROFILE = UserProfile(platform_user_id="acct-1", username="alice", display_name="Alice")


@pytest.fixture
def manager(
    registry: PlatformRegistry,
    settings: Settings,
    api: FakeApi,
    clock: FixedClock,
    store: InMemoryConnectionStore,
    cipher: TokenCipher,
) -> TokenManager:
    """TokenManager over an in-memory store and the fake API."""
    oauth = OAuthService(registry, settings=settings, http_client=api.client(), clock=clock)
    return TokenManager(store, oauth, cipher, clock=clock)


def _tokens(access: str = "a1", refresh: str | None = "r1", expires_in: float | None = 3600) -> TokenSet:
    expires_at = START + timedelta(seconds=expires_in) if expires_in is not None else None
    return TokenSet(access_token=access, refresh_token=refresh, expires_at=expires_at, scope="w_member_social")


class TestStoreConnection:
    """Tests for storing and reading connections."""

    @pytest.mark.asyncio
    async def test_tokens_encrypted_at_rest(self, manager: TokenManager, store: InMemoryConnectionStore, cipher: TokenCipher):
        """Test that the store only ever sees ciphertext."""
        await manager.store_connection("u1", "linkedin", _tokens(), PROFILE)

        row = await store.get("u1", "linkedin")
        assert row.encrypted_access_token != "a1"
        assert cipher.decrypt(row.encrypted_access_token) == "a1"
        assert cipher.decrypt(row.encrypted_refresh_token) == "r1"
        assert row.platform_user_id == "acct-1"
        assert row.scopes == ["w_member_social"]
        assert row.active

    @pytest.mark.asyncio
    async def test_reconnect_replaces_row(
        self,
        manager: TokenManager,
        store: InMemoryConnectionStore,
        clock: FixedClock,
    ):
        """Test that reconnecting keeps one row and the original created_at."""
        await manager.store_connection("u1", "linkedin", _tokens(), PROFILE)
        clock.advance(60)
        await manager.store_connection("u1", "LinkedIn", _tokens(access="a2"), PROFILE)

        row = await store.get("u1", "linkedin")
        assert len(store) == 1
        assert row.created_at == START
        assert row.updated_at == START + timedelta(seconds=60)

    @pytest.mark.asyncio
    async def test_extras_land_in_metadata(self, manager: TokenManager, store: InMemoryConnectionStore):
        """Test that token extras such as the Discord webhook are kept."""
        tokens = _tokens()
        tokens.extras["webhook_url"] = "https://discord.com/api/webhooks/1/x"

        await manager.store_connection("u1", "discord", tokens, PROFILE)

        row = await store.get("u1", "discord")
        assert row.metadata["webhook_url"] == "https://discord.com/api/webhooks/1/x"

    @pytest.mark.asyncio
    async def test_status_without_connection(self, manager: TokenManager):
        """Test that status for a missing connection is not connected."""
        status = await manager.get_connection_status("u1", "twitter")

        assert status.connected is False
        assert status.to_dict()["platform"] == "twitter"

    @pytest.mark.asyncio
    async def test_user_connections_only_active(self, manager: TokenManager):
        """Test that deactivated connections are not listed."""
        await manager.store_connection("u1", "linkedin", _tokens(), PROFILE)
        await manager.store_connection("u1", "discord", _tokens(), PROFILE)
        await manager.deactivate_connection("u1", "discord", "revoked by user")

        connections = await manager.get_user_connections("u1")

        assert [c.platform for c in connections] == ["linkedin"]


class TestGetValidAccessToken:
    """Tests for get_valid_access_token."""

    @pytest.mark.asyncio
    async def test_fresh_token_no_refresh(self, manager: TokenManager, api: FakeApi):
        """Test that a token far from expiry is returned without a network call."""
        await manager.store_connection("u1", "linkedin", _tokens(), PROFILE)

        assert await manager.get_valid_access_token("u1", "linkedin") == "a1"
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_no_connection(self, manager: TokenManager):
        """Test that a missing connection yields None."""
        assert await manager.get_valid_access_token("u1", "linkedin") is None

    @pytest.mark.asyncio
    async def test_refresh_within_buffer(
        self,
        manager: TokenManager,
        api: FakeApi,
        store: InMemoryConnectionStore,
        cipher: TokenCipher,
    ):
        """Test that a token expiring inside the buffer is refreshed first."""
        api.add("POST", "accessToken", {"access_token": "a2", "expires_in": 5184000})
        await manager.store_connection("u1", "linkedin", _tokens(expires_in=120), PROFILE)

        token = await manager.get_valid_access_token("u1", "linkedin")

        assert token == "a2"
        form = api.form_body(api.requests[0])
        assert form["grant_type"] == "refresh_token"
        assert form["refresh_token"] == "r1"
        row = await store.get("u1", "linkedin")
        assert row.expires_at == START + timedelta(seconds=5184000)
        # No rotation: the old refresh token is kept
        assert cipher.decrypt(row.encrypted_refresh_token) == "r1"

    @pytest.mark.asyncio
    async def test_expired_without_refresh_token(self, manager: TokenManager, clock: FixedClock):
        """Test that an expired token with no refresh token yields None."""
        await manager.store_connection("u1", "linkedin", _tokens(refresh=None, expires_in=60), PROFILE)
        clock.advance(120)

        assert await manager.get_valid_access_token("u1", "linkedin") is None

    @pytest.mark.asyncio
    async def test_expiring_without_refresh_token_still_usable(self, manager: TokenManager):
        """Test that a not-yet-expired token without refresh is still handed out."""
        await manager.store_connection("u1", "linkedin", _tokens(refresh=None, expires_in=60), PROFILE)

        assert await manager.get_valid_access_token("u1", "linkedin") == "a1"

    @pytest.mark.asyncio
    async def test_no_expiry_never_refreshes(self, manager: TokenManager, api: FakeApi, clock: FixedClock):
        """Test that tokens without an expiry are used as-is."""
        await manager.store_connection("u1", "linkedin", _tokens(expires_in=None), PROFILE)
        clock.advance(10 * 365 * 86400)

        assert await manager.get_valid_access_token("u1", "linkedin") == "a1"
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_concurrent_callers_refresh_once(self, manager: TokenManager, api: FakeApi):
        """Test that simultaneous callers share a single refresh."""
        api.add("POST", "accessToken", {"access_token": "a2", "expires_in": 3600})
        await manager.store_connection("u1", "linkedin", _tokens(expires_in=30), PROFILE)

        tokens = await asyncio.gather(*(manager.get_valid_access_token("u1", "linkedin") for _ in range(5)))

        assert tokens == ["a2"] * 5
        assert len(api.calls("POST", "accessToken")) == 1

    @pytest.mark.asyncio
    async def test_refresh_failure_deactivates(
        self,
        manager: TokenManager,
        api: FakeApi,
        store: InMemoryConnectionStore,
    ):
        """Test that a failed refresh returns None and records the error."""
        api.add("POST", "accessToken", httpx.Response(400, json={"error": "invalid_grant"}))
        await manager.store_connection("u1", "linkedin", _tokens(expires_in=30), PROFILE)

        assert await manager.get_valid_access_token("u1", "linkedin") is None

        row = await store.get("u1", "linkedin")
        assert row.active is False
        assert row.last_error.startswith("Token refresh failed")
        assert row.last_error_at == START
        # An inactive connection is not retried
        assert await manager.get_valid_access_token("u1", "linkedin") is None
        assert len(api.requests) == 1

    @pytest.mark.asyncio
    async def test_undecryptable_token_deactivates(self, manager: TokenManager, store: InMemoryConnectionStore):
        """Test that a corrupt blob deactivates the connection instead of raising."""
        await manager.store_connection("u1", "linkedin", _tokens(), PROFILE)
        row = await store.get("u1", "linkedin")
        row.encrypted_access_token = "Zm9vYmFy" * 6
        await store.upsert(row)

        assert await manager.get_valid_access_token("u1", "linkedin") is None
        assert (await store.get("u1", "linkedin")).active is False


class TestRefresh:
    """Tests for forced and batch refresh."""

    @pytest.mark.asyncio
    async def test_forced_refresh_raises_on_failure(self, manager: TokenManager, api: FakeApi):
        """Test that refresh_tokens surfaces the credential error."""
        api.add("POST", "accessToken", httpx.Response(401, json={"error": "revoked"}))
        await manager.store_connection("u1", "linkedin", _tokens(), PROFILE)

        with pytest.raises(CredentialError):
            await manager.refresh_tokens("u1", "linkedin")

    @pytest.mark.asyncio
    async def test_forced_refresh_without_refresh_token(self, manager: TokenManager):
        """Test that refresh_tokens returns None when there is nothing to refresh with."""
        await manager.store_connection("u1", "linkedin", _tokens(refresh=None), PROFILE)

        assert await manager.refresh_tokens("u1", "linkedin") is None

    @pytest.mark.asyncio
    async def test_batch_counts(self, manager: TokenManager, api: FakeApi):
        """Test that the batch refreshes expiring rows and counts failures."""
        api.add("POST", "accessToken", {"access_token": "li-2", "expires_in": 3600})
        api.add("POST", "oauth2/token", httpx.Response(400, json={"error": "invalid_grant"}))
        await manager.store_connection("u1", "linkedin", _tokens(expires_in=1800), PROFILE)
        await manager.store_connection("u2", "discord", _tokens(expires_in=1800), PROFILE)
        await manager.store_connection("u3", "pinterest", _tokens(expires_in=10 * 3600), PROFILE)

        result = await manager.refresh_expiring_tokens(buffer_hours=1)

        assert result.refreshed == 1
        assert result.failed == 1
        assert result.errors[0].startswith("u2/discord")
        assert str(result) == "Refreshed 1, failed 1"
        assert api.calls("POST", "oauth/token") == []


class TestDisconnectAndHealth:
    """Tests for disconnect and health checks."""

    @pytest.mark.asyncio
    async def test_disconnect_revokes_and_deletes(
        self,
        manager: TokenManager,
        api: FakeApi,
        store: InMemoryConnectionStore,
    ):
        """Test that disconnect revokes the token and removes the row."""
        api.add("POST", "oauth/v2/revoke", {})
        await manager.store_connection("u1", "linkedin", _tokens(), PROFILE)

        assert await manager.disconnect("u1", "linkedin")

        assert api.form_body(api.requests[0])["token"] == "a1"
        assert await store.get("u1", "linkedin") is None

    @pytest.mark.asyncio
    async def test_disconnect_deletes_even_if_revoke_fails(
        self,
        manager: TokenManager,
        api: FakeApi,
        store: InMemoryConnectionStore,
    ):
        """Test that a failed revoke does not keep the row around."""
        api.add("POST", "oauth/v2/revoke", httpx.Response(500, text="boom"))
        await manager.store_connection("u1", "linkedin", _tokens(), PROFILE)

        assert await manager.disconnect("u1", "linkedin")
        assert await store.get("u1", "linkedin") is None

    @pytest.mark.asyncio
    async def test_disconnect_missing(self, manager: TokenManager):
        """Test that disconnecting nothing returns False."""
        assert not await manager.disconnect("u1", "linkedin")

    @pytest.mark.asyncio
    async def test_health_ok(self, manager: TokenManager, api: FakeApi):
        """Test that a token the platform accepts is healthy."""
        api.add("GET", "v2/userinfo", {"sub": "abc", "name": "Ada Lovelace"})
        await manager.store_connection("u1", "linkedin", _tokens(), PROFILE)

        health = await manager.check_connection_health("u1", "linkedin")

        assert health.healthy
        assert health.message == "Connected as Ada Lovelace"

    @pytest.mark.asyncio
    async def test_health_without_token(self, manager: TokenManager):
        """Test that a missing connection is unhealthy and asks to reconnect."""
        health = await manager.check_connection_health("u1", "linkedin")

        assert not health.healthy
        assert "reconnect" in health.message
