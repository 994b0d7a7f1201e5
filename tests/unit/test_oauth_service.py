"""Unit tests for OAuthService and response normalizers."""

from __future__ import annotations

import base64
import dataclasses
from datetime import timedelta
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from social_publisher.config import Settings
from social_publisher.errors import (
    OAuthNotConfiguredError,
    ProfileFetchError,
    RefreshNotSupportedError,
    TokenExchangeError,
    UnsupportedPlatformError,
)
from social_publisher.oauth.models import OAuthState
from social_publisher.oauth.normalizers import normalize_profile, normalize_tokens
from social_publisher.oauth.service import OAuthService
from social_publisher.oauth.state import StateNonceCache, encode_state
from social_publisher.platforms import PlatformRegistry
from social_publisher.platforms.capabilities import CAPABILITIES
from social_publisher.utils.timestamps import epoch_ms

from conftest import BASE_URL, START, STATE_SECRET, FakeApi, FixedClock


def _query(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


@pytest.fixture
def service(registry: PlatformRegistry, settings: Settings, api: FakeApi, clock: FixedClock) -> OAuthService:
    """OAuthService talking to the fake API."""
    return OAuthService(registry, settings=settings, http_client=api.client(), clock=clock)


class TestAuthorizationUrl:
    """Tests for generate_authorization_url."""

    def test_tiktok_uses_client_key_and_pkce(self, service: OAuthService):
        """Test that TikTok gets client_key, comma scopes and an S256 challenge."""
        request = service.generate_authorization_url("tiktok", "user-1")
        params = _query(request.url)

        assert request.url.startswith("https://www.tiktok.com/v2/auth/authorize/?")
        assert params["client_key"] == "tiktok-id"
        assert "client_id" not in params
        assert params["scope"].startswith("user.info.basic,user.info.profile")
        assert params["code_challenge_method"] == "S256"
        assert params["redirect_uri"] == f"{BASE_URL}/api/oauth/callback/tiktok"
        assert params["response_type"] == "code"
        assert request.code_verifier

    def test_state_carries_verifier(self, service: OAuthService):
        """Test that the PKCE verifier travels inside the signed state."""
        request = service.generate_authorization_url("twitter", "user-1")

        decoded = service.validate_oauth_state(request.state)

        assert decoded is not None
        assert decoded.user_id == "user-1"
        assert decoded.platform == "twitter"
        assert decoded.code_verifier == request.code_verifier

    def test_non_pkce_platform(self, service: OAuthService):
        """Test that LinkedIn gets no challenge and space separated scopes."""
        request = service.generate_authorization_url("linkedin", "user-1")
        params = _query(request.url)

        assert "code_challenge" not in params
        assert request.code_verifier is None
        assert params["client_id"] == "linkedin-id"
        assert " " in params["scope"]

    def test_extra_auth_params(self, service: OAuthService):
        """Test that Reddit asks for a permanent grant."""
        params = _query(service.generate_authorization_url("reddit", "user-1").url)

        assert params["duration"] == "permanent"

    def test_platform_is_case_insensitive(self, service: OAuthService):
        """Test that platform names are normalized."""
        params = _query(service.generate_authorization_url("  LinkedIn ", "user-1").url)

        assert params["redirect_uri"].endswith("/callback/linkedin")

    def test_unknown_platform(self, service: OAuthService):
        """Test that an unknown platform raises UnsupportedPlatformError."""
        with pytest.raises(UnsupportedPlatformError) as exc_info:
            service.generate_authorization_url("myspace", "user-1")

        assert "instagram" in str(exc_info.value)

    def test_missing_client_credentials(self, registry: PlatformRegistry, monkeypatch: pytest.MonkeyPatch):
        """Test that a platform without client credentials is refused."""
        monkeypatch.delenv("REDDIT_CLIENT_ID", raising=False)
        monkeypatch.delenv("REDDIT_CLIENT_SECRET", raising=False)
        service = OAuthService(registry, settings=Settings(oauth_state_secret=STATE_SECRET))

        with pytest.raises(OAuthNotConfiguredError):
            service.generate_authorization_url("reddit", "user-1")


class TestValidateState:
    """Tests for validate_oauth_state."""

    def test_unknown_platform_rejected(self, service: OAuthService):
        """Test that a validly signed state for an unknown platform is rejected."""
        state = encode_state(OAuthState("u", "myspace", epoch_ms(START), "n"), STATE_SECRET)

        assert service.validate_oauth_state(state) is None

    def test_expired_state_rejected(self, service: OAuthService, clock: FixedClock):
        """Test that the service clock drives expiry."""
        request = service.generate_authorization_url("linkedin", "u")
        clock.advance(11 * 60)

        assert service.validate_oauth_state(request.state) is None

    def test_replay_rejected_with_nonce_cache(
        self,
        registry: PlatformRegistry,
        settings: Settings,
        clock: FixedClock,
    ):
        """Test that a state can only be used once when a nonce cache is set."""
        service = OAuthService(registry, settings=settings, clock=clock, nonce_cache=StateNonceCache())
        state = service.generate_authorization_url("linkedin", "u").state

        assert service.validate_oauth_state(state) is not None
        assert service.validate_oauth_state(state) is None

    def test_no_secret_configured(self, registry: PlatformRegistry):
        """Test that validation fails closed without a secret."""
        service = OAuthService(registry, settings=Settings(token_encryption_key="", oauth_state_secret=""))

        assert service.validate_oauth_state("a.b") is None


class TestTokenExchange:
    """Tests for code exchange, refresh and revoke."""

    @pytest.mark.asyncio
    async def test_tiktok_exchange(self, service: OAuthService, api: FakeApi):
        """Test that TikTok gets client_key/secret in the body and open_id is kept."""
        api.add(
            "POST",
            "oauth/token/",
            {
                "access_token": "act.1",
                "refresh_token": "rft.1",
                "expires_in": 86400,
                "open_id": "open-123",
                "scope": "user.info.basic,video.upload",
                "token_type": "Bearer",
            },
        )

        tokens = await service.exchange_code_for_tokens("tiktok", "code-1", "verifier-1")

        form = api.form_body(api.requests[0])
        assert form["client_key"] == "tiktok-id"
        assert form["client_secret"] == "tiktok-secret"
        assert form["code_verifier"] == "verifier-1"
        assert form["grant_type"] == "authorization_code"
        assert tokens.access_token == "act.1"
        assert tokens.refresh_token == "rft.1"
        assert tokens.expires_at == START + timedelta(seconds=86400)
        assert tokens.extras["open_id"] == "open-123"
        assert tokens.scopes == ["user.info.basic", "video.upload"]

    @pytest.mark.asyncio
    async def test_basic_auth_platform(self, service: OAuthService, api: FakeApi):
        """Test that Twitter sends HTTP basic credentials plus client_id for PKCE."""
        api.add("POST", "oauth2/token", {"access_token": "a", "refresh_token": "r", "expires_in": 7200})

        await service.exchange_code_for_tokens("twitter", "code-1", "verifier-1")

        request = api.requests[0]
        expected = base64.b64encode(b"twitter-id:twitter-secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        form = api.form_body(request)
        assert form["client_id"] == "twitter-id"
        assert "client_secret" not in form

    @pytest.mark.asyncio
    async def test_graph_exchange_swaps_for_long_lived(self, service: OAuthService, api: FakeApi):
        """Test that Instagram trades the short-lived token for a long-lived one."""
        api.add("POST", "oauth/access_token", {"access_token": "short", "expires_in": 3600})
        api.add("GET", "oauth/access_token", {"access_token": "long", "expires_in": 5184000})

        tokens = await service.exchange_code_for_tokens("instagram", "code-1")

        exchange = api.calls("GET", "oauth/access_token")[0]
        assert exchange.url.params["grant_type"] == "fb_exchange_token"
        assert exchange.url.params["fb_exchange_token"] == "short"
        assert exchange.url.params["client_id"] == "instagram-id"
        assert tokens.access_token == "long"
        # Graph re-exchanges the long-lived token in place of a refresh token
        assert tokens.refresh_token == "long"
        assert tokens.expires_at == START + timedelta(seconds=5184000)

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self, service: OAuthService, api: FakeApi):
        """Test that an error response becomes TokenExchangeError with the status."""
        api.add("POST", "accessToken", httpx.Response(400, json={"error": "invalid_grant"}))

        with pytest.raises(TokenExchangeError) as exc_info:
            await service.exchange_code_for_tokens("linkedin", "bad-code")

        assert exc_info.value.status_code == 400
        assert "invalid_grant" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_access_token_raises(self, service: OAuthService, api: FakeApi):
        """Test that a 200 without access_token is still a failure."""
        api.add("POST", "accessToken", {"error_description": "code expired"})

        with pytest.raises(TokenExchangeError, match="code expired"):
            await service.exchange_code_for_tokens("linkedin", "code-1")

    @pytest.mark.asyncio
    async def test_refresh_uses_refresh_grant(self, service: OAuthService, api: FakeApi):
        """Test that Discord refresh posts grant_type=refresh_token."""
        api.add("POST", "oauth2/token", {"access_token": "new", "expires_in": 604800})

        tokens = await service.refresh_access_token("discord", "old-refresh")

        form = api.form_body(api.requests[0])
        assert form["grant_type"] == "refresh_token"
        assert form["refresh_token"] == "old-refresh"
        assert tokens.access_token == "new"

    @pytest.mark.asyncio
    async def test_refresh_not_supported(self, settings: Settings):
        """Test that a platform without a refresh endpoint raises."""
        linkedin = CAPABILITIES["linkedin"]
        registry = PlatformRegistry(
            {"linkedin": dataclasses.replace(linkedin, oauth=dataclasses.replace(linkedin.oauth, refresh_url=None))}
        )
        service = OAuthService(registry, settings=settings)

        with pytest.raises(RefreshNotSupportedError):
            await service.refresh_access_token("linkedin", "r")

    @pytest.mark.asyncio
    async def test_graph_revoke_is_delete(self, service: OAuthService, api: FakeApi):
        """Test that Graph revocation deletes permissions with the token."""
        api.add("DELETE", "me/permissions", {"success": True})

        assert await service.revoke_token("facebook", "tok")
        assert api.requests[0].url.params["access_token"] == "tok"

    @pytest.mark.asyncio
    async def test_revoke_failure_returns_false(self, service: OAuthService, api: FakeApi):
        """Test that a failed revoke reports False instead of raising."""
        api.add("POST", "oauth2/revoke", httpx.Response(503, text="down"))

        assert not await service.revoke_token("twitter", "tok")


class TestFetchProfile:
    """Tests for fetch_user_profile."""

    @pytest.mark.asyncio
    async def test_instagram_business_account(self, service: OAuthService, api: FakeApi):
        """Test that Instagram resolves the business account through the page."""
        api.add("GET", "me/accounts", {"data": [{"id": "page-1", "name": "Page", "access_token": "page-tok"}]})
        api.add(
            "GET",
            "page-1",
            {
                "instagram_business_account": {
                    "id": "ig-1",
                    "username": "brand",
                    "followers_count": 1200,
                }
            },
        )

        profile = await service.fetch_user_profile("instagram", "user-tok")

        assert profile.platform_user_id == "ig-1"
        assert profile.username == "brand"
        assert profile.followers == 1200
        assert profile.metadata["page_id"] == "page-1"
        assert api.calls("GET", "page-1")[0].url.params["access_token"] == "page-tok"

    @pytest.mark.asyncio
    async def test_instagram_without_business_account(self, service: OAuthService, api: FakeApi):
        """Test that a page with no linked business account is an error."""
        api.add("GET", "me/accounts", {"data": [{"id": "page-1"}]})
        api.add("GET", "page-1", {})

        with pytest.raises(ProfileFetchError, match="No Instagram Business account"):
            await service.fetch_user_profile("instagram", "user-tok")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "accounts",
        [
            [{"id": "page-1"}],
            {"data": [{"name": "Page without id"}]},
            {"data": ["page-1"]},
        ],
    )
    async def test_instagram_malformed_pages(self, service: OAuthService, api: FakeApi, accounts):
        """Test that a malformed page listing raises ProfileFetchError."""
        api.add("GET", "me/accounts", accounts)

        with pytest.raises(ProfileFetchError):
            await service.fetch_user_profile("instagram", "user-tok")

        assert api.calls("GET", "page-1") == []

    @pytest.mark.asyncio
    async def test_bearer_profile(self, service: OAuthService, api: FakeApi):
        """Test that Twitter profile uses a bearer token and is normalized."""
        api.add(
            "GET",
            "users/me",
            {"data": {"id": "42", "username": "jack", "name": "Jack", "public_metrics": {"followers_count": 7}}},
        )

        profile = await service.fetch_user_profile("twitter", "tok")

        assert api.requests[0].headers["Authorization"] == "Bearer tok"
        assert profile.platform_user_id == "42"
        assert profile.display_name == "Jack"
        assert profile.followers == 7

    @pytest.mark.asyncio
    async def test_reddit_sends_user_agent(self, service: OAuthService, api: FakeApi):
        """Test that Reddit profile requests carry a User-Agent."""
        api.add("GET", "api/v1/me", {"id": "abc", "name": "redditor", "icon_img": "https://i.redd.it/a.png?x=1&amp;y=2"})

        profile = await service.fetch_user_profile("reddit", "tok")

        assert "social-publisher" in api.requests[0].headers["User-Agent"]
        assert profile.avatar_url == "https://i.redd.it/a.png?x=1&y=2"

    @pytest.mark.asyncio
    async def test_profile_http_error(self, service: OAuthService, api: FakeApi):
        """Test that a non-2xx profile response raises ProfileFetchError."""
        api.add("GET", "users/@me", httpx.Response(401, json={"message": "401: Unauthorized"}))

        with pytest.raises(ProfileFetchError, match="HTTP 401"):
            await service.fetch_user_profile("discord", "tok")


class TestNormalizers:
    """Tests for token and profile normalization."""

    def test_discord_webhook_extras(self):
        """Test that the Discord webhook grant is kept as non-secret extras."""
        tokens = normalize_tokens(
            "discord",
            {
                "access_token": "a",
                "expires_in": 604800,
                "webhook": {"url": "https://discord.com/api/webhooks/1/x", "channel_id": "c1", "guild_id": "g1"},
            },
            START,
        )

        assert tokens.extras["webhook_url"] == "https://discord.com/api/webhooks/1/x"
        assert tokens.extras["webhook_channel_id"] == "c1"

    def test_tiktok_nested_data(self):
        """Test that TikTok token bodies wrapped in data are unwrapped."""
        tokens = normalize_tokens("tiktok", {"data": {"access_token": "a", "open_id": "o"}}, START)

        assert tokens.access_token == "a"
        assert tokens.expires_at is None

    def test_token_repr_masks_secrets(self):
        """Test that TokenSet never prints token values."""
        tokens = normalize_tokens("linkedin", {"access_token": "secret-a", "refresh_token": "secret-r"}, START)

        assert "secret" not in repr(tokens)

    def test_linkedin_profile_name_from_parts(self):
        """Test that LinkedIn builds a name from given and family names."""
        profile = normalize_profile("linkedin", {"sub": "abc", "given_name": "Ada", "family_name": "Lovelace"})

        assert profile.display_name == "Ada Lovelace"

    def test_youtube_without_channel(self):
        """Test that an account with no channel is a profile error."""
        with pytest.raises(ProfileFetchError, match="No YouTube channel"):
            normalize_profile("youtube", {"items": []})

    def test_missing_id_is_profile_error(self):
        """Test that a profile without an id raises ProfileFetchError, not KeyError."""
        with pytest.raises(ProfileFetchError):
            normalize_profile("discord", {"username": "nobody"})
