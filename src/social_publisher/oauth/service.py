"""OAuth flow controller.

Builds authorization URLs, exchanges codes, refreshes and revokes tokens and
fetches the connected account's profile. Platform differences come from the
capability table and the normalizers; this module only knows the request
styles (form body vs. HTTP basic credentials, Graph token re-exchange).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional
from urllib.parse import urlencode

import httpx

from ..config import ClientCredentials, Settings, get_settings
from ..constants.limits import REDDIT_USER_AGENT
from ..crypto.pkce import PKCE_METHOD, generate_pkce_pair
from ..errors import (
    CryptoError,
    OAuthNotConfiguredError,
    ProfileFetchError,
    RefreshNotSupportedError,
    TokenExchangeError,
)
from ..platforms.capabilities import PlatformCapability
from ..platforms.registry import PlatformRegistry
from ..utils.timestamps import Clock, now_utc
from .models import AuthorizationRequest, OAuthState, TokenSet, UserProfile
from .normalizers import GRAPH_PLATFORMS, normalize_profile, normalize_tokens
from .state import StateNonceCache, create_state, decode_state

_logger = logging.getLogger("oauth")

# Extra headers some platforms require on every request
_PLATFORM_HEADERS: dict[str, dict[str, str]] = {
    "reddit": {"User-Agent": REDDIT_USER_AGENT},
}

# platform -> (url relative to api_base_url or absolute, query params)
_PROFILE_REQUESTS: dict[str, tuple[str, dict[str, str]]] = {
    "facebook": ("me", {"fields": "id,name,email,picture"}),
    "tiktok": (
        "user/info/",
        {"fields": "open_id,union_id,avatar_url,display_name,follower_count,following_count"},
    ),
    "twitter": ("users/me", {"user.fields": "id,name,username,profile_image_url,public_metrics"}),
    "linkedin": ("https://api.linkedin.com/v2/userinfo", {}),
    "linkedin-org": ("https://api.linkedin.com/v2/userinfo", {}),
    "youtube": ("channels", {"part": "snippet,statistics", "mine": "true"}),
    "pinterest": ("user_account", {}),
    "discord": ("users/@me", {}),
    "reddit": ("api/v1/me", {}),
}

_INSTAGRAM_ACCOUNT_FIELDS = (
    "instagram_business_account{id,username,name,profile_picture_url,followers_count,follows_count}"
)


class OAuthService:
    """OAuth2 client for every registered platform.

    Usage:
        service = OAuthService(registry, settings)

        request = service.generate_authorization_url("tiktok", user_id)
        # redirect the user to request.url ...

        state = service.validate_oauth_state(callback_state)
        tokens = await service.exchange_code_for_tokens(
            state.platform, code, state.code_verifier
        )
        profile = await service.fetch_user_profile(state.platform, tokens.access_token)
    """

    def __init__(
        self,
        registry: PlatformRegistry,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Clock = now_utc,
        nonce_cache: Optional[StateNonceCache] = None,
    ):
        self._registry = registry
        self._settings = settings or get_settings()
        self._http_client = http_client
        self._clock = clock
        self._nonce_cache = nonce_cache

    @property
    def registry(self) -> PlatformRegistry:
        return self._registry

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
        else:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout_seconds) as client:
                yield client

    def _require_client(self, platform: str) -> ClientCredentials:
        credentials = self._settings.get_client(platform)
        if not credentials.is_configured:
            raise OAuthNotConfiguredError(platform)
        return credentials

    def _state_secret(self) -> str:
        secret = self._settings.state_secret
        if not secret:
            raise CryptoError("OAUTH_STATE_SECRET is not set")
        return secret

    # =========================================================================
    # STATE
    # =========================================================================

    def create_state(self, user_id: str, platform: str, code_verifier: Optional[str] = None) -> str:
        """Build a signed state for the authorization redirect."""
        capability = self._registry.get(platform)
        return create_state(
            user_id,
            capability.platform,
            self._state_secret(),
            code_verifier=code_verifier,
            now=self._clock(),
        )

    def validate_oauth_state(self, state: str) -> Optional[OAuthState]:
        """Verify a state returned on the callback.

        Returns:
            The decoded state, or None when it is malformed, forged, expired,
            for an unknown platform, or (with a nonce cache) already used.
        """
        secret = self._settings.state_secret
        if not secret:
            _logger.error("Cannot validate OAuth state: no state secret configured")
            return None

        decoded = decode_state(state, secret, now=self._clock())
        if decoded is None:
            return None

        if not self._registry.is_supported(decoded.platform):
            _logger.warning(f"OAuth state rejected: unknown platform {decoded.platform}")
            return None

        if self._nonce_cache is not None and not self._nonce_cache.consume(decoded, now=self._clock()):
            _logger.warning(f"OAuth state rejected: replayed nonce for {decoded.platform}")
            return None

        return decoded

    # =========================================================================
    # AUTHORIZATION
    # =========================================================================

    def generate_authorization_url(self, platform: str, user_id: str) -> AuthorizationRequest:
        """Build the URL the user is redirected to.

        Args:
            platform: Platform identifier.
            user_id: Local user starting the flow.

        Returns:
            AuthorizationRequest with the URL, the signed state and, for
            PKCE platforms, the code verifier (also embedded in the state).

        Raises:
            UnsupportedPlatformError: Unknown platform.
            OAuthNotConfiguredError: Client credentials are missing.
        """
        capability = self._registry.get(platform)
        oauth = capability.oauth
        credentials = self._require_client(capability.platform)

        pkce = generate_pkce_pair() if oauth.pkce_required else None
        verifier = pkce.verifier if pkce else None
        state = self.create_state(user_id, capability.platform, code_verifier=verifier)

        params: dict[str, str] = {
            oauth.client_id_param: credentials.client_id,
            "redirect_uri": self._settings.redirect_uri(capability.platform),
            "response_type": oauth.response_type,
            "scope": oauth.scope_separator.join(oauth.scopes),
            "state": state,
        }
        if pkce:
            params["code_challenge"] = pkce.challenge
            params["code_challenge_method"] = PKCE_METHOD
        params.update(dict(oauth.extra_auth_params))

        _logger.info(f"Authorization URL built | platform={capability.platform} | pkce={bool(pkce)}")
        return AuthorizationRequest(
            url=f"{oauth.auth_url}?{urlencode(params)}",
            state=state,
            code_verifier=verifier,
        )

    # =========================================================================
    # TOKEN ENDPOINT
    # =========================================================================

    async def _token_request(
        self,
        capability: PlatformCapability,
        form: dict[str, str],
        url: str,
    ) -> TokenSet:
        platform = capability.platform
        oauth = capability.oauth
        credentials = self._require_client(platform)

        auth: Optional[httpx.BasicAuth] = None
        if oauth.token_auth == "basic":
            auth = httpx.BasicAuth(credentials.client_id, credentials.client_secret)
            if oauth.pkce_required:
                form[oauth.client_id_param] = credentials.client_id
        else:
            form[oauth.client_id_param] = credentials.client_id
            form["client_secret"] = credentials.client_secret

        headers = {"Accept": "application/json", **_PLATFORM_HEADERS.get(platform, {})}
        _logger.info(f"Token request | {platform} | grant_type={form.get('grant_type')}")

        try:
            async with self._client() as client:
                if form.get("grant_type") == "fb_exchange_token":
                    response = await client.get(url, params=form, headers=headers)
                else:
                    response = await client.post(url, data=form, headers=headers, auth=auth)
        except httpx.HTTPError as e:
            _logger.error(f"Token request transport error | {platform} | {type(e).__name__}")
            raise TokenExchangeError(platform, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            _logger.error(f"Token request failed | {platform} | HTTP {response.status_code}")
            raise TokenExchangeError(platform, response.text, status_code=response.status_code)

        try:
            data: Any = response.json()
        except ValueError as e:
            raise TokenExchangeError(platform, f"Invalid JSON from token endpoint: {response.text[:200]}") from e

        return normalize_tokens(platform, data, self._clock())

    async def exchange_code_for_tokens(
        self,
        platform: str,
        code: str,
        code_verifier: Optional[str] = None,
    ) -> TokenSet:
        """Exchange an authorization code for tokens.

        Graph platforms immediately swap the short-lived token for a
        long-lived one.

        Raises:
            TokenExchangeError: Non-2xx response or missing access token.
        """
        capability = self._registry.get(platform)
        form = {
            "grant_type": capability.oauth.grant_type,
            "code": code,
            "redirect_uri": self._settings.redirect_uri(capability.platform),
        }
        if code_verifier:
            form["code_verifier"] = code_verifier

        tokens = await self._token_request(capability, form, capability.oauth.token_url)

        if capability.platform in GRAPH_PLATFORMS:
            long_lived = await self.refresh_access_token(capability.platform, tokens.access_token)
            long_lived.scope = long_lived.scope or tokens.scope
            return long_lived
        return tokens

    async def refresh_access_token(self, platform: str, refresh_token: str) -> TokenSet:
        """Get a new access token.

        Raises:
            RefreshNotSupportedError: The platform has no refresh endpoint.
            TokenExchangeError: Non-2xx response.
        """
        capability = self._registry.get(platform)
        oauth = capability.oauth
        if not oauth.refresh_url:
            raise RefreshNotSupportedError(capability.platform)

        if oauth.refresh_grant_type == "fb_exchange_token":
            form = {"grant_type": "fb_exchange_token", "fb_exchange_token": refresh_token}
        else:
            form = {"grant_type": oauth.refresh_grant_type, "refresh_token": refresh_token}

        return await self._token_request(capability, form, oauth.refresh_url)

    async def revoke_token(self, platform: str, access_token: str) -> bool:
        """Revoke a token at the platform.

        Returns:
            True on success or when the platform has no revoke endpoint,
            False when the platform or the transport failed.
        """
        capability = self._registry.get(platform)
        oauth = capability.oauth
        if not oauth.revoke_url:
            return True

        try:
            async with self._client() as client:
                if oauth.revoke_style == "graph_delete":
                    response = await client.delete(oauth.revoke_url, params={"access_token": access_token})
                else:
                    credentials = self._settings.get_client(capability.platform)
                    form = {"token": access_token}
                    auth: Optional[httpx.BasicAuth] = None
                    if oauth.token_auth == "basic":
                        auth = httpx.BasicAuth(credentials.client_id, credentials.client_secret)
                    else:
                        form[oauth.client_id_param] = credentials.client_id
                        form["client_secret"] = credentials.client_secret
                    response = await client.post(
                        oauth.revoke_url,
                        data=form,
                        headers=_PLATFORM_HEADERS.get(capability.platform, {}),
                        auth=auth,
                    )
        except httpx.HTTPError as e:
            _logger.warning(f"Token revoke transport error | {capability.platform} | {type(e).__name__}: {e}")
            return False

        if not response.is_success:
            _logger.warning(f"Token revoke failed | {capability.platform} | HTTP {response.status_code}")
            return False

        _logger.info(f"Token revoked | {capability.platform}")
        return True

    # =========================================================================
    # PROFILE
    # =========================================================================

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        platform: str,
        url: str,
        params: dict[str, str],
        access_token: Optional[str] = None,
    ) -> Any:
        headers = dict(_PLATFORM_HEADERS.get(platform, {}))
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        log_params = sorted(k for k in params if k != "access_token")
        _logger.info(f"Profile request | {platform} | GET {url} | params: {log_params}")
        response = await client.get(url, params=params, headers=headers)
        if not response.is_success:
            raise ProfileFetchError(platform, f"HTTP {response.status_code}: {response.text[:500]}")
        try:
            return response.json()
        except ValueError as e:
            raise ProfileFetchError(platform, "Invalid JSON in profile response") from e

    async def _fetch_instagram_account(
        self,
        client: httpx.AsyncClient,
        capability: PlatformCapability,
        access_token: str,
    ) -> dict[str, Any]:
        base = capability.api_base_url
        platform = capability.platform
        pages = await self._get_json(
            client,
            platform,
            f"{base}/me/accounts",
            {"fields": "id,name,access_token", "access_token": access_token},
        )

        if not isinstance(pages, dict):
            raise ProfileFetchError(platform, "Unexpected response listing Facebook Pages")

        for page in pages.get("data") or []:
            page_id = page.get("id") if isinstance(page, dict) else None
            if not page_id:
                raise ProfileFetchError(platform, "Facebook Page entry without an id")
            page_token = page.get("access_token") or access_token
            details = await self._get_json(
                client,
                platform,
                f"{base}/{page_id}",
                {"fields": _INSTAGRAM_ACCOUNT_FIELDS, "access_token": page_token},
            )
            account = details.get("instagram_business_account") if isinstance(details, dict) else None
            if isinstance(account, dict) and account.get("id"):
                return {**account, "page_id": page_id, "page_name": page.get("name")}

        raise ProfileFetchError(
            platform,
            "No Instagram Business account linked to any Facebook Page",
        )

    async def fetch_user_profile(self, platform: str, access_token: str) -> UserProfile:
        """Fetch and normalize the connected account's profile.

        Raises:
            ProfileFetchError: Non-2xx response, unexpected shape, or no
                publishable account (Instagram without a business account).
        """
        capability = self._registry.get(platform)
        platform = capability.platform

        try:
            async with self._client() as client:
                if platform in ("instagram", "meta"):
                    data = await self._fetch_instagram_account(client, capability, access_token)
                elif platform == "facebook":
                    path, params = _PROFILE_REQUESTS[platform]
                    data = await self._get_json(
                        client,
                        platform,
                        f"{capability.api_base_url}/{path}",
                        {**params, "access_token": access_token},
                    )
                else:
                    path, params = _PROFILE_REQUESTS[platform]
                    url = path if path.startswith("http") else f"{capability.api_base_url}/{path}"
                    data = await self._get_json(client, platform, url, params, access_token=access_token)
        except httpx.HTTPError as e:
            raise ProfileFetchError(platform, f"{type(e).__name__}: {e}") from e

        return normalize_profile(platform, data)
