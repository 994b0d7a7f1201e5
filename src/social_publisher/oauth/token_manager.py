"""Credential store with encryption and automatic refresh."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..constants.limits import BATCH_REFRESH_DEFAULT_HOURS, TOKEN_REFRESH_BUFFER_SECONDS
from ..crypto.encryption import TokenCipher
from ..errors import CredentialError, CryptoError, SocialPublisherError
from ..platforms.registry import normalize_platform
from ..utils.timestamps import Clock, now_utc
from .models import (
    BatchRefreshResult,
    ConnectionHealth,
    ConnectionStatus,
    OAuthConnection,
    TokenSet,
    UserProfile,
)
from .service import OAuthService
from .store import ConnectionStore

_logger = logging.getLogger("token_manager")


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


class TokenManager:
    """Manages stored OAuth connections with automatic refresh.

    Features:
    - Tokens are encrypted before they reach the store
    - Tokens expiring within the refresh buffer are refreshed before use
    - Concurrent refreshes for the same (user, platform) are serialized;
      a waiter re-reads the connection and reuses a fresh token
    - Failed refreshes deactivate the connection with the error recorded

    Usage:
        manager = TokenManager(store, oauth_service, cipher)

        await manager.store_connection(user_id, "tiktok", tokens, profile)
        token = await manager.get_valid_access_token(user_id, "tiktok")
        if token is None:
            # ask the user to reconnect
            ...
    """

    def __init__(
        self,
        store: ConnectionStore,
        oauth_service: OAuthService,
        cipher: TokenCipher,
        refresh_buffer: float = TOKEN_REFRESH_BUFFER_SECONDS,
        clock: Clock = now_utc,
    ):
        self._store = store
        self._oauth = oauth_service
        self._cipher = cipher
        self._refresh_buffer = refresh_buffer
        self._clock = clock
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    @property
    def oauth_service(self) -> OAuthService:
        return self._oauth

    def _lock_for(self, user_id: str, platform: str) -> asyncio.Lock:
        return self._locks.setdefault((user_id, platform), asyncio.Lock())

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    async def store_connection(
        self,
        user_id: str,
        platform: str,
        tokens: TokenSet,
        profile: UserProfile,
        scopes: Optional[list[str]] = None,
    ) -> OAuthConnection:
        """Create or replace the connection for (user, platform).

        Args:
            user_id: Local user id.
            platform: Platform identifier.
            tokens: Tokens from the code exchange.
            profile: Connected account profile.
            scopes: Granted scopes (defaults to the scopes in the token response).

        Returns:
            The stored connection.
        """
        platform = self._oauth.registry.get(platform).platform
        existing = await self._store.get(user_id, platform)
        now = self._clock()

        metadata = dict(existing.metadata) if existing else {}
        metadata.update({k: v for k, v in profile.metadata.items() if v is not None})
        metadata.update(tokens.extras)

        connection = OAuthConnection(
            user_id=user_id,
            platform=platform,
            platform_user_id=profile.platform_user_id,
            encrypted_access_token=self._cipher.encrypt(tokens.access_token),
            encrypted_refresh_token=(
                self._cipher.encrypt(tokens.refresh_token) if tokens.refresh_token else None
            ),
            username=profile.username,
            display_name=profile.display_name,
            avatar_url=profile.avatar_url,
            expires_at=tokens.expires_at,
            scopes=_dedupe(scopes if scopes is not None else tokens.scopes),
            active=True,
            last_error=None,
            last_error_at=None,
            created_at=existing.created_at if existing else now,
            updated_at=now,
            metadata=metadata,
        )

        stored = await self._store.upsert(connection)
        _logger.info(
            f"Connection stored | user={user_id} | {platform} | account={profile.platform_user_id} | "
            f"replaced={existing is not None}"
        )
        return stored

    async def get_connection(self, user_id: str, platform: str) -> Optional[OAuthConnection]:
        return await self._store.get(user_id, normalize_platform(platform))

    async def get_user_connections(self, user_id: str) -> list[OAuthConnection]:
        """Active connections for a user."""
        connections = await self._store.list_for_user(user_id)
        return [c for c in connections if c.active]

    async def get_connection_status(self, user_id: str, platform: str) -> ConnectionStatus:
        connection = await self.get_connection(user_id, platform)
        if connection is None:
            return ConnectionStatus(platform=normalize_platform(platform), connected=False)
        return connection.to_status()

    async def deactivate_connection(
        self,
        user_id: str,
        platform: str,
        reason: str,
    ) -> Optional[OAuthConnection]:
        """Mark a connection inactive and record why."""
        connection = await self.get_connection(user_id, platform)
        if connection is None:
            return None

        now = self._clock()
        connection.active = False
        connection.last_error = reason
        connection.last_error_at = now
        connection.updated_at = now
        _logger.warning(f"Connection deactivated | user={user_id} | {connection.platform} | {reason}")
        return await self._store.upsert(connection)

    async def disconnect(self, user_id: str, platform: str) -> bool:
        """Revoke (best effort) and delete a connection.

        Returns:
            False when nothing was stored, True once deleted.
        """
        connection = await self.get_connection(user_id, platform)
        if connection is None:
            return False

        try:
            access_token = self._cipher.decrypt(connection.encrypted_access_token)
            revoked = await self._oauth.revoke_token(connection.platform, access_token)
            if not revoked:
                _logger.warning(f"Revoke failed, deleting anyway | user={user_id} | {connection.platform}")
        except SocialPublisherError as e:
            _logger.warning(f"Revoke skipped | user={user_id} | {connection.platform} | {e}")

        await self._store.delete(user_id, connection.platform)
        _logger.info(f"Connection removed | user={user_id} | {connection.platform}")
        return True

    # =========================================================================
    # TOKENS
    # =========================================================================

    async def get_valid_access_token(self, user_id: str, platform: str) -> Optional[str]:
        """Get a usable access token, refreshing it first if needed.

        Returns:
            The plaintext access token, or None when there is no active
            connection, the token expired without a way to refresh it, the
            refresh failed, or the stored blob does not decrypt.
        """
        connection = await self.get_connection(user_id, platform)
        if connection is None or not connection.active:
            return None

        now = self._clock()
        if connection.expires_within(self._refresh_buffer, now):
            if not connection.has_refresh_token:
                if connection.expires_at is not None and connection.expires_at <= now:
                    _logger.info(f"Token expired, no refresh token | user={user_id} | {connection.platform}")
                    return None
            else:
                connection = await self._refresh_if_stale(connection)
                if connection is None:
                    return None

        return await self._decrypt_access_token(connection)

    async def _decrypt_access_token(self, connection: OAuthConnection) -> Optional[str]:
        try:
            return self._cipher.decrypt(connection.encrypted_access_token)
        except CryptoError as e:
            await self.deactivate_connection(connection.user_id, connection.platform, str(e))
            return None

    async def _refresh_if_stale(self, connection: OAuthConnection) -> Optional[OAuthConnection]:
        async with self._lock_for(connection.user_id, connection.platform):
            current = await self._store.get(connection.user_id, connection.platform)
            if current is None or not current.active:
                return None

            # Another task refreshed while we waited
            if not current.expires_within(self._refresh_buffer, self._clock()):
                return current

            try:
                return await self._refresh(current)
            except SocialPublisherError:
                return None

    async def _refresh(self, connection: OAuthConnection) -> OAuthConnection:
        """Refresh one connection. Caller holds the lock.

        On failure the connection is deactivated and the error re-raised.
        """
        platform = connection.platform
        try:
            refresh_token = self._cipher.decrypt(connection.encrypted_refresh_token or "")
            tokens = await self._oauth.refresh_access_token(platform, refresh_token)
        except SocialPublisherError as e:
            _logger.error(f"Token refresh failed | user={connection.user_id} | {platform} | {e}")
            await self.deactivate_connection(connection.user_id, platform, f"Token refresh failed: {e}")
            raise

        now = self._clock()
        connection.encrypted_access_token = self._cipher.encrypt(tokens.access_token)
        # Keep the old refresh token when the platform does not rotate it
        if tokens.refresh_token:
            connection.encrypted_refresh_token = self._cipher.encrypt(tokens.refresh_token)
        connection.expires_at = tokens.expires_at
        if tokens.scopes:
            connection.scopes = _dedupe(tokens.scopes)
        connection.metadata.update(tokens.extras)
        connection.active = True
        connection.last_error = None
        connection.last_error_at = None
        connection.updated_at = now

        stored = await self._store.upsert(connection)
        _logger.info(f"Token refreshed | user={connection.user_id} | {platform} | expires_at={tokens.expires_at}")
        return stored

    async def refresh_tokens(self, user_id: str, platform: str) -> Optional[OAuthConnection]:
        """Force a refresh.

        Returns:
            The updated connection, or None when there is no connection or
            no refresh token.

        Raises:
            CredentialError: The refresh failed (the connection has been
                deactivated).
        """
        connection = await self.get_connection(user_id, platform)
        if connection is None or not connection.has_refresh_token:
            return None

        async with self._lock_for(user_id, connection.platform):
            current = await self._store.get(user_id, connection.platform)
            if current is None or not current.has_refresh_token:
                return None
            return await self._refresh(current)

    async def refresh_expiring_tokens(
        self,
        buffer_hours: float = BATCH_REFRESH_DEFAULT_HOURS,
    ) -> BatchRefreshResult:
        """Refresh every active connection expiring within buffer_hours.

        One failure is recorded and does not stop the batch.
        """
        result = BatchRefreshResult()
        buffer_seconds = buffer_hours * 3600
        now = self._clock()

        for connection in await self._store.list_active():
            if not connection.has_refresh_token or not connection.expires_within(buffer_seconds, now):
                continue

            try:
                async with self._lock_for(connection.user_id, connection.platform):
                    current = await self._store.get(connection.user_id, connection.platform)
                    if current is None or not current.active:
                        continue
                    await self._refresh(current)
                result.refreshed += 1
            except SocialPublisherError as e:
                result.failed += 1
                result.errors.append(f"{connection.user_id}/{connection.platform}: {e}")

        _logger.info(f"Batch refresh | {result}")
        return result

    # =========================================================================
    # HEALTH
    # =========================================================================

    async def check_connection_health(self, user_id: str, platform: str) -> ConnectionHealth:
        """Check that a connection yields a token the platform accepts."""
        token = await self.get_valid_access_token(user_id, platform)
        if token is None:
            return ConnectionHealth(
                healthy=False,
                message=f"No valid access token for {normalize_platform(platform)}. Please reconnect.",
            )

        try:
            profile = await self._oauth.fetch_user_profile(platform, token)
        except CredentialError as e:
            return ConnectionHealth(healthy=False, message=str(e))

        name = profile.username or profile.display_name or profile.platform_user_id
        return ConnectionHealth(healthy=True, message=f"Connected as {name}")
