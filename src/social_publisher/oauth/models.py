"""Data models for the OAuth credential lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..utils.timestamps import format_timestamp, now_utc


def _mask(value: Optional[str]) -> Optional[str]:
    return "***" if value else None


@dataclass
class TokenSet:
    """Normalized token endpoint response.

    extras holds non-secret platform values (webhook_url, open_id, ...).
    """

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    extras: dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"TokenSet(access_token={_mask(self.access_token)!r}, "
            f"refresh_token={_mask(self.refresh_token)!r}, "
            f"expires_at={self.expires_at!r}, token_type={self.token_type!r}, "
            f"scope={self.scope!r}, extras={self.extras!r})"
        )

    @property
    def scopes(self) -> list[str]:
        """Granted scopes, split on commas or whitespace."""
        if not self.scope:
            return []
        return [s for s in self.scope.replace(",", " ").split() if s]


@dataclass
class UserProfile:
    """Normalized account profile."""

    platform_user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[str] = None
    followers: Optional[int] = None
    following: Optional[int] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class OAuthState:
    """Payload carried through the authorization redirect."""

    user_id: str
    platform: str
    timestamp: int  # ms since epoch
    nonce: str
    code_verifier: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        """JSON shape of the signed payload."""
        payload: dict[str, Any] = {
            "userId": self.user_id,
            "platform": self.platform,
            "timestamp": self.timestamp,
            "nonce": self.nonce,
        }
        if self.code_verifier:
            payload["codeVerifier"] = self.code_verifier
        return payload

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "OAuthState":
        """Build from a decoded payload.

        Raises:
            KeyError, TypeError, ValueError: If the payload is malformed.
        """
        user_id = data["userId"]
        platform = data["platform"]
        nonce = data["nonce"]
        timestamp = data["timestamp"]
        if not isinstance(user_id, str) or not isinstance(platform, str) or not isinstance(nonce, str):
            raise TypeError("state fields must be strings")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise TypeError("state timestamp must be a number")
        verifier = data.get("codeVerifier")
        if verifier is not None and not isinstance(verifier, str):
            raise TypeError("codeVerifier must be a string")
        return cls(
            user_id=user_id,
            platform=platform,
            timestamp=int(timestamp),
            nonce=nonce,
            code_verifier=verifier,
        )


@dataclass
class AuthorizationRequest:
    """Result of building an authorization URL."""

    url: str
    state: str
    code_verifier: Optional[str] = None

    def __repr__(self) -> str:
        return f"AuthorizationRequest(url={self.url!r}, code_verifier={_mask(self.code_verifier)!r})"


@dataclass
class ConnectionStatus:
    """Public, secret-free view of a connection."""

    platform: str
    connected: bool
    display_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    scopes: list[str] = field(default_factory=list)
    last_error: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "platform": self.platform,
            "connected": self.connected,
            "display_name": self.display_name,
            "username": self.username,
            "avatar_url": self.avatar_url,
            "expires_at": format_timestamp(self.expires_at),
            "scopes": list(self.scopes),
            "last_error": self.last_error,
        }


@dataclass
class OAuthConnection:
    """A stored connection between a user and one platform account.

    Tokens are held only in encrypted form.
    """

    user_id: str
    platform: str
    platform_user_id: str
    encrypted_access_token: str = field(repr=False)
    encrypted_refresh_token: Optional[str] = field(default=None, repr=False)
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    scopes: list[str] = field(default_factory=list)
    active: bool = True
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.platform)

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.encrypted_refresh_token)

    def expires_within(self, seconds: float, now: datetime) -> bool:
        """True when the token expires before now + seconds."""
        if self.expires_at is None:
            return False
        return (self.expires_at - now).total_seconds() < seconds

    def to_status(self) -> ConnectionStatus:
        return ConnectionStatus(
            platform=self.platform,
            connected=self.active,
            display_name=self.display_name,
            username=self.username,
            avatar_url=self.avatar_url,
            expires_at=self.expires_at,
            scopes=list(self.scopes),
            last_error=self.last_error,
        )


@dataclass
class ConnectionHealth:
    """Outcome of a live connection check."""

    healthy: bool
    message: str


@dataclass
class BatchRefreshResult:
    """Counts from a batch token refresh."""

    refreshed: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"Refreshed {self.refreshed}, failed {self.failed}"
