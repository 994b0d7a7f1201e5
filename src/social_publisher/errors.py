"""Exception taxonomy for the social publisher.

Credential-layer errors (CredentialError and subclasses) mean the user has to
reconnect the platform. PublishError carries the platform's own error detail.
Adapters never let these escape publish(); they become failed results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class SocialPublisherError(Exception):
    """Base class for all errors raised by this package."""


class UnsupportedPlatformError(SocialPublisherError, ValueError):
    """Unknown platform key, or no adapter registered for it."""

    def __init__(self, platform: str, available: Optional[list[str]] = None):
        self.platform = platform
        self.available = available or []
        message = f"Unsupported platform: {platform}"
        if self.available:
            message += f". Available: {', '.join(self.available)}"
        super().__init__(message)


@dataclass(frozen=True)
class FieldError:
    """One field-level validation failure."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationError(SocialPublisherError):
    """Content exceeds one or more platform limits."""

    def __init__(self, errors: list[FieldError], platform: Optional[str] = None):
        self.errors = list(errors)
        self.platform = platform
        super().__init__("; ".join(str(e) for e in self.errors) or "Invalid content")

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


# =============================================================================
# CREDENTIAL ERRORS
# =============================================================================

class CredentialError(SocialPublisherError):
    """Credential-layer failure. The platform needs to be reconnected."""


class CryptoError(CredentialError):
    """Encryption key is invalid, or a ciphertext failed to decrypt."""


class TokenExchangeError(CredentialError):
    """Token endpoint rejected a code exchange or refresh."""

    def __init__(self, platform: str, detail: str, status_code: Optional[int] = None):
        self.platform = platform
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"Token request failed for {platform}: {detail}")


class RefreshNotSupportedError(CredentialError):
    """The platform does not offer a refresh grant."""

    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"Token refresh not supported for {platform}")


class NotConnectedError(CredentialError):
    """No active connection with a usable access token."""

    def __init__(self, platform: str, user_id: Optional[str] = None):
        self.platform = platform
        self.user_id = user_id
        super().__init__(f"No valid access token for {platform}. Please reconnect your account.")


class ProfileFetchError(CredentialError):
    """Profile lookup failed, or the publishing target could not be located."""

    def __init__(self, platform: str, detail: str):
        self.platform = platform
        self.detail = detail
        super().__init__(f"Failed to fetch {platform} profile: {detail}")


class OAuthNotConfiguredError(CredentialError):
    """Client id or secret missing for a platform."""

    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"{platform.upper()} OAuth is not configured")


# =============================================================================
# PUBLISH ERRORS
# =============================================================================

class PublishError(SocialPublisherError):
    """Platform API rejected a request."""

    def __init__(
        self,
        message: str,
        platform: Optional[str] = None,
        status_code: Optional[int] = None,
        detail: Any = None,
    ):
        super().__init__(message)
        self.platform = platform
        self.status_code = status_code
        self.detail = detail


class PublishTimeoutError(PublishError, TimeoutError):
    """Async processing did not finish within the polling ceiling.

    The platform may still complete the job on its side.
    """

    def __init__(
        self,
        message: str,
        platform: Optional[str] = None,
        job_id: Optional[str] = None,
        attempts: int = 0,
    ):
        super().__init__(message, platform=platform)
        self.job_id = job_id
        self.attempts = attempts


class InvalidScheduleError(SocialPublisherError):
    """Scheduled time is not in the future, or the id is already pending."""
