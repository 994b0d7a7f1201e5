"""Platform registry for looking up static platform capabilities."""

from __future__ import annotations

from typing import Mapping, Optional

from ..errors import UnsupportedPlatformError
from .capabilities import (
    CAPABILITIES,
    CarouselConstraints,
    ContentLimits,
    OAuthEndpoints,
    PlatformCapability,
    RateLimitBudget,
)


def normalize_platform(name: str) -> str:
    """Canonical platform key (lower-cased, stripped)."""
    return name.strip().lower()


class PlatformRegistry:
    """Lookup over the capability table.

    get() is the single place a platform key is validated; every other
    accessor goes through it.

    Usage:
        registry = PlatformRegistry()

        registry.available_platforms()
        limits = registry.limits("twitter")
        if registry.supports_refresh("tiktok"):
            ...
    """

    def __init__(self, capabilities: Optional[Mapping[str, PlatformCapability]] = None):
        self._capabilities: dict[str, PlatformCapability] = dict(
            CAPABILITIES if capabilities is None else capabilities
        )

    def get(self, platform: str) -> PlatformCapability:
        """Get the capability record for a platform.

        Args:
            platform: Platform identifier (case-insensitive).

        Returns:
            The platform's capability record.

        Raises:
            UnsupportedPlatformError: If the platform is not in the table.
        """
        key = normalize_platform(platform)
        capability = self._capabilities.get(key)
        if capability is None:
            raise UnsupportedPlatformError(platform, self.available_platforms())
        return capability

    def is_supported(self, platform: str) -> bool:
        return normalize_platform(platform) in self._capabilities

    def available_platforms(self) -> list[str]:
        """Get list of all known platform names."""
        return list(self._capabilities.keys())

    def limits(self, platform: str) -> ContentLimits:
        return self.get(platform).limits

    def oauth(self, platform: str) -> OAuthEndpoints:
        return self.get(platform).oauth

    def carousel(self, platform: str) -> CarouselConstraints:
        return self.get(platform).carousel

    def rate_limit(self, platform: str) -> RateLimitBudget:
        return self.get(platform).rate_limit

    def supports_refresh(self, platform: str) -> bool:
        return self.get(platform).supports_refresh

    def __contains__(self, platform: object) -> bool:
        return isinstance(platform, str) and self.is_supported(platform)

    def __len__(self) -> int:
        return len(self._capabilities)
