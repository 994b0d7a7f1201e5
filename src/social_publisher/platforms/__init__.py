"""Platform capabilities and publishing adapters.

Each adapter lives in its own subpackage (instagram, tiktok, linkedin, ...)
and implements platforms.base.PlatformPublisher.

Usage:
    from social_publisher.platforms import PlatformRegistry

    registry = PlatformRegistry()
    limits = registry.limits("instagram")

    from social_publisher.platforms.tiktok import TikTokPublisher
    publisher = TikTokPublisher(registry, token_manager)
    result = await publisher.publish(request)
"""

from .capabilities import (
    CAPABILITIES,
    CarouselConstraints,
    ContentLimits,
    OAuthEndpoints,
    PlatformCapability,
    RateLimitBudget,
)
from .registry import PlatformRegistry, normalize_platform

__all__ = [
    "CAPABILITIES",
    "CarouselConstraints",
    "ContentLimits",
    "OAuthEndpoints",
    "PlatformCapability",
    "RateLimitBudget",
    "PlatformRegistry",
    "normalize_platform",
]
