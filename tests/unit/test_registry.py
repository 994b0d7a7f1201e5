"""Unit tests for the platform registry and capability table."""

from __future__ import annotations

import pytest

from social_publisher.constants.status import CaptionPolicy
from social_publisher.errors import UnsupportedPlatformError
from social_publisher.platforms import PlatformRegistry

ALL_PLATFORMS = {
    "instagram",
    "tiktok",
    "youtube",
    "twitter",
    "linkedin",
    "linkedin-org",
    "facebook",
    "meta",
    "pinterest",
    "discord",
    "reddit",
}


class TestPlatformRegistry:
    """Tests for PlatformRegistry."""

    def test_all_platforms_registered(self, registry: PlatformRegistry):
        """Test that every supported platform has a capability record."""
        assert set(registry.available_platforms()) == ALL_PLATFORMS
        assert len(registry) == len(ALL_PLATFORMS)

    def test_lookup_is_case_insensitive(self, registry: PlatformRegistry):
        """Test that lookups normalize case and whitespace."""
        assert registry.get(" TikTok ").platform == "tiktok"
        assert "Twitter" in registry

    def test_unknown_platform(self, registry: PlatformRegistry):
        """Test that unknown platforms raise with the available list."""
        with pytest.raises(UnsupportedPlatformError) as exc_info:
            registry.get("myspace")

        assert exc_info.value.platform == "myspace"
        assert "reddit" in exc_info.value.available

    def test_twitter_limits(self, registry: PlatformRegistry):
        """Test X caption limit and truncate policy."""
        limits = registry.limits("twitter")

        assert limits.max_caption_length == 280
        assert limits.caption_policy == CaptionPolicy.TRUNCATE

    def test_instagram_limits(self, registry: PlatformRegistry):
        """Test Instagram caption, hashtag and carousel limits."""
        assert registry.limits("instagram").max_caption_length == 2200
        assert registry.limits("instagram").max_hashtags == 30
        assert registry.limits("instagram").caption_policy == CaptionPolicy.REJECT
        assert registry.carousel("instagram").max_items == 10

    def test_pkce_platforms(self, registry: PlatformRegistry):
        """Test that exactly TikTok and X require PKCE."""
        pkce = {name for name in registry.available_platforms() if registry.oauth(name).pkce_required}

        assert pkce == {"tiktok", "twitter"}

    def test_every_platform_can_refresh(self, registry: PlatformRegistry):
        """Test that all built-in platforms have a refresh endpoint."""
        assert all(registry.supports_refresh(name) for name in registry.available_platforms())

    def test_rate_limits_positive(self, registry: PlatformRegistry):
        """Test that every budget is usable."""
        for name in registry.available_platforms():
            budget = registry.rate_limit(name)
            assert budget.max_requests > 0
            assert budget.window_seconds > 0

    def test_custom_table(self, registry: PlatformRegistry):
        """Test that a registry can be built over a subset of the table."""
        subset = PlatformRegistry({"reddit": registry.get("reddit")})

        assert subset.available_platforms() == ["reddit"]
        assert not subset.is_supported("tiktok")
