"""Unit tests for SlidingWindowRateLimiter."""

from __future__ import annotations

import pytest

from social_publisher.platforms import PlatformRegistry
from social_publisher.publishing.rate_limiter import DEFAULT_BUDGET, SlidingWindowRateLimiter


class FakeTime:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def limiter(registry: PlatformRegistry, fake_time: FakeTime) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(registry, clock=fake_time)


class TestSlidingWindowRateLimiter:
    """Tests for the sliding window."""

    @pytest.mark.asyncio
    async def test_hit_until_exhausted(self, limiter: SlidingWindowRateLimiter, registry: PlatformRegistry):
        """Test that the budget allows exactly max_requests hits per window."""
        budget = registry.rate_limit("discord")

        statuses = [await limiter.hit("u1", "discord") for _ in range(budget.max_requests + 1)]

        assert all(s.allowed for s in statuses[:-1])
        assert statuses[-2].remaining == 0
        assert not statuses[-1].allowed

    @pytest.mark.asyncio
    async def test_window_slides(
        self,
        limiter: SlidingWindowRateLimiter,
        registry: PlatformRegistry,
        fake_time: FakeTime,
    ):
        """Test that calls older than the window stop counting."""
        budget = registry.rate_limit("tiktok")
        for _ in range(budget.max_requests):
            await limiter.hit("u1", "tiktok")
        assert not (await limiter.check("u1", "tiktok")).allowed

        fake_time.now += budget.window_seconds

        status = await limiter.check("u1", "tiktok")
        assert status.allowed
        assert status.remaining == budget.max_requests

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, limiter: SlidingWindowRateLimiter, registry: PlatformRegistry):
        """Test that users and endpoints have separate windows."""
        for _ in range(registry.rate_limit("discord").max_requests):
            await limiter.hit("u1", "discord")

        assert (await limiter.check("u2", "discord")).allowed
        assert (await limiter.check("u1", "reddit")).allowed

    @pytest.mark.asyncio
    async def test_check_does_not_record(self, limiter: SlidingWindowRateLimiter):
        """Test that check leaves the window untouched."""
        await limiter.check("u1", "reddit")
        status = await limiter.check("u1", "reddit")

        assert status.remaining == status.limit

    @pytest.mark.asyncio
    async def test_record_past_budget(self, limiter: SlidingWindowRateLimiter, registry: PlatformRegistry):
        """Test that record counts even when the budget is spent."""
        limit = registry.rate_limit("discord").max_requests
        for _ in range(limit + 2):
            status = await limiter.record("u1", "discord")

        assert not status.allowed
        assert status.remaining == 0

    @pytest.mark.asyncio
    async def test_reset_at(self, limiter: SlidingWindowRateLimiter, registry: PlatformRegistry, fake_time: FakeTime):
        """Test that reset_at is the oldest call plus the window."""
        status = await limiter.hit("u1", "reddit")

        window = registry.rate_limit("reddit").window_seconds
        assert status.reset_at.timestamp() == pytest.approx(fake_time.now + window)
        assert status.to_dict()["reset_at"].endswith("+00:00")

    @pytest.mark.asyncio
    async def test_unknown_endpoint_uses_default(self, limiter: SlidingWindowRateLimiter):
        """Test that endpoints outside the registry get the default budget."""
        status = await limiter.check("u1", "webhooks")

        assert status.limit == DEFAULT_BUDGET.max_requests

    @pytest.mark.asyncio
    async def test_reset(self, limiter: SlidingWindowRateLimiter):
        """Test that reset forgets an identifier's calls."""
        await limiter.hit("u1", "reddit")
        await limiter.hit("u1", "twitter")

        await limiter.reset("u1", "reddit")

        assert (await limiter.check("u1", "reddit")).remaining == (await limiter.check("u1", "reddit")).limit
        assert (await limiter.check("u1", "twitter")).remaining < (await limiter.check("u1", "twitter")).limit
