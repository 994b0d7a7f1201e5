"""Advisory sliding-window rate limiting for platform calls.

Budgets come from the platform registry. The limiter never blocks a
publish on its own; the orchestrator records calls and logs when a budget
is exhausted.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from ..constants.limits import DEFAULT_RATE_LIMIT_REQUESTS, DEFAULT_RATE_LIMIT_WINDOW_SECONDS
from ..platforms.capabilities import RateLimitBudget
from ..platforms.registry import PlatformRegistry

_logger = logging.getLogger("rate_limiter")

DEFAULT_BUDGET = RateLimitBudget(DEFAULT_RATE_LIMIT_REQUESTS, DEFAULT_RATE_LIMIT_WINDOW_SECONDS)


@dataclass
class RateLimitStatus:
    """Current standing of one (identifier, endpoint) key."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "limit": self.limit,
            "remaining": self.remaining,
            "reset_at": self.reset_at.isoformat() if self.reset_at else None,
        }


class SlidingWindowRateLimiter:
    """In-process sliding window keyed by (identifier, endpoint).

    Usage:
        limiter = SlidingWindowRateLimiter(registry)

        status = await limiter.hit(user_id, "instagram")
        if not status.allowed:
            print(f"Try again after {status.reset_at}")
    """

    def __init__(
        self,
        registry: PlatformRegistry,
        clock: Callable[[], float] = time.time,
        default_budget: RateLimitBudget = DEFAULT_BUDGET,
    ):
        self._registry = registry
        self._clock = clock
        self._default_budget = default_budget
        self._windows: dict[tuple[str, str], deque[float]] = {}
        self._lock = asyncio.Lock()

    def budget_for(self, endpoint: str, platform: Optional[str] = None) -> RateLimitBudget:
        """Platform budget, or the default for unknown endpoints."""
        name = platform or endpoint
        if self._registry.is_supported(name):
            return self._registry.rate_limit(name)
        return self._default_budget

    def _prune(self, key: tuple[str, str], budget: RateLimitBudget, now: float) -> deque[float]:
        window = self._windows.setdefault(key, deque())
        cutoff = now - budget.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()
        return window

    def _status(self, window: deque[float], budget: RateLimitBudget) -> RateLimitStatus:
        used = len(window)
        reset_at = None
        if window:
            reset_at = datetime.fromtimestamp(window[0] + budget.window_seconds, tz=timezone.utc)
        return RateLimitStatus(
            allowed=used < budget.max_requests,
            limit=budget.max_requests,
            remaining=max(0, budget.max_requests - used),
            reset_at=reset_at,
        )

    async def check(self, identifier: str, endpoint: str, platform: Optional[str] = None) -> RateLimitStatus:
        """Report whether one more call fits in the window, without recording it."""
        budget = self.budget_for(endpoint, platform)
        async with self._lock:
            window = self._prune((identifier, endpoint), budget, self._clock())
            return self._status(window, budget)

    async def record(self, identifier: str, endpoint: str, platform: Optional[str] = None) -> RateLimitStatus:
        """Record a call unconditionally."""
        budget = self.budget_for(endpoint, platform)
        async with self._lock:
            now = self._clock()
            window = self._prune((identifier, endpoint), budget, now)
            window.append(now)
            return self._status(window, budget)

    async def hit(self, identifier: str, endpoint: str, platform: Optional[str] = None) -> RateLimitStatus:
        """Check and, when allowed, record a call."""
        budget = self.budget_for(endpoint, platform)
        async with self._lock:
            now = self._clock()
            window = self._prune((identifier, endpoint), budget, now)
            status = self._status(window, budget)
            if status.allowed:
                window.append(now)
                status.remaining -= 1
                status.reset_at = self._status(window, budget).reset_at
            else:
                _logger.warning(
                    f"Rate limit reached | {identifier} | {endpoint} | "
                    f"{budget.max_requests}/{budget.window_seconds:g}s"
                )
            return status

    async def reset(self, identifier: str, endpoint: Optional[str] = None) -> None:
        """Forget recorded calls for an identifier (one endpoint or all)."""
        async with self._lock:
            for key in list(self._windows):
                if key[0] == identifier and (endpoint is None or key[1] == endpoint):
                    del self._windows[key]
