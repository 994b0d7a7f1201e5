"""Publishing orchestrator.

Fans a publish out to any number of platform adapters concurrently and
collects one result per platform. A failure on one platform never affects
the others. Also runs delayed (scheduled) publishes as asyncio tasks.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Sequence

import httpx

from ..constants.status import ScheduleStatus
from ..errors import InvalidScheduleError, UnsupportedPlatformError
from ..platforms.registry import PlatformRegistry, normalize_platform
from ..utils.timestamps import Clock, now_utc, to_utc
from .models import (
    CarouselRequest,
    CarouselResult,
    ContentPayload,
    PostAnalytics,
    PublishRequest,
    PublishResult,
    ScheduledPost,
)
from .rate_limiter import SlidingWindowRateLimiter

if TYPE_CHECKING:
    from ..oauth.token_manager import TokenManager
    from ..platforms.base import PlatformPublisher

_logger = logging.getLogger("publishing")


def _unique(platforms: Sequence[str]) -> list[str]:
    """Normalized platform names, first occurrence wins."""
    seen: list[str] = []
    for name in platforms:
        key = normalize_platform(name)
        if key not in seen:
            seen.append(key)
    return seen


def _failed(platform: str, error: BaseException) -> PublishResult:
    return PublishResult(
        success=False,
        platform=platform,
        error=str(error) or type(error).__name__,
        error_type=type(error).__name__,
    )


def _failed_carousel(platform: str, error: BaseException) -> CarouselResult:
    return CarouselResult(
        success=False,
        platform=platform,
        error=str(error) or type(error).__name__,
        error_type=type(error).__name__,
    )


class PublishingService:
    """Multi-platform publishing orchestrator.

    Usage:
        service = build_publishing_service(registry, token_manager)

        results = await service.publish_to_multiple(
            ["instagram", "twitter"],
            PublishRequest(user_id="u1", content=ContentPayload(caption="Hello")),
        )
        for platform, result in results.items():
            print(result)
    """

    def __init__(
        self,
        registry: PlatformRegistry,
        publishers: Optional[dict[str, "PlatformPublisher"]] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        clock: Clock = now_utc,
    ):
        self._registry = registry
        self._publishers: dict[str, "PlatformPublisher"] = {}
        self._rate_limiter = rate_limiter
        self._clock = clock
        self._scheduled: dict[str, ScheduledPost] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        for platform, publisher in (publishers or {}).items():
            self.register(platform, publisher)

    # =========================================================================
    # ADAPTERS
    # =========================================================================

    def register(self, platform: str, publisher: "PlatformPublisher") -> None:
        """Register (or replace) the adapter for a platform.

        Raises:
            UnsupportedPlatformError: Platform is not in the registry.
        """
        key = normalize_platform(platform)
        self._registry.get(key)
        self._publishers[key] = publisher

    def get_publisher(self, platform: str) -> "PlatformPublisher":
        """Adapter for a platform.

        Raises:
            UnsupportedPlatformError: Unknown platform or no adapter registered.
        """
        key = normalize_platform(platform)
        publisher = self._publishers.get(key)
        if publisher is None:
            raise UnsupportedPlatformError(key, self.available_platforms())
        return publisher

    def available_platforms(self) -> list[str]:
        """Platforms with a registered adapter."""
        return sorted(self._publishers)

    async def _note_call(self, user_id: str, platform: str) -> None:
        if self._rate_limiter is None:
            return
        status = await self._rate_limiter.check(user_id, platform, platform)
        if not status.allowed:
            _logger.warning(f"Rate budget exhausted | {user_id} | {platform} | publishing anyway")
        await self._rate_limiter.record(user_id, platform, platform)

    # =========================================================================
    # PUBLISH
    # =========================================================================

    async def publish_to_single(self, platform: str, request: PublishRequest) -> PublishResult:
        """Publish to one platform.

        Raises:
            UnsupportedPlatformError: Unknown platform or no adapter.
        """
        key = normalize_platform(platform)
        publisher = self.get_publisher(key)
        await self._note_call(request.user_id, key)
        try:
            return await publisher.publish(request)
        except Exception as e:
            _logger.error(f"Publish to {key} raised: {type(e).__name__}: {e}")
            return _failed(key, e)

    async def publish_to_multiple(
        self,
        platforms: Sequence[str],
        request: PublishRequest,
        platform_content: Optional[dict[str, ContentPayload]] = None,
    ) -> dict[str, PublishResult]:
        """Publish to several platforms concurrently.

        Args:
            platforms: Target platforms (duplicates collapse).
            request: Shared request.
            platform_content: Per-platform content overrides.

        Returns:
            Exactly one result per requested platform.
        """
        targets = _unique(platforms)
        overrides = {normalize_platform(k): v for k, v in (platform_content or {}).items()}

        _logger.info(f"Publishing to {len(targets)} platforms | user={request.user_id} | {', '.join(targets)}")

        settled = await asyncio.gather(
            *(
                self.publish_to_single(
                    platform,
                    replace(request, content=overrides[platform]) if platform in overrides else request,
                )
                for platform in targets
            ),
            return_exceptions=True,
        )

        results: dict[str, PublishResult] = {}
        for platform, outcome in zip(targets, settled):
            if isinstance(outcome, BaseException):
                _logger.error(f"Publish to {platform} failed: {type(outcome).__name__}: {outcome}")
                outcome = _failed(platform, outcome)
            results[platform] = outcome

        succeeded = sum(1 for r in results.values() if r.success)
        _logger.info(f"Publish complete | {succeeded} succeeded | {len(results) - succeeded} failed")
        return results

    async def publish_carousel_to_single(self, platform: str, request: CarouselRequest) -> CarouselResult:
        """Publish a carousel to one platform.

        Raises:
            UnsupportedPlatformError: Unknown platform or no adapter.
        """
        key = normalize_platform(platform)
        publisher = self.get_publisher(key)
        await self._note_call(request.user_id, key)
        try:
            return await publisher.publish_carousel(request)
        except Exception as e:
            _logger.error(f"Carousel to {key} raised: {type(e).__name__}: {e}")
            return _failed_carousel(key, e)

    async def publish_carousel_to_multiple(
        self,
        platforms: Sequence[str],
        request: CarouselRequest,
        platform_content: Optional[dict[str, ContentPayload]] = None,
    ) -> dict[str, CarouselResult]:
        """Publish a carousel to several platforms concurrently."""
        targets = _unique(platforms)
        overrides = {normalize_platform(k): v for k, v in (platform_content or {}).items()}

        settled = await asyncio.gather(
            *(
                self.publish_carousel_to_single(
                    platform,
                    replace(request, content=overrides[platform]) if platform in overrides else request,
                )
                for platform in targets
            ),
            return_exceptions=True,
        )

        results: dict[str, CarouselResult] = {}
        for platform, outcome in zip(targets, settled):
            if isinstance(outcome, BaseException):
                _logger.error(f"Carousel to {platform} failed: {type(outcome).__name__}: {outcome}")
                outcome = _failed_carousel(platform, outcome)
            results[platform] = outcome

        succeeded = sum(1 for r in results.values() if r.success)
        _logger.info(f"Carousel complete | {succeeded} succeeded | {len(results) - succeeded} failed")
        return results

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    def schedule_post(
        self,
        post_id: str,
        platforms: Sequence[str],
        request: PublishRequest,
        at: datetime,
        platform_content: Optional[dict[str, ContentPayload]] = None,
    ) -> ScheduledPost:
        """Publish to several platforms at a future time.

        Must be called from a running event loop.

        Raises:
            InvalidScheduleError: at is not in the future, or post_id is
                already pending.
        """
        scheduled_at = to_utc(at)
        delay = (scheduled_at - self._clock()).total_seconds()
        if delay <= 0:
            raise InvalidScheduleError(f"Scheduled time must be in the future: {scheduled_at.isoformat()}")

        existing = self._scheduled.get(post_id)
        if existing is not None and existing.status == ScheduleStatus.PENDING:
            raise InvalidScheduleError(f"Post {post_id} is already scheduled")

        post = ScheduledPost(
            id=post_id,
            user_id=request.user_id,
            platforms=_unique(platforms),
            scheduled_at=scheduled_at,
        )
        self._scheduled[post_id] = post
        self._tasks[post_id] = asyncio.create_task(
            self._run_scheduled(post, delay, request, platform_content),
            name=f"scheduled-post-{post_id}",
        )
        _logger.info(f"Scheduled post {post_id} | {', '.join(post.platforms)} | in {delay:.0f}s")
        return post

    async def _run_scheduled(
        self,
        post: ScheduledPost,
        delay: float,
        request: PublishRequest,
        platform_content: Optional[dict[str, ContentPayload]],
    ) -> None:
        await asyncio.sleep(delay)
        post.status = ScheduleStatus.RUNNING
        try:
            post.results = await self.publish_to_multiple(post.platforms, request, platform_content)
        except Exception as e:
            post.status = ScheduleStatus.FAILED
            post.error = str(e)
            _logger.error(f"Scheduled post {post.id} failed: {type(e).__name__}: {e}")
            return
        finally:
            self._tasks.pop(post.id, None)

        post.status = ScheduleStatus.COMPLETED
        succeeded = sum(1 for r in post.results.values() if r.success)
        _logger.info(f"Scheduled post {post.id} done | {succeeded}/{len(post.results)} succeeded")

    def cancel_scheduled_post(self, post_id: str) -> bool:
        """Cancel a post that has not started publishing yet."""
        post = self._scheduled.get(post_id)
        if post is None or post.status != ScheduleStatus.PENDING:
            return False

        task = self._tasks.pop(post_id, None)
        if task is not None:
            task.cancel()
        post.status = ScheduleStatus.CANCELLED
        _logger.info(f"Cancelled scheduled post {post_id}")
        return True

    def get_scheduled_post(self, post_id: str) -> Optional[ScheduledPost]:
        return self._scheduled.get(post_id)

    async def shutdown(self) -> None:
        """Cancel every pending scheduled post and wait for the tasks to end."""
        pending = [post_id for post_id, post in self._scheduled.items() if post.status == ScheduleStatus.PENDING]
        tasks = [self._tasks[post_id] for post_id in pending if post_id in self._tasks]
        for post_id in pending:
            self.cancel_scheduled_post(post_id)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # =========================================================================
    # ANALYTICS / DELETE
    # =========================================================================

    async def get_post_analytics(self, platform: str, post_id: str, user_id: str) -> PostAnalytics:
        return await self.get_publisher(platform).get_analytics(post_id, user_id)

    async def get_multi_platform_analytics(
        self,
        posts: Sequence[tuple[str, str]],
        user_id: str,
    ) -> dict[str, PostAnalytics]:
        """Analytics for several posts, keyed "platform:post_id".

        Posts whose lookup fails are logged and left out.
        """
        keys = [f"{normalize_platform(platform)}:{post_id}" for platform, post_id in posts]
        settled = await asyncio.gather(
            *(self.get_post_analytics(platform, post_id, user_id) for platform, post_id in posts),
            return_exceptions=True,
        )

        analytics: dict[str, PostAnalytics] = {}
        for key, outcome in zip(keys, settled):
            if isinstance(outcome, BaseException):
                _logger.warning(f"Analytics failed for {key}: {type(outcome).__name__}: {outcome}")
                continue
            analytics[key] = outcome
        return analytics

    async def delete_post(self, platform: str, post_id: str, user_id: str) -> bool:
        return await self.get_publisher(platform).delete(post_id, user_id)


def build_publishing_service(
    registry: PlatformRegistry,
    token_manager: "TokenManager",
    http_client: Optional[httpx.AsyncClient] = None,
    rate_limiter: Optional[SlidingWindowRateLimiter] = None,
) -> PublishingService:
    """Wire every built-in adapter into a PublishingService."""
    from ..platforms.discord import DiscordPublisher
    from ..platforms.facebook import FacebookPublisher
    from ..platforms.instagram import InstagramPublisher, MetaPublisher
    from ..platforms.linkedin import LinkedInOrgPublisher, LinkedInPublisher
    from ..platforms.pinterest import PinterestPublisher
    from ..platforms.reddit import RedditPublisher
    from ..platforms.tiktok import TikTokPublisher
    from ..platforms.twitter import TwitterPublisher
    from ..platforms.youtube import YouTubePublisher

    adapters = [
        InstagramPublisher,
        MetaPublisher,
        TikTokPublisher,
        LinkedInPublisher,
        LinkedInOrgPublisher,
        DiscordPublisher,
        RedditPublisher,
        PinterestPublisher,
        FacebookPublisher,
        TwitterPublisher,
        YouTubePublisher,
    ]
    service = PublishingService(
        registry,
        rate_limiter=rate_limiter if rate_limiter is not None else SlidingWindowRateLimiter(registry),
    )
    for adapter_cls in adapters:
        publisher = adapter_cls(registry, token_manager, http_client=http_client)
        service.register(publisher.platform_name, publisher)
    return service
