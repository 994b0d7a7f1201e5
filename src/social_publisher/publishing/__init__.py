"""Publishing layer: request/result models, validation, rate limiting and
the multi-platform orchestrator.

Usage:
    from social_publisher.publishing import (
        ContentPayload,
        PublishRequest,
        build_publishing_service,
    )

    service = build_publishing_service(registry, token_manager)
    results = await service.publish_to_multiple(
        ["twitter", "linkedin"],
        PublishRequest(user_id="u1", content=ContentPayload(caption="Hello")),
    )
"""

from .models import (
    CarouselItem,
    CarouselRequest,
    CarouselResult,
    ContentPayload,
    MediaDescriptor,
    PostAnalytics,
    PublishRequest,
    PublishResult,
    ScheduledPost,
)
from .rate_limiter import RateLimitStatus, SlidingWindowRateLimiter
from .service import PublishingService, build_publishing_service
from .validator import ContentValidator, ValidationResult, fit_caption, format_caption

__all__ = [
    # Models
    "CarouselItem",
    "CarouselRequest",
    "CarouselResult",
    "ContentPayload",
    "MediaDescriptor",
    "PostAnalytics",
    "PublishRequest",
    "PublishResult",
    "ScheduledPost",
    # Validation
    "ContentValidator",
    "ValidationResult",
    "fit_caption",
    "format_caption",
    # Rate limiting
    "RateLimitStatus",
    "SlidingWindowRateLimiter",
    # Orchestrator
    "PublishingService",
    "build_publishing_service",
]
