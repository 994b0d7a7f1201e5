"""Content validation against per-platform limits.

All checks run and every failure is collected, so one pass tells the caller
everything that needs fixing:

1. Caption length (formatted caption: text + hashtags + mentions)
2. Hashtag count
3. Per media item: size, video duration, file format
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from ..constants.status import CaptionPolicy
from ..errors import FieldError, ValidationError
from ..platforms.capabilities import ContentLimits
from ..platforms.registry import PlatformRegistry
from .models import CarouselItem, ContentPayload, MediaDescriptor, url_extension


def _prefixed(values: Sequence[str], prefix: str) -> list[str]:
    cleaned = [v.strip() for v in values if v and v.strip()]
    return [v if v.startswith(prefix) else f"{prefix}{v}" for v in cleaned]


def format_caption(content: ContentPayload) -> str:
    """Caption with hashtags and mentions appended.

    Example:
        ContentPayload(caption="Hello", hashtags=["a", "#b"], mentions=["bob"])
        -> "Hello\\n\\n#a #b\\n\\n@bob"
    """
    caption = content.caption or ""
    hashtags = _prefixed(content.hashtags, "#")
    if hashtags:
        caption = f"{caption}\n\n{' '.join(hashtags)}"
    mentions = _prefixed(content.mentions, "@")
    if mentions:
        caption = f"{caption}\n\n{' '.join(mentions)}"
    return caption.strip()


def fit_caption(text: str, limits: ContentLimits) -> str:
    """Cut text to the caption limit on truncate-policy platforms."""
    if limits.caption_policy == CaptionPolicy.TRUNCATE and len(text) > limits.max_caption_length:
        return text[: limits.max_caption_length]
    return text


@dataclass
class ValidationResult:
    """Outcome of validating content for one platform."""

    valid: bool
    errors: list[FieldError] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [str(e) for e in self.errors]


class ContentValidator:
    """Checks content against a platform's limits before any network call.

    Usage:
        validator = ContentValidator(registry)
        result = validator.validate("instagram", content, media=media)
        if not result.valid:
            for error in result.errors:
                print(error.field, error.message)
    """

    def __init__(self, registry: PlatformRegistry):
        self._registry = registry

    def validate(
        self,
        platform: str,
        content: ContentPayload,
        media: Optional[MediaDescriptor] = None,
        items: Optional[Sequence[CarouselItem]] = None,
    ) -> ValidationResult:
        """Validate content and media for a platform.

        Args:
            platform: Platform identifier.
            content: Caption, hashtags and mentions.
            media: Primary media, if any.
            items: Carousel items, if any.

        Returns:
            ValidationResult with every field error found.

        Raises:
            UnsupportedPlatformError: Unknown platform.
        """
        capability = self._registry.get(platform)
        limits = capability.limits
        name = capability.display_name
        errors: list[FieldError] = []

        caption = format_caption(content)
        if limits.caption_policy == CaptionPolicy.REJECT and len(caption) > limits.max_caption_length:
            errors.append(
                FieldError(
                    "caption",
                    f"Caption is {len(caption)} characters; {name} allows {limits.max_caption_length}",
                )
            )

        hashtag_count = len(_prefixed(content.hashtags, "#"))
        if limits.max_hashtags > 0 and hashtag_count > limits.max_hashtags:
            errors.append(
                FieldError(
                    "hashtags",
                    f"Too many hashtags ({hashtag_count}); {name} allows {limits.max_hashtags}",
                )
            )

        if media is not None:
            errors.extend(self._check_media("media", media, limits, name))
        for index, item in enumerate(items or []):
            errors.extend(self._check_media(f"items[{index}]", item, limits, name))

        return ValidationResult(valid=not errors, errors=errors)

    def validate_or_raise(
        self,
        platform: str,
        content: ContentPayload,
        media: Optional[MediaDescriptor] = None,
        items: Optional[Sequence[CarouselItem]] = None,
    ) -> None:
        """Like validate(), but raise ValidationError carrying every field error."""
        result = self.validate(platform, content, media=media, items=items)
        if not result.valid:
            raise ValidationError(result.errors, platform=platform)

    @staticmethod
    def _check_media(
        prefix: str,
        media: Union[MediaDescriptor, CarouselItem],
        limits: ContentLimits,
        name: str,
    ) -> list[FieldError]:
        errors: list[FieldError] = []

        size_mb = media.size_bytes / (1024 * 1024)
        if media.size_bytes and size_mb > limits.max_file_size_mb:
            errors.append(
                FieldError(
                    f"{prefix}.size",
                    f"File is {size_mb:.1f}MB; {name} allows {limits.max_file_size_mb:g}MB",
                )
            )

        if (
            media.is_video
            and media.duration_seconds is not None
            and media.duration_seconds > limits.max_video_seconds
        ):
            errors.append(
                FieldError(
                    f"{prefix}.duration",
                    f"Video is {media.duration_seconds:g}s; {name} allows {limits.max_video_seconds}s",
                )
            )

        extension = url_extension(media.url)
        if extension and extension not in limits.supported_formats:
            errors.append(
                FieldError(
                    f"{prefix}.format",
                    f".{extension} is not supported by {name}. "
                    f"Supported: {', '.join(limits.supported_formats)}",
                )
            )

        return errors
