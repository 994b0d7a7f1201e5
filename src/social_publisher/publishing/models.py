"""Data models for publishing."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any, Optional
from urllib.parse import urlsplit

from ..constants.status import ContentType, MediaKind, ScheduleStatus
from ..utils.timestamps import format_timestamp

_VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "avi", "wmv", "flv", "webm", "mkv", "m4v"})


def url_extension(url: str) -> Optional[str]:
    """Lower-cased file extension of a URL path, ignoring query and fragment.

    Returns None when the path has no extension.
    """
    suffix = PurePosixPath(urlsplit(url).path).suffix
    return suffix[1:].lower() if len(suffix) > 1 else None


def guess_mime_type(url: str) -> str:
    ext = url_extension(url)
    if ext:
        guessed, _ = mimetypes.guess_type(f"file.{ext}")
        if guessed:
            return guessed
    return "application/octet-stream"


def _is_video(mime_type: str, url: str) -> bool:
    if mime_type.startswith("video/"):
        return True
    if mime_type.startswith("image/"):
        return False
    return url_extension(url) in _VIDEO_EXTENSIONS


# =============================================================================
# MEDIA
# =============================================================================

@dataclass
class MediaDescriptor:
    """A publicly fetchable media file."""

    url: str
    mime_type: str = ""
    size_bytes: int = 0
    duration_seconds: Optional[float] = None
    kind: Optional[MediaKind] = None

    def __post_init__(self) -> None:
        if not self.mime_type:
            self.mime_type = guess_mime_type(self.url)
        if self.kind is None:
            self.kind = MediaKind.VIDEO if _is_video(self.mime_type, self.url) else MediaKind.IMAGE

    @property
    def extension(self) -> Optional[str]:
        return url_extension(self.url)

    @property
    def is_video(self) -> bool:
        return self.kind == MediaKind.VIDEO or self.mime_type.startswith("video/")

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


@dataclass
class CarouselItem:
    """One item of a multi-item post."""

    url: str
    mime_type: str = ""
    size_bytes: int = 0
    duration_seconds: Optional[float] = None
    order: int = 0
    caption: Optional[str] = None
    alt_text: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.mime_type:
            self.mime_type = guess_mime_type(self.url)

    @property
    def is_video(self) -> bool:
        return _is_video(self.mime_type, self.url)

    def to_media(self) -> MediaDescriptor:
        return MediaDescriptor(
            url=self.url,
            mime_type=self.mime_type,
            size_bytes=self.size_bytes,
            duration_seconds=self.duration_seconds,
            kind=MediaKind.VIDEO if self.is_video else MediaKind.IMAGE,
        )


# =============================================================================
# REQUESTS
# =============================================================================

@dataclass
class ContentPayload:
    """Caption and per-platform settings.

    settings is opaque to the orchestrator; adapters read the keys they
    understand (board_id, webhook_url, subreddit, visibility, ...).
    """

    caption: str = ""
    hashtags: list[str] = field(default_factory=list)
    mentions: list[str] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)


@dataclass
class PublishRequest:
    """A single-media (or text-only) publish."""

    user_id: str
    content: ContentPayload
    media: Optional[MediaDescriptor] = None
    content_type: ContentType = ContentType.POST


@dataclass
class CarouselRequest:
    """A multi-item publish."""

    user_id: str
    items: list[CarouselItem]
    content: ContentPayload
    content_type: ContentType = ContentType.POST


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class PublishResult:
    """Unified result from publishing to any platform."""

    success: bool
    platform: str
    post_id: Optional[str] = None
    url: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    pending: bool = False
    published_at: Optional[datetime] = None
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        if self.success:
            return f"[{self.platform}] Success: {self.url or self.post_id}"
        if self.pending:
            return f"[{self.platform}] Pending: {self.message}"
        return f"[{self.platform}] Failed: {self.error}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "platform": self.platform,
            "post_id": self.post_id,
            "url": self.url,
            "message": self.message,
            "error": self.error,
            "error_type": self.error_type,
            "pending": self.pending,
            "published_at": format_timestamp(self.published_at),
            "details": self.details,
        }


@dataclass
class CarouselResult(PublishResult):
    """Result of a multi-item publish."""

    item_ids: list[str] = field(default_factory=list)
    items_published: int = 0
    items_truncated: int = 0

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            {
                "item_ids": list(self.item_ids),
                "items_published": self.items_published,
                "items_truncated": self.items_truncated,
            }
        )
        return data


@dataclass
class PostAnalytics:
    """Engagement numbers for one post."""

    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0
    saves: int = 0
    reach: int = 0
    impressions: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "views": self.views,
            "likes": self.likes,
            "comments": self.comments,
            "shares": self.shares,
            "saves": self.saves,
            "reach": self.reach,
            "impressions": self.impressions,
            "extra": self.extra,
        }


@dataclass
class ScheduledPost:
    """A publish deferred to a future time."""

    id: str
    user_id: str
    platforms: list[str]
    scheduled_at: datetime
    timezone: str = "UTC"
    status: ScheduleStatus = ScheduleStatus.PENDING
    results: dict[str, PublishResult] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "platforms": list(self.platforms),
            "scheduled_at": format_timestamp(self.scheduled_at),
            "timezone": self.timezone,
            "status": self.status.value,
            "results": {p: r.to_dict() for p, r in self.results.items()},
            "error": self.error,
        }
