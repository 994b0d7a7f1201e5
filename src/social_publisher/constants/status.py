"""Status enums and state constants for the social publisher.

This module contains the enums shared by the publishing layer:
- Media and content kinds carried on a publish request
- Caption policy flags from the platform registry
- Scheduled post lifecycle
- Remote job states reported by platform APIs

Remote job states mirror the literal strings the platform returns, so
compare against ``.value`` after upper-casing the API payload.
"""

from enum import Enum


# =============================================================================
# CONTENT
# =============================================================================

class MediaKind(str, Enum):
    """Kind of a media descriptor."""

    IMAGE = "image"
    VIDEO = "video"
    CAROUSEL = "carousel"


class ContentType(str, Enum):
    """Where the content lands on the platform.

    STORY means a story for images and a reel for videos on platforms
    that distinguish the two.
    """

    POST = "post"
    STORY = "story"


class CaptionPolicy(str, Enum):
    """What a platform does with an over-long caption."""

    TRUNCATE = "truncate"
    """Caption is cut to the limit before sending."""

    REJECT = "reject"
    """Caption fails validation before any network call."""


# =============================================================================
# SCHEDULING
# =============================================================================

class ScheduleStatus(str, Enum):
    """Lifecycle of a scheduled post.

    Workflow:
        PENDING -> RUNNING -> COMPLETED
           |                    |
           v                    v
       CANCELLED              FAILED
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


# =============================================================================
# REMOTE JOB STATES
# =============================================================================

class ContainerStatus(str, Enum):
    """Instagram media container status_code values."""

    IN_PROGRESS = "IN_PROGRESS"
    FINISHED = "FINISHED"
    ERROR = "ERROR"
    EXPIRED = "EXPIRED"
    PUBLISHED = "PUBLISHED"


class TikTokPublishStatus(str, Enum):
    """TikTok publish status values."""

    PROCESSING_UPLOAD = "PROCESSING_UPLOAD"
    PROCESSING_DOWNLOAD = "PROCESSING_DOWNLOAD"
    SEND_TO_USER_INBOX = "SEND_TO_USER_INBOX"
    PUBLISH_COMPLETE = "PUBLISH_COMPLETE"
    FAILED = "FAILED"


class MediaProcessingState(str, Enum):
    """Twitter media processing_info.state values."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class YouTubeProcessingStatus(str, Enum):
    """YouTube processingDetails.processingStatus values."""

    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TERMINATED = "terminated"
