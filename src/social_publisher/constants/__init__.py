"""Shared constants for the social publisher.

PACKAGE STRUCTURE:
-----------------
- limits.py   : OAuth lifetimes, polling ceilings, chunk sizes, payload caps
- status.py   : Content kinds, caption policy, schedule and remote job states

USAGE EXAMPLES:
--------------
    from social_publisher.constants import TOKEN_REFRESH_BUFFER_SECONDS
    from social_publisher.constants import ContentType, ScheduleStatus

Per-platform content limits and rate budgets are not here; they live in
platforms/capabilities.py next to the OAuth endpoints.
"""

# =============================================================================
# LIMITS
# =============================================================================
from .limits import (
    # OAuth
    OAUTH_STATE_MAX_AGE_SECONDS,
    OAUTH_NONCE_BYTES,
    PKCE_VERIFIER_BYTES,
    TOKEN_REFRESH_BUFFER_SECONDS,
    BATCH_REFRESH_DEFAULT_HOURS,
    # Encryption
    ENCRYPTION_KEY_BYTES,
    ENCRYPTION_NONCE_BYTES,
    ENCRYPTION_TAG_BYTES,
    # HTTP
    HTTP_TIMEOUT_SECONDS,
    UPLOAD_TIMEOUT_SECONDS,
    # Instagram
    INSTAGRAM_POLL_INTERVAL_SECONDS,
    INSTAGRAM_POLL_MAX_ATTEMPTS,
    # TikTok
    TIKTOK_CHUNK_THRESHOLD,
    TIKTOK_CHUNK_SIZE,
    TIKTOK_POLL_INTERVAL_SECONDS,
    TIKTOK_POLL_MAX_ATTEMPTS,
    TIKTOK_TITLE_MAX_LENGTH,
    # Twitter
    TWITTER_VIDEO_CHUNK_SIZE,
    TWITTER_POLL_MAX_ATTEMPTS,
    TWITTER_POLL_INTERVAL_SECONDS,
    # Discord
    DISCORD_CONTENT_MAX_LENGTH,
    DISCORD_EMBED_DESCRIPTION_MAX_LENGTH,
    DISCORD_EMBED_TITLE_MAX_LENGTH,
    DISCORD_EMBED_MAX_COUNT,
    DISCORD_EMBED_COLOR,
    # Reddit
    REDDIT_TITLE_MAX_LENGTH,
    REDDIT_USER_AGENT,
    # YouTube
    YOUTUBE_UPLOAD_URL,
    YOUTUBE_THUMBNAIL_URL,
    YOUTUBE_TITLE_MAX_LENGTH,
    YOUTUBE_DEFAULT_CATEGORY,
    YOUTUBE_DEFAULT_PRIVACY,
    YOUTUBE_POLL_MAX_ATTEMPTS,
    YOUTUBE_POLL_INTERVAL_SECONDS,
    # Pinterest
    PINTEREST_TITLE_MAX_LENGTH,
    PINTEREST_DESCRIPTION_MAX_LENGTH,
    PINTEREST_ANALYTICS_DAYS,
    # LinkedIn
    LINKEDIN_API_VERSION,
    LINKEDIN_RESTLI_PROTOCOL_VERSION,
    # Rate limiting
    DEFAULT_RATE_LIMIT_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
)

# =============================================================================
# STATUS ENUMS
# =============================================================================
from .status import (
    MediaKind,
    ContentType,
    CaptionPolicy,
    ScheduleStatus,
    ContainerStatus,
    TikTokPublishStatus,
    MediaProcessingState,
    YouTubeProcessingStatus,
)

__all__ = [
    "OAUTH_STATE_MAX_AGE_SECONDS",
    "OAUTH_NONCE_BYTES",
    "PKCE_VERIFIER_BYTES",
    "TOKEN_REFRESH_BUFFER_SECONDS",
    "BATCH_REFRESH_DEFAULT_HOURS",
    "ENCRYPTION_KEY_BYTES",
    "ENCRYPTION_NONCE_BYTES",
    "ENCRYPTION_TAG_BYTES",
    "HTTP_TIMEOUT_SECONDS",
    "UPLOAD_TIMEOUT_SECONDS",
    "INSTAGRAM_POLL_INTERVAL_SECONDS",
    "INSTAGRAM_POLL_MAX_ATTEMPTS",
    "TIKTOK_CHUNK_THRESHOLD",
    "TIKTOK_CHUNK_SIZE",
    "TIKTOK_POLL_INTERVAL_SECONDS",
    "TIKTOK_POLL_MAX_ATTEMPTS",
    "TIKTOK_TITLE_MAX_LENGTH",
    "TWITTER_VIDEO_CHUNK_SIZE",
    "TWITTER_POLL_MAX_ATTEMPTS",
    "TWITTER_POLL_INTERVAL_SECONDS",
    "DISCORD_CONTENT_MAX_LENGTH",
    "DISCORD_EMBED_DESCRIPTION_MAX_LENGTH",
    "DISCORD_EMBED_TITLE_MAX_LENGTH",
    "DISCORD_EMBED_MAX_COUNT",
    "DISCORD_EMBED_COLOR",
    "REDDIT_TITLE_MAX_LENGTH",
    "REDDIT_USER_AGENT",
    "YOUTUBE_UPLOAD_URL",
    "YOUTUBE_THUMBNAIL_URL",
    "YOUTUBE_TITLE_MAX_LENGTH",
    "YOUTUBE_DEFAULT_CATEGORY",
    "YOUTUBE_DEFAULT_PRIVACY",
    "YOUTUBE_POLL_MAX_ATTEMPTS",
    "YOUTUBE_POLL_INTERVAL_SECONDS",
    "PINTEREST_TITLE_MAX_LENGTH",
    "PINTEREST_DESCRIPTION_MAX_LENGTH",
    "PINTEREST_ANALYTICS_DAYS",
    "LINKEDIN_API_VERSION",
    "LINKEDIN_RESTLI_PROTOCOL_VERSION",
    "DEFAULT_RATE_LIMIT_REQUESTS",
    "DEFAULT_RATE_LIMIT_WINDOW_SECONDS",
    "MediaKind",
    "ContentType",
    "CaptionPolicy",
    "ScheduleStatus",
    "ContainerStatus",
    "TikTokPublishStatus",
    "MediaProcessingState",
    "YouTubeProcessingStatus",
]
