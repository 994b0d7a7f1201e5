"""Limit constants for the social publisher.

This module contains the timing and sizing constraints shared across the
credential layer and the platform adapters:
- OAuth state lifetime and token refresh buffers
- Polling intervals and attempt ceilings for async publish flows
- Upload chunk sizes
- Per-platform text caps applied inside payloads

MODIFICATION GUIDE:
------------------
- POLL_* values bound how long a single platform can keep a publish busy
- *_CHUNK_* values must match the platform's upload documentation
- Caption limits per platform live in platforms/capabilities.py, not here
"""

from typing import Final

# =============================================================================
# OAUTH / CREDENTIALS
# =============================================================================

OAUTH_STATE_MAX_AGE_SECONDS: Final[int] = 10 * 60
"""Signed OAuth state is rejected once it is this old."""

OAUTH_NONCE_BYTES: Final[int] = 16
"""Random bytes in the state nonce (hex encoded)."""

PKCE_VERIFIER_BYTES: Final[int] = 32
"""Random bytes behind a PKCE code verifier (43 base64url chars)."""

TOKEN_REFRESH_BUFFER_SECONDS: Final[int] = 5 * 60
"""Tokens expiring within this window are refreshed before use."""

BATCH_REFRESH_DEFAULT_HOURS: Final[float] = 1.0
"""Default look-ahead for the scheduled batch refresh."""


# =============================================================================
# TOKEN ENCRYPTION
# =============================================================================

ENCRYPTION_KEY_BYTES: Final[int] = 32
"""AES-256 key length."""

ENCRYPTION_NONCE_BYTES: Final[int] = 12
"""GCM nonce length, fresh per encryption."""

ENCRYPTION_TAG_BYTES: Final[int] = 16
"""GCM authentication tag length."""


# =============================================================================
# HTTP
# =============================================================================

HTTP_TIMEOUT_SECONDS: Final[float] = 60.0
"""Default timeout for platform API calls."""

UPLOAD_TIMEOUT_SECONDS: Final[float] = 300.0
"""Timeout for binary uploads (large chunks)."""


# =============================================================================
# INSTAGRAM CONTAINER POLLING
# =============================================================================

INSTAGRAM_POLL_INTERVAL_SECONDS: Final[float] = 2.0
"""Delay between container status checks."""

INSTAGRAM_POLL_MAX_ATTEMPTS: Final[int] = 60
"""About two minutes of polling before giving up."""


# =============================================================================
# TIKTOK UPLOAD
# =============================================================================

TIKTOK_CHUNK_THRESHOLD: Final[int] = 10 * 1024 * 1024
"""Files at or below this size are uploaded as a single chunk."""

TIKTOK_CHUNK_SIZE: Final[int] = 10 * 1024 * 1024
"""Fixed chunk size above the threshold."""

TIKTOK_POLL_INTERVAL_SECONDS: Final[float] = 5.0
"""Delay between publish status checks."""

TIKTOK_POLL_MAX_ATTEMPTS: Final[int] = 60
"""Attempt ceiling for publish status polling."""

TIKTOK_TITLE_MAX_LENGTH: Final[int] = 150
"""TikTok post title limit."""


# =============================================================================
# TWITTER / X
# =============================================================================

TWITTER_VIDEO_CHUNK_SIZE: Final[int] = 5 * 1024 * 1024
"""APPEND chunk size for chunked video upload."""

TWITTER_POLL_MAX_ATTEMPTS: Final[int] = 30
"""Attempt ceiling for media processing status."""

TWITTER_POLL_INTERVAL_SECONDS: Final[float] = 5.0
"""Fallback delay when the API omits check_after_secs."""


# =============================================================================
# DISCORD
# =============================================================================

DISCORD_CONTENT_MAX_LENGTH: Final[int] = 2000
"""Plain message content limit."""

DISCORD_EMBED_DESCRIPTION_MAX_LENGTH: Final[int] = 4096
"""Embed description limit."""

DISCORD_EMBED_TITLE_MAX_LENGTH: Final[int] = 256
"""Embed title limit."""

DISCORD_EMBED_MAX_COUNT: Final[int] = 10
"""Embeds per webhook message."""

DISCORD_EMBED_COLOR: Final[int] = 0x5865F2
"""Discord blurple."""


# =============================================================================
# REDDIT
# =============================================================================

REDDIT_TITLE_MAX_LENGTH: Final[int] = 300
"""Submission title limit."""

REDDIT_USER_AGENT: Final[str] = "social-publisher/0.1"
"""Reddit rejects requests without a descriptive User-Agent."""


# =============================================================================
# YOUTUBE
# =============================================================================

YOUTUBE_UPLOAD_URL: Final[str] = "https://www.googleapis.com/upload/youtube/v3/videos"
"""Resumable upload session endpoint."""

YOUTUBE_THUMBNAIL_URL: Final[str] = "https://www.googleapis.com/upload/youtube/v3/thumbnails/set"
"""Custom thumbnail upload endpoint."""

YOUTUBE_TITLE_MAX_LENGTH: Final[int] = 100
"""Video title limit."""

YOUTUBE_DEFAULT_CATEGORY: Final[str] = "22"
"""People & Blogs."""

YOUTUBE_DEFAULT_PRIVACY: Final[str] = "private"
"""Uploads stay private unless the caller picks a visibility."""

YOUTUBE_POLL_MAX_ATTEMPTS: Final[int] = 30
"""Attempt ceiling for video processing status."""

YOUTUBE_POLL_INTERVAL_SECONDS: Final[float] = 10.0
"""Delay between processing status checks."""


# =============================================================================
# PINTEREST
# =============================================================================

PINTEREST_TITLE_MAX_LENGTH: Final[int] = 100
"""Pin title limit."""

PINTEREST_DESCRIPTION_MAX_LENGTH: Final[int] = 500
"""Pin description and alt text limit."""

PINTEREST_ANALYTICS_DAYS: Final[int] = 30
"""Look-back window for pin analytics."""


# =============================================================================
# LINKEDIN
# =============================================================================

LINKEDIN_API_VERSION: Final[str] = "202503"
"""Value of the LinkedIn-Version header for the REST API."""

LINKEDIN_RESTLI_PROTOCOL_VERSION: Final[str] = "2.0.0"
"""Value of the X-Restli-Protocol-Version header."""


# =============================================================================
# RATE LIMITING
# =============================================================================

DEFAULT_RATE_LIMIT_REQUESTS: Final[int] = 60
"""Budget for endpoints without a platform budget."""

DEFAULT_RATE_LIMIT_WINDOW_SECONDS: Final[float] = 60.0
"""Window for endpoints without a platform budget."""
