"""Static per-platform capability table.

Each entry bundles the OAuth endpoints, API base URL, rate budget, content
limits and carousel constraints for one platform. The table is read-only;
PlatformRegistry wraps it for lookups.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..constants.status import CaptionPolicy

GRAPH_API_VERSION = "v21.0"
GRAPH_API_BASE = f"https://graph.facebook.com/{GRAPH_API_VERSION}"

MINUTE = 60.0
HOUR = 60 * MINUTE
DAY = 24 * HOUR


@dataclass(frozen=True)
class OAuthEndpoints:
    """OAuth2 endpoints and request conventions for one platform."""

    auth_url: str
    token_url: str
    scopes: tuple[str, ...]
    refresh_url: Optional[str] = None
    revoke_url: Optional[str] = None
    response_type: str = "code"
    grant_type: str = "authorization_code"
    pkce_required: bool = False
    client_id_param: str = "client_id"
    scope_separator: str = " "
    extra_auth_params: tuple[tuple[str, str], ...] = ()
    # "form": POST token + client credentials; "graph_delete": DELETE ?access_token=
    revoke_style: str = "form"
    # "body": credentials in the form body; "basic": HTTP basic auth
    token_auth: str = "body"
    # Graph exchanges a long-lived token instead of a refresh_token grant
    refresh_grant_type: str = "refresh_token"


@dataclass(frozen=True)
class ContentLimits:
    """Content constraints enforced by the validator."""

    max_caption_length: int
    max_hashtags: int
    max_video_seconds: int
    max_file_size_mb: float
    supported_formats: tuple[str, ...]
    caption_policy: CaptionPolicy = CaptionPolicy.REJECT


@dataclass(frozen=True)
class CarouselConstraints:
    """Multi-item post constraints."""

    min_items: int
    max_items: int
    allow_video: bool
    allow_mixed: bool
    per_item_caption: bool = False


@dataclass(frozen=True)
class RateLimitBudget:
    """Requests allowed per rolling window."""

    max_requests: int
    window_seconds: float


@dataclass(frozen=True)
class PlatformCapability:
    """Everything static the engine knows about one platform."""

    platform: str
    display_name: str
    api_base_url: str
    oauth: OAuthEndpoints
    limits: ContentLimits
    carousel: CarouselConstraints
    rate_limit: RateLimitBudget
    extra: dict[str, str] = field(default_factory=dict)

    @property
    def supports_refresh(self) -> bool:
        return self.oauth.refresh_url is not None


# =============================================================================
# SHARED BLOCKS
# =============================================================================

_GRAPH_OAUTH = dict(
    auth_url=f"https://www.facebook.com/{GRAPH_API_VERSION}/dialog/oauth",
    token_url=f"{GRAPH_API_BASE}/oauth/access_token",
    refresh_url=f"{GRAPH_API_BASE}/oauth/access_token",
    revoke_url=f"{GRAPH_API_BASE}/me/permissions",
    revoke_style="graph_delete",
    refresh_grant_type="fb_exchange_token",
)

_INSTAGRAM_LIMITS = ContentLimits(
    max_caption_length=2200,
    max_hashtags=30,
    max_video_seconds=90,
    max_file_size_mb=100,
    supported_formats=("mp4", "mov", "jpg", "jpeg", "png"),
)

_LINKEDIN_LIMITS = ContentLimits(
    max_caption_length=3000,
    max_hashtags=30,
    max_video_seconds=600,
    max_file_size_mb=200,
    supported_formats=("mp4", "mov", "avi", "jpg", "jpeg", "png"),
)

_LINKEDIN_OAUTH = dict(
    auth_url="https://www.linkedin.com/oauth/v2/authorization",
    token_url="https://www.linkedin.com/oauth/v2/accessToken",
    refresh_url="https://www.linkedin.com/oauth/v2/accessToken",
    revoke_url="https://www.linkedin.com/oauth/v2/revoke",
)

_MULTI_MEDIA_CAROUSEL = CarouselConstraints(min_items=2, max_items=10, allow_video=True, allow_mixed=True)
_SINGLE_ITEM_ONLY = CarouselConstraints(min_items=1, max_items=1, allow_video=True, allow_mixed=False)


# =============================================================================
# CAPABILITY TABLE
# =============================================================================

CAPABILITIES: dict[str, PlatformCapability] = {
    "instagram": PlatformCapability(
        platform="instagram",
        display_name="Instagram",
        api_base_url=GRAPH_API_BASE,
        oauth=OAuthEndpoints(
            scopes=(
                "instagram_basic",
                "instagram_content_publish",
                "instagram_manage_insights",
                "pages_read_engagement",
                "pages_show_list",
            ),
            **_GRAPH_OAUTH,
        ),
        limits=_INSTAGRAM_LIMITS,
        carousel=_MULTI_MEDIA_CAROUSEL,
        rate_limit=RateLimitBudget(200, HOUR),
    ),
    "tiktok": PlatformCapability(
        platform="tiktok",
        display_name="TikTok",
        api_base_url="https://open.tiktokapis.com/v2",
        oauth=OAuthEndpoints(
            auth_url="https://www.tiktok.com/v2/auth/authorize/",
            token_url="https://open.tiktokapis.com/v2/oauth/token/",
            refresh_url="https://open.tiktokapis.com/v2/oauth/token/",
            revoke_url="https://open.tiktokapis.com/v2/oauth/revoke/",
            scopes=(
                "user.info.basic",
                "user.info.profile",
                "user.info.stats",
                "video.publish",
                "video.upload",
                "video.list",
            ),
            pkce_required=True,
            client_id_param="client_key",
            scope_separator=",",
        ),
        limits=ContentLimits(
            max_caption_length=2200,
            max_hashtags=100,
            max_video_seconds=600,
            max_file_size_mb=287,
            supported_formats=("mp4", "mov", "webm"),
        ),
        carousel=_SINGLE_ITEM_ONLY,
        rate_limit=RateLimitBudget(100, MINUTE),
    ),
    "youtube": PlatformCapability(
        platform="youtube",
        display_name="YouTube",
        api_base_url="https://www.googleapis.com/youtube/v3",
        oauth=OAuthEndpoints(
            auth_url="https://accounts.google.com/o/oauth2/v2/auth",
            token_url="https://oauth2.googleapis.com/token",
            refresh_url="https://oauth2.googleapis.com/token",
            revoke_url="https://oauth2.googleapis.com/revoke",
            scopes=(
                "https://www.googleapis.com/auth/youtube.upload",
                "https://www.googleapis.com/auth/youtube",
                "https://www.googleapis.com/auth/youtube.readonly",
                "https://www.googleapis.com/auth/yt-analytics.readonly",
                "openid",
                "profile",
                "email",
            ),
            extra_auth_params=(("access_type", "offline"), ("prompt", "consent")),
        ),
        limits=ContentLimits(
            max_caption_length=5000,
            max_hashtags=60,
            max_video_seconds=43200,
            max_file_size_mb=256000,
            supported_formats=("mp4", "mov", "avi", "wmv", "flv", "webm"),
        ),
        carousel=_SINGLE_ITEM_ONLY,
        rate_limit=RateLimitBudget(10000, DAY),
    ),
    "twitter": PlatformCapability(
        platform="twitter",
        display_name="X (Twitter)",
        api_base_url="https://api.twitter.com/2",
        oauth=OAuthEndpoints(
            auth_url="https://x.com/i/oauth2/authorize",
            token_url="https://api.twitter.com/2/oauth2/token",
            refresh_url="https://api.twitter.com/2/oauth2/token",
            revoke_url="https://api.twitter.com/2/oauth2/revoke",
            scopes=("tweet.read", "tweet.write", "users.read", "offline.access", "media.write"),
            pkce_required=True,
            token_auth="basic",
        ),
        limits=ContentLimits(
            max_caption_length=280,
            max_hashtags=30,
            max_video_seconds=140,
            max_file_size_mb=512,
            supported_formats=("mp4", "mov", "jpg", "jpeg", "png", "gif"),
            caption_policy=CaptionPolicy.TRUNCATE,
        ),
        carousel=CarouselConstraints(min_items=1, max_items=4, allow_video=False, allow_mixed=False),
        rate_limit=RateLimitBudget(300, 15 * MINUTE),
        extra={"upload_url": "https://upload.twitter.com/1.1/media/upload.json"},
    ),
    "linkedin": PlatformCapability(
        platform="linkedin",
        display_name="LinkedIn",
        api_base_url="https://api.linkedin.com/v2",
        oauth=OAuthEndpoints(
            scopes=("openid", "profile", "email", "w_member_social"),
            **_LINKEDIN_OAUTH,
        ),
        limits=_LINKEDIN_LIMITS,
        carousel=CarouselConstraints(min_items=2, max_items=20, allow_video=False, allow_mixed=False),
        rate_limit=RateLimitBudget(100, DAY),
    ),
    "linkedin-org": PlatformCapability(
        platform="linkedin-org",
        display_name="LinkedIn Company Page",
        api_base_url="https://api.linkedin.com/v2",
        oauth=OAuthEndpoints(
            scopes=(
                "openid",
                "profile",
                "email",
                "w_organization_social",
                "r_organization_social",
                "rw_organization_admin",
            ),
            **_LINKEDIN_OAUTH,
        ),
        limits=_LINKEDIN_LIMITS,
        carousel=CarouselConstraints(min_items=2, max_items=20, allow_video=False, allow_mixed=False),
        rate_limit=RateLimitBudget(100, DAY),
        extra={"rest_base_url": "https://api.linkedin.com/rest"},
    ),
    "facebook": PlatformCapability(
        platform="facebook",
        display_name="Facebook",
        api_base_url=GRAPH_API_BASE,
        oauth=OAuthEndpoints(
            scopes=(
                "pages_manage_posts",
                "pages_read_engagement",
                "pages_show_list",
                "pages_manage_metadata",
                "pages_read_user_content",
                "publish_video",
            ),
            **_GRAPH_OAUTH,
        ),
        limits=ContentLimits(
            max_caption_length=63206,
            max_hashtags=30,
            max_video_seconds=14400,
            max_file_size_mb=10000,
            supported_formats=("mp4", "mov", "wmv", "avi", "jpg", "jpeg", "png"),
        ),
        carousel=_MULTI_MEDIA_CAROUSEL,
        rate_limit=RateLimitBudget(200, HOUR),
    ),
    "meta": PlatformCapability(
        platform="meta",
        display_name="Meta (Instagram + Facebook)",
        api_base_url=GRAPH_API_BASE,
        oauth=OAuthEndpoints(
            scopes=(
                "instagram_basic",
                "instagram_content_publish",
                "instagram_manage_insights",
                "pages_manage_posts",
                "pages_read_engagement",
                "pages_show_list",
            ),
            **_GRAPH_OAUTH,
        ),
        limits=_INSTAGRAM_LIMITS,
        carousel=_MULTI_MEDIA_CAROUSEL,
        rate_limit=RateLimitBudget(200, HOUR),
    ),
    "pinterest": PlatformCapability(
        platform="pinterest",
        display_name="Pinterest",
        api_base_url="https://api.pinterest.com/v5",
        oauth=OAuthEndpoints(
            auth_url="https://www.pinterest.com/oauth/",
            token_url="https://api.pinterest.com/v5/oauth/token",
            refresh_url="https://api.pinterest.com/v5/oauth/token",
            revoke_url="https://api.pinterest.com/v5/oauth/token/revoke",
            scopes=("boards:read", "pins:read", "pins:write", "user_accounts:read"),
            scope_separator=",",
            token_auth="basic",
        ),
        limits=ContentLimits(
            max_caption_length=500,
            max_hashtags=20,
            max_video_seconds=900,
            max_file_size_mb=2000,
            supported_formats=("mp4", "mov", "jpg", "jpeg", "png", "gif"),
            caption_policy=CaptionPolicy.TRUNCATE,
        ),
        carousel=CarouselConstraints(
            min_items=2, max_items=5, allow_video=False, allow_mixed=False, per_item_caption=True
        ),
        rate_limit=RateLimitBudget(1000, HOUR),
    ),
    "discord": PlatformCapability(
        platform="discord",
        display_name="Discord",
        api_base_url="https://discord.com/api/v10",
        oauth=OAuthEndpoints(
            auth_url="https://discord.com/api/oauth2/authorize",
            token_url="https://discord.com/api/oauth2/token",
            refresh_url="https://discord.com/api/oauth2/token",
            revoke_url="https://discord.com/api/oauth2/token/revoke",
            scopes=("identify", "guilds", "webhook.incoming"),
        ),
        limits=ContentLimits(
            max_caption_length=2000,
            max_hashtags=100,
            max_video_seconds=600,
            max_file_size_mb=100,
            supported_formats=("mp4", "mov", "webm", "jpg", "jpeg", "png", "gif"),
            caption_policy=CaptionPolicy.TRUNCATE,
        ),
        carousel=CarouselConstraints(min_items=1, max_items=10, allow_video=True, allow_mixed=True),
        rate_limit=RateLimitBudget(50, 1.0),
    ),
    "reddit": PlatformCapability(
        platform="reddit",
        display_name="Reddit",
        api_base_url="https://oauth.reddit.com",
        oauth=OAuthEndpoints(
            auth_url="https://www.reddit.com/api/v1/authorize",
            token_url="https://www.reddit.com/api/v1/access_token",
            refresh_url="https://www.reddit.com/api/v1/access_token",
            revoke_url="https://www.reddit.com/api/v1/revoke_token",
            scopes=("identity", "submit", "read", "mysubreddits"),
            extra_auth_params=(("duration", "permanent"),),
            token_auth="basic",
        ),
        limits=ContentLimits(
            max_caption_length=40000,
            max_hashtags=0,
            max_video_seconds=900,
            max_file_size_mb=20,
            supported_formats=("jpg", "jpeg", "png", "gif"),
        ),
        carousel=_SINGLE_ITEM_ONLY,
        rate_limit=RateLimitBudget(60, MINUTE),
    ),
}
