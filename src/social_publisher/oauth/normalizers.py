"""Per-platform normalization of token and profile responses.

Every platform returns its own JSON shape. The functions here turn those
shapes into TokenSet and UserProfile so no raw dict leaves the OAuth
service. Lookups are keyed by platform; platforms without a dedicated
normalizer use the standard OAuth2 shape.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from ..errors import ProfileFetchError, TokenExchangeError
from ..utils.timestamps import expires_at_from
from .models import TokenSet, UserProfile

TokenNormalizer = Callable[[str, dict[str, Any], datetime], TokenSet]
ProfileNormalizer = Callable[[dict[str, Any]], UserProfile]

GRAPH_PLATFORMS = frozenset({"instagram", "facebook", "meta"})


def _scope_string(value: Any) -> Optional[str]:
    """Scopes arrive as a space/comma separated string or a list."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value if v)
    return str(value) or None


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# =============================================================================
# TOKENS
# =============================================================================

def _standard_tokens(platform: str, data: dict[str, Any], now: datetime) -> TokenSet:
    access_token = data.get("access_token")
    if not access_token:
        detail = data.get("error_description") or data.get("error") or "No access token in response"
        raise TokenExchangeError(platform, str(detail))
    return TokenSet(
        access_token=access_token,
        refresh_token=data.get("refresh_token") or None,
        expires_at=expires_at_from(data.get("expires_in"), now),
        token_type=data.get("token_type") or "Bearer",
        scope=_scope_string(data.get("scope")),
    )


def _graph_tokens(platform: str, data: dict[str, Any], now: datetime) -> TokenSet:
    # Graph has no refresh token; the long-lived token is re-exchanged
    tokens = _standard_tokens(platform, data, now)
    tokens.refresh_token = tokens.refresh_token or tokens.access_token
    return tokens


def _tiktok_tokens(platform: str, data: dict[str, Any], now: datetime) -> TokenSet:
    body = data["data"] if isinstance(data.get("data"), dict) else data
    tokens = _standard_tokens(platform, body, now)
    if body.get("open_id"):
        tokens.extras["open_id"] = body["open_id"]
    if body.get("refresh_expires_in"):
        tokens.extras["refresh_expires_in"] = body["refresh_expires_in"]
    return tokens


def _discord_tokens(platform: str, data: dict[str, Any], now: datetime) -> TokenSet:
    tokens = _standard_tokens(platform, data, now)
    webhook = data.get("webhook")
    if isinstance(webhook, dict) and webhook.get("url"):
        tokens.extras["webhook_url"] = webhook["url"]
        for key in ("id", "channel_id", "guild_id", "name"):
            if webhook.get(key):
                tokens.extras[f"webhook_{key}"] = webhook[key]
    return tokens


_TOKEN_NORMALIZERS: dict[str, TokenNormalizer] = {
    "instagram": _graph_tokens,
    "facebook": _graph_tokens,
    "meta": _graph_tokens,
    "tiktok": _tiktok_tokens,
    "discord": _discord_tokens,
}


def normalize_tokens(platform: str, data: dict[str, Any], now: datetime) -> TokenSet:
    """Normalize a token endpoint response.

    Args:
        platform: Platform identifier.
        data: Parsed JSON body.
        now: Reference time for expires_in.

    Returns:
        TokenSet with an absolute expires_at (None when there is no expiry).

    Raises:
        TokenExchangeError: If the response carries no access token.
    """
    if not isinstance(data, dict):
        raise TokenExchangeError(platform, "Token response is not a JSON object")
    normalizer = _TOKEN_NORMALIZERS.get(platform, _standard_tokens)
    return normalizer(platform, data, now)


# =============================================================================
# PROFILES
# =============================================================================

def _instagram_profile(account: dict[str, Any]) -> UserProfile:
    return UserProfile(
        platform_user_id=str(account["id"]),
        username=account.get("username"),
        display_name=account.get("name") or account.get("username"),
        avatar_url=account.get("profile_picture_url"),
        followers=_int_or_none(account.get("followers_count")),
        following=_int_or_none(account.get("follows_count")),
        metadata={k: account[k] for k in ("page_id", "page_name") if account.get(k)},
    )


def _facebook_profile(data: dict[str, Any]) -> UserProfile:
    picture = ((data.get("picture") or {}).get("data") or {}).get("url")
    return UserProfile(
        platform_user_id=str(data["id"]),
        username=data.get("name"),
        display_name=data.get("name"),
        avatar_url=picture,
        email=data.get("email"),
    )


def _tiktok_profile(data: dict[str, Any]) -> UserProfile:
    user = (data.get("data") or {}).get("user") or {}
    return UserProfile(
        platform_user_id=str(user.get("open_id") or user["union_id"]),
        username=user.get("username") or user.get("display_name"),
        display_name=user.get("display_name"),
        avatar_url=user.get("avatar_url"),
        followers=_int_or_none(user.get("follower_count")),
        following=_int_or_none(user.get("following_count")),
        metadata={"union_id": user["union_id"]} if user.get("union_id") else {},
    )


def _twitter_profile(data: dict[str, Any]) -> UserProfile:
    user = data.get("data") or {}
    metrics = user.get("public_metrics") or {}
    return UserProfile(
        platform_user_id=str(user["id"]),
        username=user.get("username"),
        display_name=user.get("name"),
        avatar_url=user.get("profile_image_url"),
        followers=_int_or_none(metrics.get("followers_count")),
        following=_int_or_none(metrics.get("following_count")),
    )


def _linkedin_profile(data: dict[str, Any]) -> UserProfile:
    name = data.get("name") or " ".join(
        p for p in (data.get("given_name"), data.get("family_name")) if p
    )
    return UserProfile(
        platform_user_id=str(data["sub"]),
        username=data.get("email") or name or None,
        display_name=name or None,
        avatar_url=data.get("picture"),
        email=data.get("email"),
    )


def _youtube_profile(data: dict[str, Any]) -> UserProfile:
    items = data.get("items") or []
    if not items:
        raise ProfileFetchError("youtube", "No YouTube channel found for this account")
    channel = items[0]
    snippet = channel.get("snippet") or {}
    stats = channel.get("statistics") or {}
    thumbnails = snippet.get("thumbnails") or {}
    avatar = (thumbnails.get("default") or thumbnails.get("medium") or {}).get("url")
    return UserProfile(
        platform_user_id=str(channel["id"]),
        username=snippet.get("customUrl") or snippet.get("title"),
        display_name=snippet.get("title"),
        avatar_url=avatar,
        followers=_int_or_none(stats.get("subscriberCount")),
        metadata={"video_count": _int_or_none(stats.get("videoCount"))},
    )


def _pinterest_profile(data: dict[str, Any]) -> UserProfile:
    return UserProfile(
        platform_user_id=str(data.get("id") or data["username"]),
        username=data.get("username"),
        display_name=data.get("business_name") or data.get("username"),
        avatar_url=data.get("profile_image"),
        followers=_int_or_none(data.get("follower_count")),
        following=_int_or_none(data.get("following_count")),
        metadata={"account_type": data["account_type"]} if data.get("account_type") else {},
    )


def _discord_profile(data: dict[str, Any]) -> UserProfile:
    user_id = str(data["id"])
    avatar = data.get("avatar")
    return UserProfile(
        platform_user_id=user_id,
        username=data.get("username"),
        display_name=data.get("global_name") or data.get("username"),
        avatar_url=f"https://cdn.discordapp.com/avatars/{user_id}/{avatar}.png" if avatar else None,
        email=data.get("email"),
    )


def _reddit_profile(data: dict[str, Any]) -> UserProfile:
    icon = data.get("icon_img") or data.get("snoovatar_img")
    subreddit = data.get("subreddit") or {}
    return UserProfile(
        platform_user_id=str(data["id"]),
        username=data.get("name"),
        display_name=subreddit.get("title") or data.get("name"),
        # Reddit HTML-escapes query strings in avatar URLs
        avatar_url=icon.replace("&amp;", "&") if icon else None,
        followers=_int_or_none(subreddit.get("subscribers")),
        metadata={"karma": _int_or_none(data.get("total_karma"))},
    )


_PROFILE_NORMALIZERS: dict[str, ProfileNormalizer] = {
    "instagram": _instagram_profile,
    "meta": _instagram_profile,
    "facebook": _facebook_profile,
    "tiktok": _tiktok_profile,
    "twitter": _twitter_profile,
    "linkedin": _linkedin_profile,
    "linkedin-org": _linkedin_profile,
    "youtube": _youtube_profile,
    "pinterest": _pinterest_profile,
    "discord": _discord_profile,
    "reddit": _reddit_profile,
}


def normalize_profile(platform: str, data: dict[str, Any]) -> UserProfile:
    """Normalize a profile response.

    Raises:
        ProfileFetchError: If the shape is unknown or lacks an account id.
    """
    normalizer = _PROFILE_NORMALIZERS.get(platform)
    if normalizer is None:
        raise ProfileFetchError(platform, "No profile normalizer for platform")
    if not isinstance(data, dict):
        raise ProfileFetchError(platform, "Profile response is not a JSON object")
    try:
        return normalizer(data)
    except (KeyError, TypeError) as e:
        raise ProfileFetchError(platform, f"Unexpected profile response: missing {e}") from e
