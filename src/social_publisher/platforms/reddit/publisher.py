"""Reddit publisher.

Submits posts with form-encoded POSTs to /api/submit. The target
subreddit comes from content.settings["subreddit"] or from an "r/name"
mention in the caption, which is then removed from the post text.

Reddit reports validation failures with HTTP 200 and a non-empty
json.errors list of [code, message, field] triples.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from ...constants.limits import REDDIT_TITLE_MAX_LENGTH, REDDIT_USER_AGENT
from ...errors import PublishError
from ...publishing.models import MediaDescriptor, PostAnalytics, PublishRequest, PublishResult
from ..base import PlatformPublisher

SUBREDDIT_PATTERN = re.compile(r"(?<![\w/])r/([A-Za-z0-9_]+)")
SUBREDDIT_MENTION = re.compile(r"\s*(?<![\w/])r/[A-Za-z0-9_]+\s*")
IMAGE_URL_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif)$", re.IGNORECASE)
DEFAULT_TITLE = "Untitled post"


def extract_subreddit(text: str) -> Optional[str]:
    match = SUBREDDIT_PATTERN.search(text or "")
    return match.group(1) if match else None


def remove_subreddit(text: str) -> str:
    return SUBREDDIT_MENTION.sub(" ", text or "").strip()


def fullname(post_id: str) -> str:
    """Reddit link fullname (t3_ prefix)."""
    return post_id if post_id.startswith("t3_") else f"t3_{post_id}"


def submission_kind(media: Optional[MediaDescriptor], settings: dict[str, Any]) -> str:
    """Pick the submission kind: self, link or image."""
    if settings.get("post_type"):
        return str(settings["post_type"])
    if media is None:
        return "self"
    path = media.url.split("?", 1)[0]
    if media.mime_type.startswith("image/") or IMAGE_URL_PATTERN.search(path):
        return "image"
    return "link"


class RedditPublisher(PlatformPublisher):
    """Reddit submission publisher.

    Supported settings: subreddit, title, post_type (self/link/image),
    nsfw, spoiler, flair_id.
    """

    logger_name = "reddit_api"

    @property
    def platform_name(self) -> str:
        return "reddit"

    @property
    def api_url(self) -> str:
        return self.capability.api_base_url

    @property
    def _headers(self) -> dict[str, str]:
        return {"User-Agent": REDDIT_USER_AGENT}

    def build_submission(self, request: PublishRequest) -> dict[str, str]:
        """Form fields for /api/submit.

        Raises:
            PublishError: No subreddit in settings or caption.
        """
        settings = request.content.settings
        caption = self.format_caption(request.content)

        subreddit = settings.get("subreddit") or extract_subreddit(caption)
        if not subreddit:
            raise PublishError(
                "No subreddit specified. Include r/subredditname in your caption or set subreddit in settings.",
                platform=self.platform_name,
            )
        subreddit = str(subreddit).removeprefix("r/")

        text = remove_subreddit(caption)
        title = settings.get("title") or text[:REDDIT_TITLE_MAX_LENGTH] or DEFAULT_TITLE

        form = {
            "sr": subreddit,
            "title": str(title)[:REDDIT_TITLE_MAX_LENGTH],
            "api_type": "json",
        }

        kind = submission_kind(request.media, settings)
        if kind in ("image", "link") and request.media is not None:
            form["kind"] = kind
            form["url"] = request.media.url
        else:
            form["kind"] = "self"
            form["text"] = text

        if settings.get("nsfw"):
            form["nsfw"] = "true"
        if settings.get("spoiler"):
            form["spoiler"] = "true"
        if settings.get("flair_id"):
            form["flair_id"] = str(settings["flair_id"])
        return form

    async def _publish(self, request: PublishRequest) -> PublishResult:
        form = self.build_submission(request)
        access_token = await self._access_token(request.user_id)

        data = await self._request_json(
            "POST",
            f"{self.api_url}/api/submit",
            token=access_token,
            data=form,
            headers=self._headers,
        )
        result = data.get("json") or {}
        errors = result.get("errors") or []
        if errors:
            message = ", ".join(str(e[1] or e[0]) if len(e) > 1 else str(e[0]) for e in errors)
            raise PublishError(f"Reddit error: {message}", platform=self.platform_name, detail=errors)

        post = result.get("data") or {}
        return self._make_result(
            success=True,
            post_id=post.get("id") or post.get("name"),
            url=post.get("url") or f"https://www.reddit.com/r/{form['sr']}",
            subreddit=form["sr"],
            kind=form["kind"],
        )

    async def list_subscribed_subreddits(self, user_id: str) -> list[dict[str, Any]]:
        """Subreddits the user subscribes to (name, title, subscribers)."""
        access_token = await self._access_token(user_id)
        data = await self._request_json(
            "GET",
            f"{self.api_url}/subreddits/mine/subscriber",
            token=access_token,
            params={"limit": 100},
            headers=self._headers,
        )
        return [
            {
                "name": child["data"].get("display_name"),
                "title": child["data"].get("title"),
                "subscribers": child["data"].get("subscribers", 0),
            }
            for child in (data.get("data") or {}).get("children") or []
        ]

    async def get_analytics(self, post_id: str, user_id: str) -> PostAnalytics:
        access_token = await self._access_token(user_id)
        data = await self._request_json(
            "GET",
            f"{self.api_url}/api/info",
            token=access_token,
            params={"id": fullname(post_id)},
            headers=self._headers,
        )
        children = (data.get("data") or {}).get("children") or []
        if not children:
            raise PublishError(f"Reddit post not found: {post_id}", platform=self.platform_name)

        post = children[0].get("data") or {}
        return PostAnalytics(
            likes=post.get("ups", 0),
            comments=post.get("num_comments", 0),
            extra={"post_id": post_id, "score": post.get("score", 0), "upvote_ratio": post.get("upvote_ratio")},
        )

    async def delete(self, post_id: str, user_id: str) -> bool:
        access_token = await self._access_token(user_id)
        await self._request(
            "POST",
            f"{self.api_url}/api/del",
            token=access_token,
            data={"id": fullname(post_id)},
            headers=self._headers,
        )
        return True
