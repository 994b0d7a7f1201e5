"""Facebook Page publisher.

Publishes to the first Page the user manages. The user token is only used
to list pages; every page call uses that page's own access token.

- Text:  {page}/feed    (message)
- Image: {page}/photos  (url, caption)
- Video: {page}/videos  (file_url, description)
- Carousel: unpublished photos and videos, then {page}/feed with attached_media
"""

from __future__ import annotations

import json
from typing import Any

from ...errors import PublishError
from ...publishing.models import (
    CarouselItem,
    CarouselRequest,
    CarouselResult,
    PostAnalytics,
    PublishRequest,
    PublishResult,
)
from ..graph import GraphPublisher, insight_values

INSIGHT_METRICS = (
    "post_impressions,post_impressions_unique,post_engaged_users,"
    "post_reactions_by_type_total,post_clicks"
)
POST_URL = "https://www.facebook.com"


def reactions(payload: dict[str, Any]) -> dict[str, int]:
    """Reaction counts by type from an insights response."""
    for entry in payload.get("data") or []:
        if entry.get("name") == "post_reactions_by_type_total":
            points = entry.get("values") or [{}]
            value = points[-1].get("value")
            return value if isinstance(value, dict) else {}
    return {}


class FacebookPublisher(GraphPublisher):
    """Facebook Page publisher.

    Usage:
        publisher = FacebookPublisher(registry, token_manager)
        result = await publisher.publish(request)
    """

    logger_name = "facebook_api"

    @property
    def platform_name(self) -> str:
        return "facebook"

    async def _page(self, user_token: str) -> tuple[str, str]:
        """Return (page_id, page_access_token) for the first managed page."""
        data = await self._graph("GET", "me/accounts", user_token, params={"fields": "id,name,access_token"})
        pages = data.get("data") or []
        if not pages or not pages[0].get("access_token"):
            raise PublishError(
                "No Facebook Page found. You need to manage a Page to publish.",
                platform=self.platform_name,
            )
        page = pages[0]
        self._logger.info(f"Publishing to page | {page.get('id')} | {page.get('name', '')}")
        return str(page["id"]), page["access_token"]

    async def _publish(self, request: PublishRequest) -> PublishResult:
        user_token = await self._access_token(request.user_id)
        page_id, page_token = await self._page(user_token)
        text = self.format_caption(request.content)
        media = request.media

        if media is None:
            data = await self._graph("POST", f"{page_id}/feed", page_token, data={"message": text})
            post_id = data.get("id")
        elif media.is_video:
            await self._emit_progress("upload", 30.0, "Uploading video to Facebook")
            data = await self._graph(
                "POST",
                f"{page_id}/videos",
                page_token,
                data={"file_url": media.url, "description": text},
            )
            post_id = data.get("id")
        else:
            data = await self._graph(
                "POST",
                f"{page_id}/photos",
                page_token,
                data={"url": media.url, "caption": text},
            )
            post_id = data.get("post_id") or data.get("id")

        if not post_id:
            raise PublishError("Facebook did not return a post id", platform=self.platform_name)
        return self._make_result(
            success=True,
            post_id=str(post_id),
            url=f"{POST_URL}/{post_id}",
            page_id=page_id,
        )

    async def _upload_unpublished(self, page_id: str, page_token: str, item: CarouselItem) -> str:
        """Upload one carousel item without publishing it; return its media id."""
        if item.is_video:
            path, data = f"{page_id}/videos", {"file_url": item.url, "published": "false"}
        else:
            path, data = f"{page_id}/photos", {"url": item.url, "published": "false"}
        result = await self._graph("POST", path, page_token, data=data)
        if not result.get("id"):
            kind = "video" if item.is_video else "photo"
            raise PublishError(f"Facebook did not return a {kind} id", platform=self.platform_name)
        return str(result["id"])

    async def _publish_carousel(self, request: CarouselRequest, items: list[CarouselItem]) -> CarouselResult:
        user_token = await self._access_token(request.user_id)
        page_id, page_token = await self._page(user_token)

        media_ids: list[str] = []
        for index, item in enumerate(items, 1):
            await self._emit_progress("upload", 70.0 * index / len(items), f"Uploading item {index}/{len(items)}")
            media_ids.append(await self._upload_unpublished(page_id, page_token, item))

        data = await self._graph(
            "POST",
            f"{page_id}/feed",
            page_token,
            data={
                "message": self.format_caption(request.content),
                "attached_media": json.dumps([{"media_fbid": media_id} for media_id in media_ids]),
            },
        )
        post_id = data.get("id")
        if not post_id:
            raise PublishError("Facebook did not return a post id", platform=self.platform_name)
        return self._make_carousel_result(
            success=True,
            post_id=str(post_id),
            url=f"{POST_URL}/{post_id}",
            item_ids=media_ids,
            page_id=page_id,
        )

    async def get_analytics(self, post_id: str, user_id: str) -> PostAnalytics:
        user_token = await self._access_token(user_id)
        _, page_token = await self._page(user_token)

        insights = await self._graph("GET", f"{post_id}/insights", page_token, params={"metric": INSIGHT_METRICS})
        engagement = await self._graph(
            "GET",
            post_id,
            page_token,
            params={"fields": "shares,comments.summary(true)"},
        )
        values = insight_values(insights)
        return PostAnalytics(
            likes=reactions(insights).get("like", 0),
            comments=((engagement.get("comments") or {}).get("summary") or {}).get("total_count", 0),
            shares=(engagement.get("shares") or {}).get("count", 0),
            reach=values.get("post_impressions_unique", 0),
            impressions=values.get("post_impressions", 0),
            extra={
                "post_id": post_id,
                "engaged_users": values.get("post_engaged_users", 0),
                "clicks": values.get("post_clicks", 0),
            },
        )

    async def delete(self, post_id: str, user_id: str) -> bool:
        user_token = await self._access_token(user_id)
        _, page_token = await self._page(user_token)
        data = await self._graph("DELETE", post_id, page_token)
        return bool(data.get("success", True))
