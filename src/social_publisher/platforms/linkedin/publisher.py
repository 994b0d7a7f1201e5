"""LinkedIn member publisher.

Posts to the authenticated member's feed through the v2 UGC API:

1. Resolve the member URN from /userinfo
2. Register an upload for each media item (feedshare image or video recipe)
3. PUT the bytes to the returned upload URL
4. Create the share on /ugcPosts
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import httpx

from ...constants.limits import LINKEDIN_RESTLI_PROTOCOL_VERSION, UPLOAD_TIMEOUT_SECONDS
from ...errors import PublishError
from ...publishing.models import (
    CarouselItem,
    CarouselRequest,
    CarouselResult,
    MediaDescriptor,
    PostAnalytics,
    PublishRequest,
    PublishResult,
)
from ..base import PlatformPublisher

UPLOAD_MECHANISM = "com.linkedin.digitalmedia.uploading.MediaUploadHttpRequest"
IMAGE_RECIPE = "urn:li:digitalmediaRecipe:feedshare-image"
VIDEO_RECIPE = "urn:li:digitalmediaRecipe:feedshare-video"
FEED_URL = "https://www.linkedin.com/feed/update"


def share_statistics(payload: dict[str, Any]) -> PostAnalytics:
    """Map an organizationalEntityShareStatistics response to PostAnalytics."""
    elements = payload.get("elements") or [{}]
    stats = elements[0].get("totalShareStatistics") or {}
    return PostAnalytics(
        views=stats.get("impressionCount", 0),
        likes=stats.get("likeCount", 0),
        comments=stats.get("commentCount", 0),
        shares=stats.get("shareCount", 0),
        reach=stats.get("uniqueImpressionsCount", 0),
        impressions=stats.get("impressionCount", 0),
        extra={"clicks": stats.get("clickCount", 0), "engagement": stats.get("engagement", 0)},
    )


class LinkedInPublisher(PlatformPublisher):
    """LinkedIn member feed publisher.

    Text posts need no upload; images and videos are registered as assets
    first. content.settings["visibility"] selects PUBLIC (default) or
    CONNECTIONS.
    """

    logger_name = "linkedin_api"

    @property
    def platform_name(self) -> str:
        return "linkedin"

    @property
    def api_url(self) -> str:
        return self.capability.api_base_url

    @property
    def _restli_headers(self) -> dict[str, str]:
        return {"X-Restli-Protocol-Version": LINKEDIN_RESTLI_PROTOCOL_VERSION}

    async def _person_urn(self, access_token: str) -> str:
        data = await self._request_json("GET", f"{self.api_url}/userinfo", token=access_token)
        if not data.get("sub"):
            raise PublishError("LinkedIn did not return a member id", platform=self.platform_name)
        return f"urn:li:person:{data['sub']}"

    async def _upload_asset(self, access_token: str, owner_urn: str, media: MediaDescriptor) -> str:
        """Register an upload, PUT the bytes, and return the asset URN."""
        registered = await self._request_json(
            "POST",
            f"{self.api_url}/assets",
            token=access_token,
            params={"action": "registerUpload"},
            headers=self._restli_headers,
            json={
                "registerUploadRequest": {
                    "recipes": [VIDEO_RECIPE if media.is_video else IMAGE_RECIPE],
                    "owner": owner_urn,
                    "serviceRelationships": [
                        {"relationshipType": "OWNER", "identifier": "urn:li:userGeneratedContent"}
                    ],
                }
            },
        )
        value = registered.get("value") or {}
        upload_url = (value.get("uploadMechanism") or {}).get(UPLOAD_MECHANISM, {}).get("uploadUrl")
        asset_urn = value.get("asset")
        if not upload_url or not asset_urn:
            raise PublishError("LinkedIn did not return an upload URL", platform=self.platform_name)

        body = await self._fetch_media_bytes(media.url)
        await self._request(
            "PUT",
            upload_url,
            token=access_token,
            content=body,
            headers={"Content-Type": media.mime_type or "application/octet-stream"},
            timeout=UPLOAD_TIMEOUT_SECONDS,
        )
        self._logger.info(f"Asset uploaded | {asset_urn}")
        return asset_urn

    async def _create_share(
        self,
        access_token: str,
        author_urn: str,
        text: str,
        category: str,
        assets: list[str],
        settings: dict[str, Any],
    ) -> str:
        share_content: dict[str, Any] = {
            "shareCommentary": {"text": text},
            "shareMediaCategory": category,
        }
        if assets:
            share_content["media"] = [{"status": "READY", "media": urn} for urn in assets]

        response = await self._request(
            "POST",
            f"{self.api_url}/ugcPosts",
            token=access_token,
            headers=self._restli_headers,
            json={
                "author": author_urn,
                "lifecycleState": "PUBLISHED",
                "specificContent": {"com.linkedin.ugc.ShareContent": share_content},
                "visibility": {
                    "com.linkedin.ugc.MemberNetworkVisibility": settings.get("visibility") or "PUBLIC"
                },
            },
        )
        post_id = self._post_id(response)
        if not post_id:
            raise PublishError("LinkedIn did not return a post id", platform=self.platform_name)
        return post_id

    @staticmethod
    def _post_id(response: httpx.Response) -> Optional[str]:
        header_id = response.headers.get("x-restli-id")
        if header_id:
            return header_id
        if response.content:
            try:
                return response.json().get("id")
            except ValueError:
                return None
        return None

    async def _publish(self, request: PublishRequest) -> PublishResult:
        access_token = await self._access_token(request.user_id)
        author_urn = await self._person_urn(access_token)
        text = self.fit_caption(self.format_caption(request.content))

        assets: list[str] = []
        category = "NONE"
        if request.media is not None:
            await self._emit_progress("upload", 20.0, "Uploading media to LinkedIn")
            assets.append(await self._upload_asset(access_token, author_urn, request.media))
            category = "VIDEO" if request.media.is_video else "IMAGE"

        await self._emit_progress("publishing", 80.0, "Creating LinkedIn post")
        post_id = await self._create_share(
            access_token, author_urn, text, category, assets, request.content.settings
        )
        return self._make_result(
            success=True,
            post_id=post_id,
            url=f"{FEED_URL}/{post_id}",
            author=author_urn,
        )

    async def _publish_carousel(self, request: CarouselRequest, items: list[CarouselItem]) -> CarouselResult:
        access_token = await self._access_token(request.user_id)
        author_urn = await self._person_urn(access_token)

        assets: list[str] = []
        for index, item in enumerate(items, 1):
            await self._emit_progress("upload", 70.0 * index / len(items), f"Uploading image {index}/{len(items)}")
            assets.append(await self._upload_asset(access_token, author_urn, item.to_media()))

        text = self.fit_caption(self.format_caption(request.content))
        post_id = await self._create_share(
            access_token, author_urn, text, "IMAGE", assets, request.content.settings
        )
        return self._make_carousel_result(
            success=True,
            post_id=post_id,
            url=f"{FEED_URL}/{post_id}",
            item_ids=assets,
        )

    async def get_analytics(self, post_id: str, user_id: str) -> PostAnalytics:
        access_token = await self._access_token(user_id)
        data = await self._request_json(
            "GET",
            f"{self.api_url}/organizationalEntityShareStatistics",
            token=access_token,
            params={"q": "organizationalEntity", "shares[0]": post_id},
            headers=self._restli_headers,
        )
        analytics = share_statistics(data)
        analytics.extra["post_id"] = post_id
        return analytics

    async def delete(self, post_id: str, user_id: str) -> bool:
        access_token = await self._access_token(user_id)
        await self._request(
            "DELETE",
            f"{self.api_url}/shares/{quote(post_id, safe='')}",
            token=access_token,
            headers=self._restli_headers,
        )
        return True
