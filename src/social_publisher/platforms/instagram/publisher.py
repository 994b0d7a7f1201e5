"""Instagram publisher implementation.

Implements PlatformPublisher on top of the Instagram Graph API
container workflow:

1. Resolve the Instagram Business account linked to a Facebook Page
2. Create a media container (image, reel, or story)
3. Poll the container until status_code is FINISHED
4. Publish the container (posts and reels; stories go live on creation)

Carousels create one child container per item, a CAROUSEL parent that
references them, then publish the parent.

API Reference:
https://developers.facebook.com/docs/instagram-platform/instagram-graph-api/content-publishing
"""

from __future__ import annotations

from typing import Any, Optional

from ...constants.limits import INSTAGRAM_POLL_INTERVAL_SECONDS, INSTAGRAM_POLL_MAX_ATTEMPTS
from ...constants.status import ContainerStatus, ContentType
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
from ..graph import GraphPublisher, insight_values

INSIGHT_METRICS = "impressions,reach,likes,comments,saved,shares,video_views"
PERMALINK_BASE = "https://www.instagram.com"


class InstagramPublisher(GraphPublisher):
    """Instagram implementation of PlatformPublisher.

    Usage:
        publisher = InstagramPublisher(registry, token_manager)
        result = await publisher.publish(
            PublishRequest(
                user_id="u1",
                content=ContentPayload(caption="Hello"),
                media=MediaDescriptor(url="https://cdn.example.com/reel.mp4"),
            )
        )
        if result.success:
            print(f"Published: {result.url}")
    """

    logger_name = "instagram_api"

    @property
    def platform_name(self) -> str:
        return "instagram"

    # =========================================================================
    # ACCOUNT
    # =========================================================================

    async def _business_account(self, access_token: str) -> str:
        """Find the Instagram Business account behind the user's pages."""
        data = await self._graph(
            "GET",
            "me/accounts",
            access_token,
            params={"fields": "instagram_business_account"},
        )
        for page in data.get("data") or []:
            account = page.get("instagram_business_account") or {}
            if account.get("id"):
                return str(account["id"])
        raise PublishError("No Instagram Business account found", platform=self.platform_name)

    # =========================================================================
    # CONTAINERS
    # =========================================================================

    @staticmethod
    def _container_params(media: MediaDescriptor, caption: str, is_story: bool) -> dict[str, Any]:
        """Build container creation params for a single post.

        Videos always go out as reels; an image with the story flag becomes
        a story, which carries no caption.
        """
        if media.is_video:
            return {
                "media_type": "REELS",
                "video_url": media.url,
                "share_to_feed": "true",
                "caption": caption,
            }
        if is_story:
            return {"media_type": "STORIES", "image_url": media.url}
        return {"image_url": media.url, "caption": caption}

    async def _create_container(self, account_id: str, access_token: str, params: dict[str, Any]) -> str:
        data = await self._graph("POST", f"{account_id}/media", access_token, params=params)
        container_id = data.get("id")
        if not container_id:
            raise PublishError("Instagram did not return a container id", platform=self.platform_name)
        self._logger.info(f"Container created | {container_id} | {params.get('media_type', 'IMAGE')}")
        return str(container_id)

    async def _wait_for_container(self, container_id: str, access_token: str) -> str:
        """Poll a container until FINISHED.

        Raises:
            PublishError: Container reached ERROR or EXPIRED.
            PublishTimeoutError: Still in progress after the attempt ceiling.
        """

        async def check() -> Optional[str]:
            data = await self._graph(
                "GET",
                container_id,
                access_token,
                params={"fields": "status_code,status"},
            )
            status = str(data.get("status_code", "")).upper()
            if status == ContainerStatus.FINISHED.value:
                return status
            if status in (ContainerStatus.ERROR.value, ContainerStatus.EXPIRED.value):
                detail = data.get("status") or status
                raise PublishError(
                    f"Instagram container {status.lower()}: {detail}",
                    platform=self.platform_name,
                    detail=data,
                )
            return None

        return await self._poll(
            check,
            max_attempts=INSTAGRAM_POLL_MAX_ATTEMPTS,
            interval=INSTAGRAM_POLL_INTERVAL_SECONDS,
            job_id=container_id,
        )

    async def _publish_container(self, account_id: str, container_id: str, access_token: str) -> str:
        data = await self._graph(
            "POST",
            f"{account_id}/media_publish",
            access_token,
            params={"creation_id": container_id},
        )
        media_id = data.get("id")
        if not media_id:
            raise PublishError("Instagram did not return a media id", platform=self.platform_name)
        return str(media_id)

    # =========================================================================
    # PUBLISH
    # =========================================================================

    async def _publish(self, request: PublishRequest) -> PublishResult:
        media = request.media
        if media is None:
            raise PublishError("Instagram requires media", platform=self.platform_name)

        access_token = await self._access_token(request.user_id)
        account_id = await self._business_account(access_token)

        is_story = request.content_type == ContentType.STORY and not media.is_video
        caption = self.format_caption(request.content)

        await self._emit_progress("container", 10.0, "Creating media container")
        container_id = await self._create_container(
            account_id, access_token, self._container_params(media, caption, is_story)
        )

        await self._emit_progress("processing", 40.0, "Waiting for Instagram to process media")
        await self._wait_for_container(container_id, access_token)

        if is_story:
            await self._emit_progress("done", 100.0, "Story is live")
            return self._make_result(
                success=True,
                post_id=container_id,
                url=f"{PERMALINK_BASE}/stories/",
                media_type="STORIES",
            )

        await self._emit_progress("publishing", 80.0, "Publishing")
        media_id = await self._publish_container(account_id, container_id, access_token)
        path = "reel" if media.is_video else "p"

        await self._emit_progress("done", 100.0, "Published")
        return self._make_result(
            success=True,
            post_id=media_id,
            url=f"{PERMALINK_BASE}/{path}/{media_id}",
            container_id=container_id,
        )

    async def _publish_carousel(self, request: CarouselRequest, items: list[CarouselItem]) -> CarouselResult:
        access_token = await self._access_token(request.user_id)
        account_id = await self._business_account(access_token)

        child_ids: list[str] = []
        for index, item in enumerate(items, 1):
            params: dict[str, Any] = {"is_carousel_item": "true"}
            if item.is_video:
                params.update({"media_type": "REELS", "video_url": item.url})
            else:
                params["image_url"] = item.url

            await self._emit_progress(
                "container",
                60.0 * index / len(items),
                f"Creating container {index}/{len(items)}",
            )
            child_id = await self._create_container(account_id, access_token, params)
            if item.is_video:
                await self._wait_for_container(child_id, access_token)
            child_ids.append(child_id)

        carousel_id = await self._create_container(
            account_id,
            access_token,
            {
                "media_type": "CAROUSEL",
                "children": ",".join(child_ids),
                "caption": self.format_caption(request.content),
            },
        )
        await self._emit_progress("processing", 70.0, "Waiting for carousel container")
        await self._wait_for_container(carousel_id, access_token)

        await self._emit_progress("publishing", 90.0, "Publishing carousel")
        media_id = await self._publish_container(account_id, carousel_id, access_token)

        await self._emit_progress("done", 100.0, "Published")
        return self._make_carousel_result(
            success=True,
            post_id=media_id,
            url=f"{PERMALINK_BASE}/p/{media_id}",
            item_ids=child_ids,
            container_id=carousel_id,
        )

    # =========================================================================
    # ANALYTICS / DELETE
    # =========================================================================

    async def get_analytics(self, post_id: str, user_id: str) -> PostAnalytics:
        access_token = await self._access_token(user_id)
        data = await self._graph("GET", f"{post_id}/insights", access_token, params={"metric": INSIGHT_METRICS})
        values = insight_values(data)
        return PostAnalytics(
            views=values.get("video_views", 0) or values.get("impressions", 0),
            likes=values.get("likes", 0),
            comments=values.get("comments", 0),
            shares=values.get("shares", 0),
            saves=values.get("saved", 0),
            reach=values.get("reach", 0),
            impressions=values.get("impressions", 0),
            extra={"post_id": post_id},
        )

    async def delete(self, post_id: str, user_id: str) -> bool:
        access_token = await self._access_token(user_id)
        data = await self._graph("DELETE", post_id, access_token)
        return bool(data.get("success", True))


class MetaPublisher(InstagramPublisher):
    """Instagram publishing through a combined Meta (Instagram + Facebook) connection."""

    @property
    def platform_name(self) -> str:
        return "meta"
