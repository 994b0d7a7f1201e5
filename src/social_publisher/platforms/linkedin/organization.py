"""LinkedIn Company Page publisher.

Posts as an organization the member administers, through the versioned
REST API (rest/images, rest/videos, rest/posts). Every REST call carries
the LinkedIn-Version and X-Restli-Protocol-Version headers.
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

from ...constants.limits import (
    LINKEDIN_API_VERSION,
    LINKEDIN_RESTLI_PROTOCOL_VERSION,
    UPLOAD_TIMEOUT_SECONDS,
)
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
from .publisher import FEED_URL, LinkedInPublisher, share_statistics

ORGANIZATION_URN_PREFIX = "urn:li:organization:"


class LinkedInOrgPublisher(LinkedInPublisher):
    """LinkedIn organization (Company Page) publisher.

    content.settings["organization_urn"] picks the page when the member
    administers several; otherwise the first approved page is used.
    """

    logger_name = "linkedin_org_api"

    @property
    def platform_name(self) -> str:
        return "linkedin-org"

    @property
    def rest_url(self) -> str:
        return self.capability.extra["rest_base_url"]

    @property
    def _restli_headers(self) -> dict[str, str]:
        return {
            "X-Restli-Protocol-Version": LINKEDIN_RESTLI_PROTOCOL_VERSION,
            "LinkedIn-Version": LINKEDIN_API_VERSION,
        }

    # =========================================================================
    # ORGANIZATIONS
    # =========================================================================

    async def list_organizations(self, user_id: str) -> list[str]:
        """Organization URNs the member administers."""
        access_token = await self._access_token(user_id)
        return await self._administered_organizations(access_token)

    async def _administered_organizations(self, access_token: str) -> list[str]:
        data = await self._request_json(
            "GET",
            f"{self.api_url}/organizationAcls",
            token=access_token,
            params={"q": "roleAssignee", "role": "ADMINISTRATOR", "state": "APPROVED"},
            headers=self._restli_headers,
        )
        return [element["organization"] for element in data.get("elements") or [] if element.get("organization")]

    async def _resolve_organization(self, access_token: str, settings: dict[str, Any]) -> str:
        organizations = await self._administered_organizations(access_token)
        if not organizations:
            raise PublishError(
                "No LinkedIn organizations found. You must be an administrator of a "
                "LinkedIn Company Page to post.",
                platform=self.platform_name,
            )

        wanted = settings.get("organization_urn")
        if wanted:
            if not str(wanted).startswith(ORGANIZATION_URN_PREFIX):
                wanted = f"{ORGANIZATION_URN_PREFIX}{wanted}"
            if wanted not in organizations:
                raise PublishError(
                    f"You are not an administrator of {wanted}",
                    platform=self.platform_name,
                )
            return wanted

        self._logger.info(f"Publishing to organization | {organizations[0]}")
        return organizations[0]

    # =========================================================================
    # UPLOADS
    # =========================================================================

    async def _upload_image(self, access_token: str, owner_urn: str, media: MediaDescriptor) -> str:
        body = await self._fetch_media_bytes(media.url)
        data = await self._request_json(
            "POST",
            f"{self.rest_url}/images",
            token=access_token,
            params={"action": "initializeUpload"},
            headers=self._restli_headers,
            json={"initializeUploadRequest": {"owner": owner_urn}},
        )
        value = data.get("value") or {}
        if not value.get("uploadUrl") or not value.get("image"):
            raise PublishError("No upload URL or image URN returned", platform=self.platform_name)

        await self._request(
            "PUT",
            value["uploadUrl"],
            token=access_token,
            content=body,
            headers={"Content-Type": media.mime_type or "image/jpeg"},
            timeout=UPLOAD_TIMEOUT_SECONDS,
        )
        return value["image"]

    async def _upload_video(self, access_token: str, owner_urn: str, media: MediaDescriptor) -> str:
        body = await self._fetch_media_bytes(media.url)
        data = await self._request_json(
            "POST",
            f"{self.rest_url}/videos",
            token=access_token,
            params={"action": "initializeUpload"},
            headers=self._restli_headers,
            json={
                "initializeUploadRequest": {
                    "owner": owner_urn,
                    "fileSizeBytes": len(body),
                    "uploadCaptions": False,
                    "uploadThumbnail": False,
                }
            },
        )
        value = data.get("value") or {}
        instructions = value.get("uploadInstructions") or [{}]
        upload_url = instructions[0].get("uploadUrl")
        video_urn = value.get("video")
        if not upload_url or not video_urn:
            raise PublishError("No upload URL or video URN returned", platform=self.platform_name)

        response = await self._request(
            "PUT",
            upload_url,
            token=access_token,
            content=body,
            headers={"Content-Type": media.mime_type or "video/mp4"},
            timeout=UPLOAD_TIMEOUT_SECONDS,
        )
        etag = response.headers.get("etag")

        await self._request(
            "POST",
            f"{self.rest_url}/videos",
            token=access_token,
            params={"action": "finalizeUpload"},
            headers=self._restli_headers,
            json={
                "finalizeUploadRequest": {
                    "video": video_urn,
                    "uploadToken": value.get("uploadToken", ""),
                    "uploadedPartIds": [etag] if etag else [],
                }
            },
        )
        return video_urn

    # =========================================================================
    # POSTS
    # =========================================================================

    async def _create_post(
        self,
        access_token: str,
        author_urn: str,
        text: str,
        content: Optional[dict[str, Any]],
    ) -> str:
        post: dict[str, Any] = {
            "author": author_urn,
            "commentary": text,
            "visibility": "PUBLIC",
            "distribution": {
                "feedDistribution": "MAIN_FEED",
                "targetEntities": [],
                "thirdPartyDistributionChannels": [],
            },
            "lifecycleState": "PUBLISHED",
            "isReshareDisabledByAuthor": False,
        }
        if content:
            post["content"] = content

        response = await self._request(
            "POST",
            f"{self.rest_url}/posts",
            token=access_token,
            headers=self._restli_headers,
            json=post,
        )
        post_id = response.headers.get("x-restli-id") or response.headers.get("x-linkedin-id")
        if not post_id:
            raise PublishError("LinkedIn did not return a post id", platform=self.platform_name)
        self._logger.info(f"Organization post created | {post_id}")
        return post_id

    async def _publish(self, request: PublishRequest) -> PublishResult:
        access_token = await self._access_token(request.user_id)
        organization = await self._resolve_organization(access_token, request.content.settings)
        text = self.fit_caption(self.format_caption(request.content))

        content = None
        media = request.media
        if media is not None:
            await self._emit_progress("upload", 20.0, "Uploading media to LinkedIn")
            if media.is_video:
                urn = await self._upload_video(access_token, organization, media)
            else:
                urn = await self._upload_image(access_token, organization, media)
            content = {"media": {"id": urn}}

        await self._emit_progress("publishing", 80.0, "Creating organization post")
        post_id = await self._create_post(access_token, organization, text, content)
        return self._make_result(
            success=True,
            post_id=post_id,
            url=f"{FEED_URL}/{post_id}",
            organization=organization,
        )

    async def _publish_carousel(self, request: CarouselRequest, items: list[CarouselItem]) -> CarouselResult:
        access_token = await self._access_token(request.user_id)
        organization = await self._resolve_organization(access_token, request.content.settings)

        images: list[dict[str, str]] = []
        for index, item in enumerate(items, 1):
            await self._emit_progress("upload", 70.0 * index / len(items), f"Uploading image {index}/{len(items)}")
            urn = await self._upload_image(access_token, organization, item.to_media())
            entry = {"id": urn}
            if item.alt_text:
                entry["altText"] = item.alt_text
            images.append(entry)

        text = self.fit_caption(self.format_caption(request.content))
        post_id = await self._create_post(access_token, organization, text, {"multiImage": {"images": images}})
        return self._make_carousel_result(
            success=True,
            post_id=post_id,
            url=f"{FEED_URL}/{post_id}",
            item_ids=[image["id"] for image in images],
            organization=organization,
        )

    async def get_analytics(self, post_id: str, user_id: str) -> PostAnalytics:
        access_token = await self._access_token(user_id)
        organization = (await self._administered_organizations(access_token) or [None])[0]
        params = {"q": "organizationalEntity", "shares": post_id}
        if organization:
            params["organizationalEntity"] = organization
        data = await self._request_json(
            "GET",
            f"{self.rest_url}/organizationalEntityShareStatistics",
            token=access_token,
            params=params,
            headers=self._restli_headers,
        )
        analytics = share_statistics(data)
        analytics.extra["post_id"] = post_id
        return analytics

    async def delete(self, post_id: str, user_id: str) -> bool:
        access_token = await self._access_token(user_id)
        await self._request(
            "DELETE",
            f"{self.rest_url}/posts/{quote(post_id, safe='')}",
            token=access_token,
            headers=self._restli_headers,
        )
        return True
