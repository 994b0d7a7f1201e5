"""YouTube platform publisher.

Implements the YouTube Data API v3 resumable upload:

1. Download the video bytes from the media URL
2. Open a resumable session with the snippet/status metadata
3. PUT the bytes to the session URL returned in the Location header
4. Optionally set a custom thumbnail
5. Poll processingDetails until the video is processed or fails

API Reference:
- https://developers.google.com/youtube/v3/guides/using_resumable_upload_protocol
- https://developers.google.com/youtube/v3/docs/videos/insert
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional

from ...constants.limits import (
    UPLOAD_TIMEOUT_SECONDS,
    YOUTUBE_DEFAULT_CATEGORY,
    YOUTUBE_DEFAULT_PRIVACY,
    YOUTUBE_POLL_INTERVAL_SECONDS,
    YOUTUBE_POLL_MAX_ATTEMPTS,
    YOUTUBE_THUMBNAIL_URL,
    YOUTUBE_TITLE_MAX_LENGTH,
    YOUTUBE_UPLOAD_URL,
)
from ...constants.status import YouTubeProcessingStatus
from ...errors import PublishError
from ...publishing.models import ContentPayload, PostAnalytics, PublishRequest, PublishResult, guess_mime_type
from ..base import PlatformPublisher

WATCH_URL = "https://www.youtube.com/watch?v="
SHORTS_TAG = "Shorts"
DEFAULT_TITLE = "Untitled video"
FAILED_UPLOAD_STATUSES = ("failed", "rejected", "deleted")


def video_metadata(content: ContentPayload, description: str) -> dict[str, Any]:
    """Build the snippet/status body for videos.insert.

    Settings read: title, category_id, privacy_status, made_for_kids and
    publish_at (ISO 8601). A scheduled video must stay private until then.
    """
    settings = content.settings or {}
    title = settings.get("title") or content.caption.strip() or DEFAULT_TITLE

    status: dict[str, Any] = {
        "privacyStatus": settings.get("privacy_status") or YOUTUBE_DEFAULT_PRIVACY,
        "selfDeclaredMadeForKids": settings.get("made_for_kids") is True,
    }
    if settings.get("publish_at"):
        status["publishAt"] = str(settings["publish_at"])
        status["privacyStatus"] = "private"

    return {
        "snippet": {
            "title": title[:YOUTUBE_TITLE_MAX_LENGTH],
            "description": description,
            "tags": [tag.lstrip("#") for tag in content.hashtags],
            "categoryId": str(settings.get("category_id") or YOUTUBE_DEFAULT_CATEGORY),
        },
        "status": status,
    }


def _count(statistics: dict[str, Any], key: str) -> int:
    # Statistics come back as strings
    try:
        return int(statistics.get(key) or 0)
    except (TypeError, ValueError):
        return 0


class YouTubePublisher(PlatformPublisher):
    """YouTube publisher implementing the platform interface.

    Set settings["short"] to publish a YouTube Short; the #Shorts tag is
    added to the description and tags.
    """

    logger_name = "youtube_api"

    @property
    def platform_name(self) -> str:
        return "youtube"

    @property
    def api_url(self) -> str:
        return self.capability.api_base_url

    async def _start_upload(
        self,
        access_token: str,
        metadata: dict[str, Any],
        size: int,
        mime_type: str,
    ) -> str:
        """Open a resumable upload session and return its URL."""
        response = await self._request(
            "POST",
            YOUTUBE_UPLOAD_URL,
            token=access_token,
            params={"uploadType": "resumable", "part": "snippet,status"},
            json=metadata,
            headers={
                "X-Upload-Content-Length": str(size),
                "X-Upload-Content-Type": mime_type,
            },
        )
        upload_url = response.headers.get("location")
        if not upload_url:
            raise PublishError("YouTube did not return an upload URL", platform=self.platform_name)
        return upload_url

    async def _upload_video(self, upload_url: str, access_token: str, video: bytes, mime_type: str) -> str:
        data = await self._request_json(
            "PUT",
            upload_url,
            token=access_token,
            content=video,
            headers={"Content-Type": mime_type},
            timeout=UPLOAD_TIMEOUT_SECONDS,
        )
        video_id = data.get("id")
        if not video_id:
            raise PublishError("YouTube did not return a video id", platform=self.platform_name)
        return str(video_id)

    async def _set_thumbnail(self, video_id: str, access_token: str, thumbnail_url: str) -> None:
        image = await self._fetch_media_bytes(thumbnail_url)
        await self._request(
            "POST",
            YOUTUBE_THUMBNAIL_URL,
            token=access_token,
            params={"videoId": video_id},
            content=image,
            headers={"Content-Type": guess_mime_type(thumbnail_url)},
            timeout=UPLOAD_TIMEOUT_SECONDS,
        )

    async def _wait_for_processing(self, video_id: str, access_token: str) -> dict:
        """Poll the video until YouTube has processed it.

        Raises:
            PublishError: Upload rejected or processing failed.
            PublishTimeoutError: Still processing after the attempt ceiling.
        """

        async def check() -> Optional[dict]:
            data = await self._request_json(
                "GET",
                f"{self.api_url}/videos",
                token=access_token,
                params={"part": "status,processingDetails", "id": video_id},
            )
            items = data.get("items") or []
            if not items:
                return None

            video = items[0]
            status = video.get("status") or {}
            upload_status = status.get("uploadStatus")
            if upload_status in FAILED_UPLOAD_STATUSES:
                reason = status.get("rejectionReason") or status.get("failureReason") or upload_status
                raise PublishError(f"YouTube upload {upload_status}: {reason}", platform=self.platform_name)

            details = video.get("processingDetails") or {}
            processing = details.get("processingStatus")
            if processing == YouTubeProcessingStatus.SUCCEEDED.value:
                return video
            if processing in (YouTubeProcessingStatus.FAILED.value, YouTubeProcessingStatus.TERMINATED.value):
                raise PublishError(
                    f"YouTube processing failed: {details.get('processingFailureReason') or processing}",
                    platform=self.platform_name,
                )
            if processing is None and upload_status == "processed":
                return video
            return None

        return await self._poll(
            check,
            max_attempts=YOUTUBE_POLL_MAX_ATTEMPTS,
            interval=YOUTUBE_POLL_INTERVAL_SECONDS,
            job_id=video_id,
        )

    async def _publish(self, request: PublishRequest) -> PublishResult:
        media = request.media
        if media is None or not media.is_video:
            raise PublishError("YouTube only supports video uploads", platform=self.platform_name)

        content = request.content
        settings = content.settings or {}
        if settings.get("short") and SHORTS_TAG.lower() not in (t.lstrip("#").lower() for t in content.hashtags):
            content = replace(content, hashtags=[*content.hashtags, SHORTS_TAG])

        access_token = await self._access_token(request.user_id)

        await self._emit_progress("download", 2.0, "Downloading video...")
        video = await self._fetch_media_bytes(media.url)
        if not video:
            raise PublishError("Video file is empty", platform=self.platform_name)

        mime_type = media.mime_type or "video/mp4"
        metadata = video_metadata(content, self.format_caption(content))

        await self._emit_progress("init", 5.0, "Starting YouTube upload...")
        upload_url = await self._start_upload(access_token, metadata, len(video), mime_type)

        await self._emit_progress("upload", 10.0, "Uploading video...")
        video_id = await self._upload_video(upload_url, access_token, video, mime_type)
        self._logger.info(f"Video uploaded | {video_id} | {len(video)} bytes")

        details: dict[str, Any] = {"privacy_status": metadata["status"]["privacyStatus"]}
        thumbnail_url = settings.get("cover_photo")
        if thumbnail_url:
            await self._emit_progress("thumbnail", 60.0, "Setting thumbnail...")
            try:
                await self._set_thumbnail(video_id, access_token, thumbnail_url)
            except PublishError as e:
                # The video is already uploaded; report the thumbnail failure with it
                self._logger.warning(f"Thumbnail not set | {video_id} | {e}")
                details["thumbnail_error"] = str(e)

        await self._emit_progress("processing", 70.0, "Processing video...")
        await self._wait_for_processing(video_id, access_token)

        await self._emit_progress("complete", 100.0, "Published to YouTube")
        return self._make_result(
            success=True,
            post_id=video_id,
            url=f"{WATCH_URL}{video_id}",
            **details,
        )

    async def get_analytics(self, post_id: str, user_id: str) -> PostAnalytics:
        access_token = await self._access_token(user_id)
        data = await self._request_json(
            "GET",
            f"{self.api_url}/videos",
            token=access_token,
            params={"part": "statistics", "id": post_id},
        )
        items = data.get("items") or []
        if not items:
            raise PublishError(f"YouTube video not found: {post_id}", platform=self.platform_name)

        statistics = items[0].get("statistics") or {}
        views = _count(statistics, "viewCount")
        return PostAnalytics(
            views=views,
            likes=_count(statistics, "likeCount"),
            comments=_count(statistics, "commentCount"),
            reach=views,
            impressions=views,
            extra={"post_id": post_id, "favorites": _count(statistics, "favoriteCount")},
        )

    async def delete(self, post_id: str, user_id: str) -> bool:
        access_token = await self._access_token(user_id)
        await self._request("DELETE", f"{self.api_url}/videos", token=access_token, params={"id": post_id})
        return True
