"""TikTok platform publisher.

Implements the TikTok Content Posting API inbox upload for videos:

1. Download the video bytes from the media URL
2. Initialize a FILE_UPLOAD with the chunk plan
3. PUT each chunk with a Content-Range header
4. Poll the publish status until it completes or fails

API Reference:
- https://developers.tiktok.com/doc/content-posting-api-get-started
- https://developers.tiktok.com/doc/content-posting-api-reference-upload-video
"""

from __future__ import annotations

import math
from typing import Any, Optional

from ...constants.limits import (
    TIKTOK_CHUNK_SIZE,
    TIKTOK_CHUNK_THRESHOLD,
    TIKTOK_POLL_INTERVAL_SECONDS,
    TIKTOK_POLL_MAX_ATTEMPTS,
    TIKTOK_TITLE_MAX_LENGTH,
    UPLOAD_TIMEOUT_SECONDS,
)
from ...constants.status import TikTokPublishStatus
from ...errors import PublishError
from ...publishing.models import PostAnalytics, PublishRequest, PublishResult
from ..base import PlatformPublisher

INBOX_MESSAGE = "Video sent to your TikTok inbox. Open the TikTok app to review and publish."
QUERY_FIELDS = "id,view_count,like_count,comment_count,share_count"


def chunk_plan(video_size: int) -> tuple[int, int]:
    """Return (chunk_size, total_chunk_count) for a video of video_size bytes.

    Files up to the threshold go up in one chunk; larger files are split
    into fixed-size chunks.
    """
    if video_size <= TIKTOK_CHUNK_THRESHOLD:
        return video_size, 1
    return TIKTOK_CHUNK_SIZE, math.ceil(video_size / TIKTOK_CHUNK_SIZE)


class TikTokPublisher(PlatformPublisher):
    """TikTok publisher implementing the platform interface.

    Uses the video.upload scope, so videos land in the creator's TikTok
    inbox for final review.
    """

    logger_name = "tiktok_api"

    @property
    def platform_name(self) -> str:
        return "tiktok"

    @property
    def api_url(self) -> str:
        return self.capability.api_base_url

    async def _call(self, path: str, access_token: str, json: Any = None, params: Optional[dict] = None) -> dict:
        """POST to a TikTok endpoint and unwrap the data envelope.

        TikTok reports some failures with HTTP 200 and a non-"ok" error code.
        """
        result = await self._request_json(
            "POST",
            f"{self.api_url}/{path}",
            token=access_token,
            json=json,
            params=params,
            headers={"Content-Type": "application/json; charset=UTF-8"},
        )
        error = result.get("error") or {}
        code = error.get("code")
        if code and code != "ok":
            raise PublishError(
                f"TikTok API error ({code}): {error.get('message', 'Unknown error')}",
                platform=self.platform_name,
                detail={"code": code, "log_id": error.get("log_id")},
            )
        return result.get("data") or {}

    async def _init_video_upload(self, access_token: str, title: str, video_size: int) -> dict:
        """Initialize an inbox upload.

        Returns:
            Dict with publish_id, upload_url, chunk_size and total_chunk_count.
        """
        chunk_size, total_chunks = chunk_plan(video_size)
        data = await self._call(
            "post/publish/inbox/video/init/",
            access_token,
            json={
                "post_info": {"title": title},
                "source_info": {
                    "source": "FILE_UPLOAD",
                    "video_size": video_size,
                    "chunk_size": chunk_size,
                    "total_chunk_count": total_chunks,
                },
            },
        )
        if not data.get("publish_id") or not data.get("upload_url"):
            raise PublishError("Failed to get upload URL from TikTok", platform=self.platform_name)
        return {
            "publish_id": data["publish_id"],
            "upload_url": data["upload_url"],
            "chunk_size": chunk_size,
            "total_chunk_count": total_chunks,
        }

    async def _upload_chunks(
        self,
        upload_url: str,
        video: bytes,
        chunk_size: int,
        total_chunks: int,
        mime_type: str,
    ) -> None:
        """PUT each chunk with an absolute byte range."""
        total = len(video)
        for index in range(total_chunks):
            start = index * chunk_size
            # The last chunk holds whatever remains after the full chunks
            end = total if index == total_chunks - 1 else min(start + chunk_size, total)
            chunk = video[start:end]

            await self._request(
                "PUT",
                upload_url,
                content=chunk,
                headers={
                    "Content-Type": mime_type or "video/mp4",
                    "Content-Range": f"bytes {start}-{end - 1}/{total}",
                },
                timeout=UPLOAD_TIMEOUT_SECONDS,
            )
            await self._emit_progress(
                "upload",
                10.0 + 40.0 * (index + 1) / total_chunks,
                f"Uploaded chunk {index + 1}/{total_chunks}",
            )

    async def _wait_for_publish(self, publish_id: str, access_token: str) -> dict:
        """Poll the publish status.

        Raises:
            PublishError: TikTok reported FAILED (fail_reason kept verbatim).
            PublishTimeoutError: Still processing after the attempt ceiling.
        """

        async def check() -> Optional[dict]:
            data = await self._call("post/publish/status/fetch/", access_token, json={"publish_id": publish_id})
            status = str(data.get("status", "")).upper()
            if status in (
                TikTokPublishStatus.PUBLISH_COMPLETE.value,
                TikTokPublishStatus.SEND_TO_USER_INBOX.value,
            ):
                return data
            if status == TikTokPublishStatus.FAILED.value:
                raise PublishError(
                    str(data.get("fail_reason") or "Unknown reason"),
                    platform=self.platform_name,
                    detail=data,
                )
            return None

        return await self._poll(
            check,
            max_attempts=TIKTOK_POLL_MAX_ATTEMPTS,
            interval=TIKTOK_POLL_INTERVAL_SECONDS,
            job_id=publish_id,
        )

    async def _publish(self, request: PublishRequest) -> PublishResult:
        media = request.media
        if media is None or not media.is_video:
            raise PublishError("TikTok only supports video posts", platform=self.platform_name)

        access_token = await self._access_token(request.user_id)

        await self._emit_progress("download", 2.0, "Downloading video...")
        video = await self._fetch_media_bytes(media.url)
        if not video:
            raise PublishError("Video file is empty", platform=self.platform_name)

        title = self.format_caption(request.content)[:TIKTOK_TITLE_MAX_LENGTH]

        await self._emit_progress("init", 5.0, "Initializing TikTok upload...")
        upload = await self._init_video_upload(access_token, title, len(video))
        publish_id = upload["publish_id"]

        await self._upload_chunks(
            upload["upload_url"],
            video,
            upload["chunk_size"],
            upload["total_chunk_count"],
            media.mime_type,
        )

        await self._emit_progress("processing", 50.0, "Processing video...")
        final_status = await self._wait_for_publish(publish_id, access_token)

        post_ids = final_status.get("publicaly_available_post_id") or []
        post_id = str(post_ids[0]) if post_ids else None

        await self._emit_progress("complete", 100.0, "Uploaded to TikTok")
        in_inbox = str(final_status.get("status", "")).upper() == TikTokPublishStatus.SEND_TO_USER_INBOX.value
        return self._make_result(
            success=True,
            post_id=post_id or publish_id,
            url=f"https://www.tiktok.com/video/{post_id}" if post_id else None,
            message=INBOX_MESSAGE if in_inbox else None,
            publish_id=publish_id,
            chunks=upload["total_chunk_count"],
        )

    async def get_analytics(self, post_id: str, user_id: str) -> PostAnalytics:
        access_token = await self._access_token(user_id)
        data = await self._call(
            "video/query/",
            access_token,
            params={"fields": QUERY_FIELDS},
            json={"filters": {"video_ids": [post_id]}},
        )
        videos = data.get("videos") or [{}]
        video = videos[0]
        return PostAnalytics(
            views=video.get("view_count", 0),
            likes=video.get("like_count", 0),
            comments=video.get("comment_count", 0),
            shares=video.get("share_count", 0),
            extra={"post_id": post_id},
        )

    async def delete(self, post_id: str, user_id: str) -> bool:
        self._logger.warning(f"TikTok does not allow deleting posts via API | {post_id}")
        return False
