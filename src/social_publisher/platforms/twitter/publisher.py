"""X (Twitter) publisher.

Tweets go through the v2 API; media goes through the v1.1 upload endpoint:

- Images: one simple upload with base64 media_data
- Videos: INIT -> APPEND (5MB segments) -> FINALIZE -> STATUS polling

Tweet text is the formatted caption cut to 280 characters.
"""

from __future__ import annotations

import base64
import math
from typing import Any, Optional

from ...constants.limits import (
    TWITTER_POLL_INTERVAL_SECONDS,
    TWITTER_POLL_MAX_ATTEMPTS,
    TWITTER_VIDEO_CHUNK_SIZE,
    UPLOAD_TIMEOUT_SECONDS,
)
from ...constants.status import MediaProcessingState
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

TWEET_URL = "https://x.com/i/status"


class TwitterPublisher(PlatformPublisher):
    """X (Twitter) publisher.

    Multi-image tweets take up to four images; videos in a carousel are
    skipped and counted as truncated.
    """

    logger_name = "twitter_api"

    @property
    def platform_name(self) -> str:
        return "twitter"

    @property
    def api_url(self) -> str:
        return self.capability.api_base_url

    @property
    def upload_url(self) -> str:
        return self.capability.extra["upload_url"]

    # =========================================================================
    # MEDIA UPLOAD
    # =========================================================================

    async def _upload(self, access_token: str, form: dict[str, Any]) -> dict[str, Any]:
        return await self._request_json(
            "POST",
            self.upload_url,
            token=access_token,
            data=form,
            timeout=UPLOAD_TIMEOUT_SECONDS,
        )

    async def _upload_image(self, access_token: str, media: MediaDescriptor) -> str:
        body = await self._fetch_media_bytes(media.url)
        data = await self._upload(access_token, {"media_data": base64.b64encode(body).decode("ascii")})
        media_id = data.get("media_id_string")
        if not media_id:
            raise PublishError("X did not return a media id", platform=self.platform_name)
        return media_id

    async def _upload_video(self, access_token: str, media: MediaDescriptor) -> str:
        body = await self._fetch_media_bytes(media.url)
        total = len(body)

        init = await self._upload(
            access_token,
            {
                "command": "INIT",
                "total_bytes": str(total),
                "media_type": media.mime_type or "video/mp4",
                "media_category": "tweet_video",
            },
        )
        media_id = init.get("media_id_string")
        if not media_id:
            raise PublishError("X did not return a media id", platform=self.platform_name)

        segments = max(1, math.ceil(total / TWITTER_VIDEO_CHUNK_SIZE))
        for index in range(segments):
            chunk = body[index * TWITTER_VIDEO_CHUNK_SIZE : (index + 1) * TWITTER_VIDEO_CHUNK_SIZE]
            await self._upload(
                access_token,
                {
                    "command": "APPEND",
                    "media_id": media_id,
                    "segment_index": str(index),
                    "media_data": base64.b64encode(chunk).decode("ascii"),
                },
            )
            await self._emit_progress(
                "upload",
                10.0 + 50.0 * (index + 1) / segments,
                f"Uploaded segment {index + 1}/{segments}",
            )

        finalized = await self._upload(access_token, {"command": "FINALIZE", "media_id": media_id})
        if finalized.get("processing_info"):
            await self._wait_for_processing(access_token, media_id)
        return media_id

    async def _wait_for_processing(self, access_token: str, media_id: str) -> None:
        """Poll STATUS until the video is ready.

        Raises:
            PublishError: Processing failed.
            PublishTimeoutError: Still processing after the attempt ceiling.
        """

        async def check() -> Optional[str]:
            data = await self._request_json(
                "GET",
                self.upload_url,
                token=access_token,
                params={"command": "STATUS", "media_id": media_id},
            )
            info = data.get("processing_info") or {}
            state = info.get("state", MediaProcessingState.SUCCEEDED.value)
            if state == MediaProcessingState.SUCCEEDED.value:
                return state
            if state == MediaProcessingState.FAILED.value:
                error = (info.get("error") or {}).get("message", "Unknown error")
                raise PublishError(f"Video processing failed: {error}", platform=self.platform_name, detail=info)
            return None

        await self._poll(
            check,
            max_attempts=TWITTER_POLL_MAX_ATTEMPTS,
            interval=TWITTER_POLL_INTERVAL_SECONDS,
            job_id=media_id,
        )

    async def _upload_media(self, access_token: str, media: MediaDescriptor) -> str:
        if media.is_video:
            return await self._upload_video(access_token, media)
        return await self._upload_image(access_token, media)

    # =========================================================================
    # TWEETS
    # =========================================================================

    async def _create_tweet(self, access_token: str, text: str, media_ids: list[str]) -> str:
        body: dict[str, Any] = {"text": text}
        if media_ids:
            body["media"] = {"media_ids": media_ids}
        data = await self._request_json("POST", f"{self.api_url}/tweets", token=access_token, json=body)
        tweet_id = (data.get("data") or {}).get("id")
        if not tweet_id:
            raise PublishError("X did not return a tweet id", platform=self.platform_name)
        return str(tweet_id)

    async def _publish(self, request: PublishRequest) -> PublishResult:
        access_token = await self._access_token(request.user_id)
        text = self.fit_caption(self.format_caption(request.content))

        media_ids = []
        if request.media is not None:
            await self._emit_progress("upload", 5.0, "Uploading media to X")
            media_ids.append(await self._upload_media(access_token, request.media))

        tweet_id = await self._create_tweet(access_token, text, media_ids)
        return self._make_result(
            success=True,
            post_id=tweet_id,
            url=f"{TWEET_URL}/{tweet_id}",
            media_ids=media_ids,
        )

    async def _publish_carousel(self, request: CarouselRequest, items: list[CarouselItem]) -> CarouselResult:
        access_token = await self._access_token(request.user_id)

        media_ids = []
        for index, item in enumerate(items, 1):
            await self._emit_progress("upload", 80.0 * index / len(items), f"Uploading image {index}/{len(items)}")
            media_ids.append(await self._upload_image(access_token, item.to_media()))

        text = self.fit_caption(self.format_caption(request.content))
        tweet_id = await self._create_tweet(access_token, text, media_ids)
        return self._make_carousel_result(
            success=True,
            post_id=tweet_id,
            url=f"{TWEET_URL}/{tweet_id}",
            item_ids=media_ids,
        )

    # =========================================================================
    # ANALYTICS / DELETE
    # =========================================================================

    async def get_analytics(self, post_id: str, user_id: str) -> PostAnalytics:
        access_token = await self._access_token(user_id)
        data = await self._request_json(
            "GET",
            f"{self.api_url}/tweets/{post_id}",
            token=access_token,
            params={"tweet.fields": "public_metrics"},
        )
        metrics = (data.get("data") or {}).get("public_metrics") or {}
        return PostAnalytics(
            views=metrics.get("impression_count", 0),
            likes=metrics.get("like_count", 0),
            comments=metrics.get("reply_count", 0),
            shares=metrics.get("retweet_count", 0) + metrics.get("quote_count", 0),
            saves=metrics.get("bookmark_count", 0),
            impressions=metrics.get("impression_count", 0),
            extra={"post_id": post_id},
        )

    async def delete(self, post_id: str, user_id: str) -> bool:
        access_token = await self._access_token(user_id)
        data = await self._request_json("DELETE", f"{self.api_url}/tweets/{post_id}", token=access_token)
        return bool((data.get("data") or {}).get("deleted", False))
