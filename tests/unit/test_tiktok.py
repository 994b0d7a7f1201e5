"""Unit tests for the TikTok publisher."""

from __future__ import annotations

import httpx
import pytest

from social_publisher.constants.limits import TIKTOK_CHUNK_SIZE, TIKTOK_CHUNK_THRESHOLD
from social_publisher.platforms.tiktok import TikTokPublisher, chunk_plan
from social_publisher.platforms.tiktok import publisher as tiktok_module
from social_publisher.platforms.tiktok.publisher import INBOX_MESSAGE
from social_publisher.publishing.models import ContentPayload, MediaDescriptor, PublishRequest

from conftest import FakeApi

VIDEO_URL = "https://cdn.example.com/clip.mp4"
UPLOAD_URL = "https://open-upload.tiktokapis.com/video/?upload_id=abc"


def _request(caption: str = "Dance") -> PublishRequest:
    return PublishRequest(
        user_id="u1",
        content=ContentPayload(caption=caption),
        media=MediaDescriptor(url=VIDEO_URL),
    )


def _route_upload(api: FakeApi, video: bytes, *statuses: dict) -> None:
    api.add("GET", "clip.mp4", httpx.Response(200, content=video))
    api.add(
        "POST",
        "inbox/video/init/",
        {"data": {"publish_id": "pub-1", "upload_url": UPLOAD_URL}, "error": {"code": "ok"}},
    )
    api.add("PUT", "/video/", httpx.Response(201))
    api.add("POST", "status/fetch/", *({"data": s, "error": {"code": "ok"}} for s in statuses))


class TestChunkPlan:
    """Tests for chunk_plan."""

    def test_small_file_single_chunk(self):
        """Test that files up to the threshold upload in one chunk."""
        assert chunk_plan(1000) == (1000, 1)
        assert chunk_plan(TIKTOK_CHUNK_THRESHOLD) == (TIKTOK_CHUNK_THRESHOLD, 1)

    def test_large_file_split(self):
        """Test that larger files use fixed chunks with a rounded-up count."""
        size = TIKTOK_CHUNK_SIZE * 3 + 1

        assert chunk_plan(size) == (TIKTOK_CHUNK_SIZE, 4)


class TestTikTokPublish:
    """Tests for the inbox upload flow."""

    @pytest.mark.asyncio
    async def test_single_chunk_upload(self, make_publisher, api: FakeApi):
        """Test init, one PUT with a full Content-Range and a completed status."""
        video = b"v" * 100
        _route_upload(
            api,
            video,
            {"status": "PROCESSING_UPLOAD"},
            {"status": "PUBLISH_COMPLETE", "publicaly_available_post_id": [7123]},
        )

        result = await make_publisher(TikTokPublisher).publish(_request())

        assert result.success, result.error
        assert result.post_id == "7123"
        assert result.url == "https://www.tiktok.com/video/7123"
        assert result.details["publish_id"] == "pub-1"

        init = FakeApi.json_body(api.calls("POST", "inbox/video/init/")[0])
        assert init["post_info"]["title"] == "Dance"
        assert init["source_info"] == {
            "source": "FILE_UPLOAD",
            "video_size": 100,
            "chunk_size": 100,
            "total_chunk_count": 1,
        }
        put = api.calls("PUT", "/video/")[0]
        assert put.headers["Content-Range"] == "bytes 0-99/100"
        assert put.headers["Content-Type"] == "video/mp4"
        assert len(api.calls("POST", "status/fetch/")) == 2

    @pytest.mark.asyncio
    async def test_multi_chunk_ranges(self, make_publisher, api: FakeApi, monkeypatch):
        """Test that the last chunk holds only the remainder."""
        monkeypatch.setattr(tiktok_module, "TIKTOK_CHUNK_THRESHOLD", 10)
        monkeypatch.setattr(tiktok_module, "TIKTOK_CHUNK_SIZE", 10)
        _route_upload(api, b"x" * 25, {"status": "PUBLISH_COMPLETE"})

        result = await make_publisher(TikTokPublisher).publish(_request())

        ranges = [r.headers["Content-Range"] for r in api.calls("PUT", "/video/")]
        assert ranges == ["bytes 0-9/25", "bytes 10-19/25", "bytes 20-24/25"]
        assert result.details["chunks"] == 3
        # No public id yet, so the publish id stands in
        assert result.post_id == "pub-1"
        assert result.url is None

    @pytest.mark.asyncio
    async def test_inbox_delivery(self, make_publisher, api: FakeApi):
        """Test that delivery to the creator inbox is a success with guidance."""
        _route_upload(api, b"v" * 10, {"status": "SEND_TO_USER_INBOX"})

        result = await make_publisher(TikTokPublisher).publish(_request())

        assert result.success
        assert result.message == INBOX_MESSAGE

    @pytest.mark.asyncio
    async def test_failed_reason_verbatim(self, make_publisher, api: FakeApi):
        """Test that TikTok's fail_reason is surfaced unchanged."""
        _route_upload(api, b"v" * 10, {"status": "FAILED", "fail_reason": "file_format_check_failed"})

        result = await make_publisher(TikTokPublisher).publish(_request())

        assert not result.success
        assert result.error == "file_format_check_failed"

    @pytest.mark.asyncio
    async def test_error_envelope(self, make_publisher, api: FakeApi):
        """Test that a non-ok error code on HTTP 200 fails the publish."""
        api.add("GET", "clip.mp4", httpx.Response(200, content=b"v"))
        api.add(
            "POST",
            "inbox/video/init/",
            {"data": {}, "error": {"code": "spam_risk_too_many_posts", "message": "Slow down"}},
        )

        result = await make_publisher(TikTokPublisher).publish(_request())

        assert result.error == "TikTok API error (spam_risk_too_many_posts): Slow down"
        assert api.calls("PUT", "/video/") == []

    @pytest.mark.asyncio
    async def test_title_truncated(self, make_publisher, api: FakeApi):
        """Test that the title sent to TikTok is capped at 150 characters."""
        _route_upload(api, b"v" * 10, {"status": "PUBLISH_COMPLETE"})

        await make_publisher(TikTokPublisher).publish(_request("y" * 400))

        init = FakeApi.json_body(api.calls("POST", "inbox/video/init/")[0])
        assert len(init["post_info"]["title"]) == 150

    @pytest.mark.asyncio
    async def test_image_rejected(self, make_publisher, api: FakeApi):
        """Test that non-video media is refused without calling TikTok."""
        request = PublishRequest(
            user_id="u1",
            content=ContentPayload(caption="Hi"),
            media=MediaDescriptor(url="https://cdn.example.com/a.mp4", mime_type="image/jpeg"),
        )

        result = await make_publisher(TikTokPublisher).publish(request)

        assert result.error == "TikTok only supports video posts"
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_delete_unsupported(self, make_publisher):
        """Test that delete reports False."""
        assert await make_publisher(TikTokPublisher).delete("7123", "u1") is False
