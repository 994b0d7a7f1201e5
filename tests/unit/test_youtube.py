"""Unit tests for the YouTube publisher."""

from __future__ import annotations

import httpx
import pytest

from social_publisher.errors import PublishError
from social_publisher.platforms.youtube import YouTubePublisher, video_metadata
from social_publisher.platforms.youtube import publisher as youtube_module
from social_publisher.publishing.models import ContentPayload, MediaDescriptor, PublishRequest

from conftest import FakeApi

VIDEO_URL = "https://cdn.example.com/launch.mp4"
SESSION_URL = "https://www.googleapis.com/upload/youtube/v3/videos?uploadType=resumable&upload_id=up-1"


def _request(caption: str = "Launch", hashtags: list = None, **settings) -> PublishRequest:
    return PublishRequest(
        user_id="u1",
        content=ContentPayload(caption=caption, hashtags=hashtags or [], settings=settings),
        media=MediaDescriptor(url=VIDEO_URL),
    )


def _processing(status: str, upload_status: str = "uploaded", **extra) -> dict:
    return {
        "items": [
            {
                "status": {"uploadStatus": upload_status, **extra},
                "processingDetails": {"processingStatus": status, **extra},
            }
        ]
    }


def _route_upload(api: FakeApi, *statuses: dict) -> None:
    api.add("GET", "launch.mp4", httpx.Response(200, content=b"data"))
    api.add("POST", "upload/youtube/v3/videos", httpx.Response(200, headers={"Location": SESSION_URL}))
    api.add("PUT", "upload/youtube/v3/videos", {"id": "vid-1"})
    api.add("GET", "v3/videos", *statuses)


@pytest.fixture
def youtube(make_publisher) -> YouTubePublisher:
    return make_publisher(YouTubePublisher)


class TestVideoMetadata:
    """Tests for video_metadata."""

    def test_defaults(self):
        """Test the default title, category and privacy."""
        metadata = video_metadata(ContentPayload(), "")

        assert metadata["snippet"]["title"] == "Untitled video"
        assert metadata["snippet"]["categoryId"] == "22"
        assert metadata["status"] == {"privacyStatus": "private", "selfDeclaredMadeForKids": False}

    def test_title_capped(self):
        """Test that the title is cut to 100 characters."""
        metadata = video_metadata(ContentPayload(caption="t" * 150), "desc")

        assert metadata["snippet"]["title"] == "t" * 100
        assert metadata["snippet"]["description"] == "desc"

    def test_scheduled_video_stays_private(self):
        """Test that publish_at forces private visibility."""
        content = ContentPayload(settings={"privacy_status": "public", "publish_at": "2026-11-01T10:00:00Z"})

        status = video_metadata(content, "")["status"]

        assert status["privacyStatus"] == "private"
        assert status["publishAt"] == "2026-11-01T10:00:00Z"


class TestYouTubePublish:
    """Tests for the resumable upload flow."""

    @pytest.mark.asyncio
    async def test_resumable_upload(self, youtube: YouTubePublisher, api: FakeApi):
        """Test session start, the byte upload and processing polls."""
        _route_upload(api, _processing("processing"), _processing("succeeded"))

        result = await youtube.publish(_request(hashtags=["news"], privacy_status="unlisted"))

        assert result.success, result.error
        assert result.post_id == "vid-1"
        assert result.url == "https://www.youtube.com/watch?v=vid-1"
        assert result.details["privacy_status"] == "unlisted"

        start = api.calls("POST", "upload/youtube/v3/videos")[0]
        assert start.url.params["uploadType"] == "resumable"
        assert start.url.params["part"] == "snippet,status"
        assert start.headers["X-Upload-Content-Length"] == "4"
        assert start.headers["X-Upload-Content-Type"] == "video/mp4"
        assert start.headers["Authorization"] == "Bearer tok"
        snippet = FakeApi.json_body(start)["snippet"]
        assert snippet["title"] == "Launch"
        assert snippet["description"] == "Launch\n\n#news"
        assert snippet["tags"] == ["news"]

        upload = api.calls("PUT", "upload/youtube/v3/videos")[0]
        assert upload.url.params["upload_id"] == "up-1"
        assert upload.content == b"data"

        polls = api.calls("GET", "v3/videos")
        assert len(polls) == 2
        assert polls[0].url.params["part"] == "status,processingDetails"
        assert polls[0].url.params["id"] == "vid-1"

    @pytest.mark.asyncio
    async def test_short_adds_tag(self, youtube: YouTubePublisher, api: FakeApi):
        """Test that Shorts get the #Shorts tag once."""
        _route_upload(api, _processing("succeeded"))

        await youtube.publish(_request(hashtags=["demo"], short=True))

        snippet = FakeApi.json_body(api.calls("POST", "upload/youtube/v3/videos")[0])["snippet"]
        assert snippet["tags"] == ["demo", "Shorts"]
        assert snippet["description"].endswith("#demo #Shorts")

    @pytest.mark.asyncio
    async def test_thumbnail(self, youtube: YouTubePublisher, api: FakeApi):
        """Test that a cover photo is uploaded as the thumbnail."""
        _route_upload(api, _processing("succeeded"))
        api.add("GET", "cover.jpg", httpx.Response(200, content=b"jpg"))
        api.add("POST", "thumbnails/set", {"items": []})

        result = await youtube.publish(_request(cover_photo="https://cdn.example.com/cover.jpg"))

        assert result.success, result.error
        thumbnail = api.calls("POST", "thumbnails/set")[0]
        assert thumbnail.url.params["videoId"] == "vid-1"
        assert thumbnail.headers["Content-Type"] == "image/jpeg"
        assert thumbnail.content == b"jpg"

    @pytest.mark.asyncio
    async def test_thumbnail_failure_reported(self, youtube: YouTubePublisher, api: FakeApi):
        """Test that a rejected thumbnail does not fail the uploaded video."""
        _route_upload(api, _processing("succeeded"))
        api.add("GET", "cover.jpg", httpx.Response(200, content=b"jpg"))
        api.add("POST", "thumbnails/set", httpx.Response(403, json={"error": {"message": "Not verified"}}))

        result = await youtube.publish(_request(cover_photo="https://cdn.example.com/cover.jpg"))

        assert result.success
        assert result.details["thumbnail_error"].startswith("YouTube API error (403)")

    @pytest.mark.asyncio
    async def test_processing_failed(self, youtube: YouTubePublisher, api: FakeApi):
        """Test that a failed processing status fails the publish."""
        _route_upload(api, _processing("failed", processingFailureReason="transcodeFailed"))

        result = await youtube.publish(_request())

        assert not result.success
        assert result.error == "YouTube processing failed: transcodeFailed"

    @pytest.mark.asyncio
    async def test_upload_rejected(self, youtube: YouTubePublisher, api: FakeApi):
        """Test that a rejected upload reports the rejection reason."""
        _route_upload(api, _processing("processing", upload_status="rejected", rejectionReason="duplicate"))

        result = await youtube.publish(_request())

        assert result.error == "YouTube upload rejected: duplicate"

    @pytest.mark.asyncio
    async def test_still_processing_is_pending(self, youtube: YouTubePublisher, api: FakeApi, monkeypatch):
        """Test that a video still processing after the last poll is pending."""
        monkeypatch.setattr(youtube_module, "YOUTUBE_POLL_MAX_ATTEMPTS", 2)
        _route_upload(api, _processing("processing"))

        result = await youtube.publish(_request())

        assert not result.success
        assert result.pending
        assert result.details["job_id"] == "vid-1"
        assert len(api.calls("GET", "v3/videos")) == 2

    @pytest.mark.asyncio
    async def test_missing_upload_url(self, youtube: YouTubePublisher, api: FakeApi):
        """Test that a session without a Location header fails."""
        api.add("GET", "launch.mp4", httpx.Response(200, content=b"data"))
        api.add("POST", "upload/youtube/v3/videos", {})

        result = await youtube.publish(_request())

        assert result.error == "YouTube did not return an upload URL"
        assert api.calls("PUT", "upload/youtube/v3/videos") == []

    @pytest.mark.asyncio
    async def test_image_rejected(self, youtube: YouTubePublisher, api: FakeApi):
        """Test that images are refused before any request."""
        request = PublishRequest(
            user_id="u1",
            content=ContentPayload(caption="Pic"),
            media=MediaDescriptor(url="https://cdn.example.com/pic.mp4", mime_type="image/jpeg"),
        )

        result = await youtube.publish(request)

        assert result.error == "YouTube only supports video uploads"
        assert api.requests == []


class TestYouTubeAnalytics:
    """Tests for statistics and delete."""

    @pytest.mark.asyncio
    async def test_statistics(self, youtube: YouTubePublisher, api: FakeApi):
        """Test that string statistics are converted to counts."""
        api.add(
            "GET",
            "v3/videos",
            {"items": [{"statistics": {"viewCount": "1500", "likeCount": "90", "commentCount": "12"}}]},
        )

        analytics = await youtube.get_analytics("vid-1", "u1")

        assert analytics.views == 1500
        assert analytics.likes == 90
        assert analytics.comments == 12
        assert analytics.extra["favorites"] == 0
        assert api.requests[0].url.params["part"] == "statistics"

    @pytest.mark.asyncio
    async def test_statistics_not_found(self, youtube: YouTubePublisher, api: FakeApi):
        """Test that an unknown video raises PublishError."""
        api.add("GET", "v3/videos", {"items": []})

        with pytest.raises(PublishError, match="not found"):
            await youtube.get_analytics("gone", "u1")

    @pytest.mark.asyncio
    async def test_delete(self, youtube: YouTubePublisher, api: FakeApi):
        """Test that delete sends the video id."""
        api.add("DELETE", "v3/videos", httpx.Response(204))

        assert await youtube.delete("vid-1", "u1")
        assert api.requests[0].url.params["id"] == "vid-1"
