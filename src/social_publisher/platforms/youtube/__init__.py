"""YouTube platform adapter.

Uploads videos (and Shorts) through the Data API v3 resumable upload.
"""

from .publisher import YouTubePublisher, video_metadata

__all__ = [
    "YouTubePublisher",
    "video_metadata",
]
