"""TikTok platform adapter.

Uploads videos to the creator's TikTok inbox through the Content Posting API.
"""

from .publisher import TikTokPublisher, chunk_plan

__all__ = [
    "TikTokPublisher",
    "chunk_plan",
]
