"""Reddit platform adapter."""

from .publisher import RedditPublisher, extract_subreddit, submission_kind

__all__ = [
    "RedditPublisher",
    "extract_subreddit",
    "submission_kind",
]
