"""X (Twitter) platform adapter."""

from .publisher import TwitterPublisher

__all__ = ["TwitterPublisher"]
