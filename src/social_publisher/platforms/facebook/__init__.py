"""Facebook Page platform adapter."""

from .publisher import FacebookPublisher

__all__ = ["FacebookPublisher"]
