"""Pinterest platform adapter."""

from .publisher import PinterestPublisher

__all__ = ["PinterestPublisher"]
