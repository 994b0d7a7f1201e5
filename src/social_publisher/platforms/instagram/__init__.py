"""Instagram platform adapter.

Publishes through the Instagram Graph API container workflow. MetaPublisher
is the same adapter bound to the combined Meta connection.
"""

from .publisher import InstagramPublisher, MetaPublisher

__all__ = [
    "InstagramPublisher",
    "MetaPublisher",
]
