"""LinkedIn platform adapters.

LinkedInPublisher posts to a member's feed; LinkedInOrgPublisher posts as
a Company Page the member administers.
"""

from .organization import LinkedInOrgPublisher
from .publisher import LinkedInPublisher

__all__ = [
    "LinkedInPublisher",
    "LinkedInOrgPublisher",
]
