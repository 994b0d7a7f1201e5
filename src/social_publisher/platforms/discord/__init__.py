"""Discord platform adapter (channel webhooks)."""

from .publisher import DiscordPublisher

__all__ = ["DiscordPublisher"]
