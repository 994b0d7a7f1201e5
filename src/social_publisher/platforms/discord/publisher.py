"""Discord publisher.

Publishes through a channel webhook. The webhook URL comes from
content.settings["webhook_url"] or from the connection metadata stored
when the user granted the webhook.incoming scope. Posting to a webhook
needs no access token; the OAuth token is only used to list guilds.

API Reference:
https://discord.com/developers/docs/resources/webhook
"""

from __future__ import annotations

from typing import Any, Optional

from ...constants.limits import (
    DISCORD_CONTENT_MAX_LENGTH,
    DISCORD_EMBED_COLOR,
    DISCORD_EMBED_DESCRIPTION_MAX_LENGTH,
    DISCORD_EMBED_MAX_COUNT,
    DISCORD_EMBED_TITLE_MAX_LENGTH,
)
from ...errors import PublishError
from ...publishing.models import (
    CarouselItem,
    CarouselRequest,
    CarouselResult,
    ContentPayload,
    MediaDescriptor,
    PostAnalytics,
    PublishRequest,
    PublishResult,
)
from ...utils.timestamps import now_utc
from ..base import PlatformPublisher

NO_WEBHOOK_MESSAGE = (
    "No Discord webhook configured. Reconnect Discord or provide a webhook URL in settings."
)


def message_url(data: dict[str, Any]) -> Optional[str]:
    if data.get("id") and data.get("channel_id"):
        return f"https://discord.com/channels/@me/{data['channel_id']}/{data['id']}"
    return None


class DiscordPublisher(PlatformPublisher):
    """Discord webhook publisher.

    Text-only posts go out as plain message content. Posts with media
    become a single embed; carousels become up to ten image embeds.
    """

    logger_name = "discord_api"

    @property
    def platform_name(self) -> str:
        return "discord"

    async def _webhook_url(self, user_id: str, settings: Optional[dict[str, Any]] = None) -> str:
        if settings and settings.get("webhook_url"):
            return str(settings["webhook_url"]).rstrip("/")
        connection = await self._token_manager.get_connection(user_id, self.platform_name)
        if connection and connection.active and connection.metadata.get("webhook_url"):
            return str(connection.metadata["webhook_url"]).rstrip("/")
        raise PublishError(NO_WEBHOOK_MESSAGE, platform=self.platform_name)

    def build_payload(self, content: ContentPayload, media: Optional[MediaDescriptor]) -> dict[str, Any]:
        """Build the webhook message body for one post."""
        caption = self.format_caption(content)
        settings = content.settings

        if media is None:
            return {"content": caption[:DISCORD_CONTENT_MAX_LENGTH]}

        payload: dict[str, Any] = {}
        embed: dict[str, Any] = {}
        if settings.get("title"):
            embed["title"] = str(settings["title"])[:DISCORD_EMBED_TITLE_MAX_LENGTH]
        if caption:
            embed["description"] = caption[:DISCORD_EMBED_DESCRIPTION_MAX_LENGTH]

        if media.is_video:
            embed["video"] = {"url": media.url}
            # Webhook embeds do not play video; the bare URL gets Discord's player
            payload["content"] = media.url
        else:
            embed["image"] = {"url": media.url}

        if settings.get("link"):
            embed["url"] = settings["link"]
        embed["color"] = DISCORD_EMBED_COLOR
        embed["timestamp"] = now_utc().isoformat()

        payload["embeds"] = [embed]
        return payload

    def build_carousel_payload(self, content: ContentPayload, items: list[CarouselItem]) -> dict[str, Any]:
        """Build a message with one image embed per item."""
        caption = self.format_caption(content)
        embeds: list[dict[str, Any]] = [{"image": {"url": item.url}} for item in items[:DISCORD_EMBED_MAX_COUNT]]
        payload: dict[str, Any] = {"embeds": embeds}

        if len(caption) > DISCORD_CONTENT_MAX_LENGTH:
            payload["content"] = caption[:DISCORD_CONTENT_MAX_LENGTH]
        elif caption:
            embeds[0]["description"] = caption
        return payload

    async def _send(self, webhook_url: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request_json("POST", webhook_url, params={"wait": "true"}, json=payload)

    async def _publish(self, request: PublishRequest) -> PublishResult:
        webhook_url = await self._webhook_url(request.user_id, request.content.settings)
        data = await self._send(webhook_url, self.build_payload(request.content, request.media))
        return self._make_result(
            success=True,
            post_id=data.get("id"),
            url=message_url(data),
            channel_id=data.get("channel_id"),
        )

    async def _publish_carousel(self, request: CarouselRequest, items: list[CarouselItem]) -> CarouselResult:
        webhook_url = await self._webhook_url(request.user_id, request.content.settings)
        data = await self._send(webhook_url, self.build_carousel_payload(request.content, items))
        message_id = data.get("id")
        return CarouselResult(
            success=True,
            platform=self.platform_name,
            post_id=message_id,
            url=message_url(data),
            published_at=now_utc(),
            item_ids=[message_id] if message_id else [],
            items_published=len(items[:DISCORD_EMBED_MAX_COUNT]),
            details={"channel_id": data.get("channel_id")},
        )

    async def list_guilds(self, user_id: str) -> list[dict[str, Any]]:
        """Guilds the user belongs to (id, name, icon, owner)."""
        access_token = await self._access_token(user_id)
        guilds = await self._request_json(
            "GET",
            f"{self.capability.api_base_url}/users/@me/guilds",
            token=access_token,
        )
        return [
            {
                "id": guild.get("id"),
                "name": guild.get("name"),
                "icon": guild.get("icon"),
                "owner": bool(guild.get("owner")),
            }
            for guild in guilds or []
        ]

    async def get_analytics(self, post_id: str, user_id: str) -> PostAnalytics:
        # Webhook messages have no analytics
        return PostAnalytics(extra={"post_id": post_id})

    async def delete(self, post_id: str, user_id: str) -> bool:
        try:
            webhook_url = await self._webhook_url(user_id)
        except PublishError:
            self._logger.warning(f"Cannot delete Discord message without a webhook | {post_id}")
            return False
        await self._request("DELETE", f"{webhook_url}/messages/{post_id}")
        return True
