"""Pinterest publisher.

Creates image pins (and carousel pins) on a board through the v5 API.
content.settings["board_id"] is required; title, link and alt_text are
optional.

API Reference:
https://developers.pinterest.com/docs/api/v5/pins-create
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from ...constants.limits import (
    PINTEREST_ANALYTICS_DAYS,
    PINTEREST_DESCRIPTION_MAX_LENGTH,
    PINTEREST_TITLE_MAX_LENGTH,
)
from ...errors import PublishError
from ...publishing.models import (
    CarouselItem,
    CarouselRequest,
    CarouselResult,
    ContentPayload,
    PostAnalytics,
    PublishRequest,
    PublishResult,
)
from ...utils.timestamps import now_utc
from ..base import PlatformPublisher

ANALYTICS_METRICS = "IMPRESSION,SAVE,PIN_CLICK,OUTBOUND_CLICK"
PIN_URL = "https://www.pinterest.com/pin"


def sum_daily_metrics(payload: dict[str, Any]) -> dict[str, int]:
    """Total each metric over the days whose data is READY."""
    totals = {metric: 0 for metric in ANALYTICS_METRICS.split(",")}
    for day in (payload.get("all") or {}).get("daily_metrics") or []:
        if day.get("data_status") != "READY":
            continue
        metrics = day.get("metrics") or {}
        for metric in totals:
            totals[metric] += metrics.get(metric) or 0
    return totals


class PinterestPublisher(PlatformPublisher):
    """Pinterest pin publisher (images only)."""

    logger_name = "pinterest_api"

    @property
    def platform_name(self) -> str:
        return "pinterest"

    @property
    def api_url(self) -> str:
        return self.capability.api_base_url

    def _board_id(self, content: ContentPayload) -> str:
        board_id = content.settings.get("board_id")
        if not board_id:
            raise PublishError(
                "No board selected. Please select a Pinterest board to pin to.",
                platform=self.platform_name,
            )
        return str(board_id)

    def _pin_fields(self, content: ContentPayload) -> dict[str, Any]:
        settings = content.settings
        fields: dict[str, Any] = {}
        if settings.get("title"):
            fields["title"] = str(settings["title"])[:PINTEREST_TITLE_MAX_LENGTH]
        description = self.format_caption(content)
        if description:
            fields["description"] = description[:PINTEREST_DESCRIPTION_MAX_LENGTH]
        if settings.get("link"):
            fields["link"] = settings["link"]
        return fields

    def build_pin(self, request: PublishRequest) -> dict[str, Any]:
        """Request body for a single image pin."""
        board_id = self._board_id(request.content)
        media = request.media
        if media is None:
            raise PublishError("Pinterest requires an image for pins.", platform=self.platform_name)
        if media.is_video:
            raise PublishError(
                "Video pins are not supported. Please use an image.",
                platform=self.platform_name,
            )

        pin = {
            "board_id": board_id,
            "media_source": {"source_type": "image_url", "url": media.url},
            **self._pin_fields(request.content),
        }
        alt_text = request.content.settings.get("alt_text")
        if alt_text:
            pin["alt_text"] = str(alt_text)[:PINTEREST_DESCRIPTION_MAX_LENGTH]
        return pin

    def build_carousel_pin(self, request: CarouselRequest, items: list[CarouselItem]) -> dict[str, Any]:
        """Request body for a carousel pin (one slot per image)."""
        link = request.content.settings.get("link") or ""
        slots = []
        for index, item in enumerate(items, 1):
            slot: dict[str, Any] = {
                "title": (item.caption or f"Image {index}")[:PINTEREST_TITLE_MAX_LENGTH],
                "description": (item.caption or "")[:PINTEREST_DESCRIPTION_MAX_LENGTH],
                "link": link,
                "media_source": {"source_type": "image_url", "url": item.url},
            }
            if item.alt_text:
                slot["alt_text"] = item.alt_text[:PINTEREST_DESCRIPTION_MAX_LENGTH]
            slots.append(slot)

        return {
            "board_id": self._board_id(request.content),
            "carousel_slots": slots,
            **self._pin_fields(request.content),
        }

    async def _publish(self, request: PublishRequest) -> PublishResult:
        pin = self.build_pin(request)
        access_token = await self._access_token(request.user_id)
        data = await self._request_json("POST", f"{self.api_url}/pins", token=access_token, json=pin)
        return self._make_result(
            success=True,
            post_id=data.get("id"),
            url=f"{PIN_URL}/{data.get('id')}",
            board_id=pin["board_id"],
        )

    async def _publish_carousel(self, request: CarouselRequest, items: list[CarouselItem]) -> CarouselResult:
        pin = self.build_carousel_pin(request, items)
        access_token = await self._access_token(request.user_id)
        data = await self._request_json("POST", f"{self.api_url}/pins", token=access_token, json=pin)
        pin_id = data.get("id")
        return CarouselResult(
            success=True,
            platform=self.platform_name,
            post_id=pin_id,
            url=f"{PIN_URL}/{pin_id}",
            published_at=now_utc(),
            item_ids=[pin_id] if pin_id else [],
            items_published=len(items),
            details={"board_id": pin["board_id"]},
        )

    async def list_boards(self, user_id: str) -> list[dict[str, Any]]:
        """Boards the user can pin to (id, name, description, privacy)."""
        access_token = await self._access_token(user_id)
        data = await self._request_json(
            "GET",
            f"{self.api_url}/boards",
            token=access_token,
            params={"page_size": 100},
        )
        return [
            {
                "id": board.get("id"),
                "name": board.get("name"),
                "description": board.get("description"),
                "privacy": board.get("privacy"),
            }
            for board in data.get("items") or []
        ]

    async def get_analytics(self, post_id: str, user_id: str) -> PostAnalytics:
        access_token = await self._access_token(user_id)
        today = now_utc().date()
        data = await self._request_json(
            "GET",
            f"{self.api_url}/pins/{post_id}/analytics",
            token=access_token,
            params={
                "start_date": (today - timedelta(days=PINTEREST_ANALYTICS_DAYS)).isoformat(),
                "end_date": today.isoformat(),
                "metric_types": ANALYTICS_METRICS,
            },
        )
        totals = sum_daily_metrics(data)
        return PostAnalytics(
            views=totals["PIN_CLICK"],
            saves=totals["SAVE"],
            impressions=totals["IMPRESSION"],
            extra={"post_id": post_id, "outbound_clicks": totals["OUTBOUND_CLICK"]},
        )

    async def delete(self, post_id: str, user_id: str) -> bool:
        access_token = await self._access_token(user_id)
        await self._request("DELETE", f"{self.api_url}/pins/{post_id}", token=access_token)
        return True
