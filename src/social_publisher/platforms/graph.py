"""Shared plumbing for Meta Graph API adapters (Instagram, Facebook)."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from .base import PlatformPublisher

# Known Graph API error codes with user-facing explanations
GRAPH_ERROR_CODES: dict[int, dict[str, Any]] = {
    # Media processing
    2207032: {
        "name": "MEDIA_UPLOAD_FAILED",
        "user_message": "Instagram's servers failed to process the media. This is usually temporary.",
        "is_retryable": True,
    },
    2207026: {
        "name": "MEDIA_NOT_READY",
        "user_message": "The media container is not ready yet.",
        "is_retryable": True,
    },
    2207001: {
        "name": "MEDIA_TYPE_NOT_SUPPORTED",
        "user_message": "The media format is not supported.",
        "is_retryable": False,
    },
    2207003: {
        "name": "MEDIA_SIZE_ERROR",
        "user_message": "The media file is too large.",
        "is_retryable": False,
    },
    # Rate limiting
    4: {
        "name": "RATE_LIMIT",
        "user_message": "Application rate limit reached.",
        "is_retryable": True,
    },
    17: {
        "name": "USER_RATE_LIMIT",
        "user_message": "Too many requests for this account. Wait a few minutes.",
        "is_retryable": True,
    },
    # Auth
    190: {
        "name": "ACCESS_TOKEN_EXPIRED",
        "user_message": "The access token has expired. Reconnect the account.",
        "is_retryable": False,
    },
    10: {
        "name": "PERMISSION_DENIED",
        "user_message": "The app lacks permission to publish for this account.",
        "is_retryable": False,
    },
}

# Subcodes are more specific and take precedence over the main code
GRAPH_ERROR_SUBCODES: dict[int, dict[str, Any]] = {
    2207069: {
        "name": "DAILY_POSTING_LIMIT",
        "user_message": "Daily posting limit reached (about 25 posts per day). It resets at midnight UTC.",
        "is_retryable": False,
    },
}


def get_error_info(error_code: Optional[int], error_subcode: Optional[int] = None) -> dict[str, Any]:
    """Look up details for a Graph error code.

    Args:
        error_code: Main error code from the response.
        error_subcode: Sub-error code (takes precedence if known).

    Returns:
        Dict with name, user_message and is_retryable.
    """
    if error_subcode is not None and error_subcode in GRAPH_ERROR_SUBCODES:
        return GRAPH_ERROR_SUBCODES[error_subcode]
    if error_code is None:
        return {"name": "UNKNOWN", "user_message": "", "is_retryable": False}
    return GRAPH_ERROR_CODES.get(
        error_code,
        {"name": f"ERROR_{error_code}", "user_message": "", "is_retryable": True},
    )


def insight_values(payload: dict[str, Any]) -> dict[str, int]:
    """Flatten a Graph insights response into {metric: value}."""
    values: dict[str, int] = {}
    for entry in payload.get("data") or []:
        name = entry.get("name")
        if not name:
            continue
        if entry.get("total_value"):
            value = entry["total_value"].get("value", 0)
        else:
            points = entry.get("values") or [{}]
            value = points[-1].get("value", 0)
        values[name] = value if isinstance(value, int) else 0
    return values


class GraphPublisher(PlatformPublisher):
    """Base for adapters that talk to graph.facebook.com."""

    @property
    def graph_url(self) -> str:
        return self.capability.api_base_url

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:500]

        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            return response.text[:500]

        message = error.get("error_user_msg") or error.get("message") or "Unknown Graph API error"
        info = get_error_info(error.get("code"), error.get("error_subcode"))
        if info["user_message"]:
            return f"{message} [{info['name']}] {info['user_message']}"
        return str(message)

    async def _graph(
        self,
        method: str,
        path: str,
        access_token: str,
        params: Optional[dict[str, Any]] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Call a Graph endpoint with the token as a query parameter."""
        query = dict(params or {})
        query["access_token"] = access_token
        return await self._request_json(method, f"{self.graph_url}/{path}", params=query, data=data)
