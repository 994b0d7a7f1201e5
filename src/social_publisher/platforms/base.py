"""Abstract base class for platform publishers.

This module defines the contract every platform adapter implements, plus
the shared plumbing adapters build on: token lookup, HTTP with error
mapping, bounded polling, media download and result construction.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

import httpx

from ..constants.limits import HTTP_TIMEOUT_SECONDS, UPLOAD_TIMEOUT_SECONDS
from ..errors import (
    CredentialError,
    NotConnectedError,
    PublishError,
    PublishTimeoutError,
    ValidationError,
)
from ..publishing.models import (
    CarouselItem,
    CarouselRequest,
    CarouselResult,
    ContentPayload,
    PostAnalytics,
    PublishRequest,
    PublishResult,
)
from ..publishing.validator import ContentValidator, fit_caption, format_caption
from ..utils.timestamps import now_utc
from .capabilities import ContentLimits, PlatformCapability
from .registry import PlatformRegistry

if TYPE_CHECKING:
    from ..oauth.token_manager import TokenManager

T = TypeVar("T")

# Type for progress callbacks
ProgressCallback = Optional[Callable[[str, float, str], Awaitable[None]]]

PENDING_MESSAGE = "Still processing, check later"


class PlatformPublisher(ABC):
    """Abstract base class for platform publishers.

    Subclasses implement _publish, get_analytics and delete, and override
    _publish_carousel when the platform has a multi-item post type.
    publish() and publish_carousel() never raise; every failure comes back
    as a PublishResult with success=False.
    """

    logger_name = "publishing"

    def __init__(
        self,
        registry: PlatformRegistry,
        token_manager: "TokenManager",
        http_client: Optional[httpx.AsyncClient] = None,
        poll_interval: Optional[float] = None,
        progress_callback: ProgressCallback = None,
    ):
        """Initialize the publisher.

        Args:
            registry: Platform capability lookup.
            token_manager: Source of valid access tokens.
            http_client: Shared client; a short-lived client per request
                is used when omitted.
            poll_interval: Overrides every poll delay (tests use 0).
            progress_callback: Optional callback for progress updates.
        """
        self._registry = registry
        self._token_manager = token_manager
        self._http_client = http_client
        self._poll_interval = poll_interval
        self._progress_callback = progress_callback
        self._validator = ContentValidator(registry)
        self._logger = logging.getLogger(self.logger_name)

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """Return the platform identifier (e.g., 'instagram', 'tiktok')."""
        ...

    @property
    def capability(self) -> PlatformCapability:
        return self._registry.get(self.platform_name)

    @property
    def limits(self) -> ContentLimits:
        return self.capability.limits

    @property
    def display_name(self) -> str:
        return self.capability.display_name

    # =========================================================================
    # CONTRACT
    # =========================================================================

    @abstractmethod
    async def _publish(self, request: PublishRequest) -> PublishResult:
        """Run the platform protocol for one post. May raise."""
        ...

    @abstractmethod
    async def get_analytics(self, post_id: str, user_id: str) -> PostAnalytics:
        """Fetch engagement numbers for a published post."""
        ...

    @abstractmethod
    async def delete(self, post_id: str, user_id: str) -> bool:
        """Delete a published post. False when the platform does not allow it."""
        ...

    async def _publish_carousel(
        self,
        request: CarouselRequest,
        items: list[CarouselItem],
    ) -> CarouselResult:
        """Run the platform protocol for a multi-item post. May raise."""
        raise PublishError(f"{self.display_name} carousel not supported", platform=self.platform_name)

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    async def publish(self, request: PublishRequest) -> PublishResult:
        """Validate and publish one post.

        Returns:
            PublishResult. Timeouts come back as pending, credential errors
            ask the user to reconnect, everything else is a plain failure.
        """
        try:
            self._validator.validate_or_raise(self.platform_name, request.content, media=request.media)
            return await self._publish(request)
        except Exception as e:
            return self._failure(e)

    def prepare_carousel_items(self, items: list[CarouselItem]) -> tuple[list[CarouselItem], int]:
        """Order and trim carousel items to what the platform accepts.

        Returns:
            (kept items, number of items dropped)
        """
        constraints = self.capability.carousel
        ordered = sorted(items, key=lambda item: item.order)

        kept = [item for item in ordered if constraints.allow_video or not item.is_video]
        if kept and not constraints.allow_mixed:
            first_is_video = kept[0].is_video
            kept = [item for item in kept if item.is_video == first_is_video]

        dropped = len(ordered) - len(kept)
        if len(kept) > constraints.max_items:
            dropped += len(kept) - constraints.max_items
            kept = kept[: constraints.max_items]
        return kept, dropped

    async def publish_carousel(self, request: CarouselRequest) -> CarouselResult:
        """Publish a multi-item post.

        Videos the platform cannot take are skipped and extra items are cut
        at the platform maximum; both count as truncated. A single surviving
        item is published as a normal post.
        """
        truncated = 0
        try:
            items, truncated = self.prepare_carousel_items(request.items)
            if truncated:
                self._logger.info(f"Carousel trimmed | {self.platform_name} | dropped={truncated}")

            if not items:
                return self._make_carousel_result(
                    success=False,
                    error="No valid items for carousel",
                    items_truncated=truncated,
                )

            self._validator.validate_or_raise(self.platform_name, request.content, items=items)

            if len(items) == 1:
                single = await self.publish(
                    PublishRequest(
                        user_id=request.user_id,
                        content=request.content,
                        media=items[0].to_media(),
                        content_type=request.content_type,
                    )
                )
                return CarouselResult(
                    **vars(single),
                    item_ids=[single.post_id] if single.post_id else [],
                    items_published=1 if single.success else 0,
                    items_truncated=truncated,
                )

            minimum = self.capability.carousel.min_items
            if len(items) < minimum:
                return self._make_carousel_result(
                    success=False,
                    error=f"{self.display_name} carousels need at least {minimum} items",
                    items_truncated=truncated,
                )

            result = await self._publish_carousel(request, items)
            result.items_truncated = truncated
            return result
        except Exception as e:
            failed = self._failure(e)
            return CarouselResult(**vars(failed), items_truncated=truncated)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def format_caption(self, content: ContentPayload) -> str:
        return format_caption(content)

    def fit_caption(self, text: str) -> str:
        return fit_caption(text, self.limits)

    async def _access_token(self, user_id: str) -> str:
        token = await self._token_manager.get_valid_access_token(user_id, self.platform_name)
        if not token:
            raise NotConnectedError(self.platform_name, user_id)
        return token

    @asynccontextmanager
    async def _client(self, timeout: float) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
        else:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                yield client

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Best-effort platform error message from an error response."""
        try:
            body = response.json()
        except ValueError:
            return response.text[:500]
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            for key in ("message", "detail", "error_description", "title"):
                if body.get(key):
                    return str(body[key])
            if isinstance(error, str):
                return error
        return response.text[:500]

    async def _request(
        self,
        method: str,
        url: str,
        *,
        token: Optional[str] = None,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        data: Optional[dict[str, Any]] = None,
        content: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> httpx.Response:
        """Send a request to the platform.

        Args:
            method: HTTP method.
            url: Absolute URL.
            token: Bearer token, if the call needs one.
            params, json, data, content: Passed through to httpx.
            headers: Extra headers.
            timeout: Request timeout when no shared client is set.

        Returns:
            The 2xx response.

        Raises:
            PublishError: Non-2xx response (body captured) or transport error.
        """
        request_headers = dict(headers or {})
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        # Log the call without secrets
        log_params = sorted(k for k in (params or {}) if k != "access_token")
        self._logger.info(f"{self.display_name} API: {method} {url.split('?')[0]} | params: {log_params}")

        try:
            async with self._client(timeout) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    data=data,
                    content=content,
                    headers=request_headers,
                )
        except httpx.HTTPError as e:
            self._logger.error(f"{self.display_name} API transport error: {type(e).__name__}: {e}")
            raise PublishError(
                f"Network error calling {self.display_name}: {e}",
                platform=self.platform_name,
            ) from e

        if not response.is_success:
            message = self._error_message(response)
            self._logger.error(f"{self.display_name} API error | HTTP {response.status_code} | {message}")
            raise PublishError(
                f"{self.display_name} API error ({response.status_code}): {message}",
                platform=self.platform_name,
                status_code=response.status_code,
                detail=response.text,
            )
        return response

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Like _request, returning the parsed JSON body ({} when empty)."""
        response = await self._request(method, url, **kwargs)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise PublishError(
                f"{self.display_name} returned invalid JSON",
                platform=self.platform_name,
                status_code=response.status_code,
                detail=response.text[:500],
            ) from e

    async def _fetch_media_bytes(self, url: str) -> bytes:
        """Download a media file from its public URL."""
        response = await self._request("GET", url, timeout=UPLOAD_TIMEOUT_SECONDS)
        return response.content

    async def _poll(
        self,
        check: Callable[[], Awaitable[Optional[T]]],
        max_attempts: int,
        interval: float,
        job_id: Optional[str] = None,
    ) -> T:
        """Call check until it returns a value.

        check returns None to keep waiting and raises to abort.

        Raises:
            PublishTimeoutError: No result after max_attempts checks.
        """
        delay = self._poll_interval if self._poll_interval is not None else interval
        for attempt in range(1, max_attempts + 1):
            outcome = await check()
            if outcome is not None:
                return outcome
            if attempt < max_attempts:
                await asyncio.sleep(delay)

        self._logger.warning(f"{self.display_name} polling gave up | job={job_id} | attempts={max_attempts}")
        raise PublishTimeoutError(
            f"{self.display_name} is still processing after {max_attempts} checks",
            platform=self.platform_name,
            job_id=job_id,
            attempts=max_attempts,
        )

    async def _emit_progress(self, stage: str, progress: float, message: str) -> None:
        """Emit a progress update if callback is set."""
        if self._progress_callback:
            await self._progress_callback(stage, progress, message)

    def _make_result(
        self,
        success: bool,
        post_id: Optional[str] = None,
        url: Optional[str] = None,
        error: Optional[str] = None,
        message: Optional[str] = None,
        **details: Any,
    ) -> PublishResult:
        """Create a PublishResult for this platform."""
        return PublishResult(
            success=success,
            platform=self.platform_name,
            post_id=post_id,
            url=url,
            message=message,
            error=error,
            published_at=now_utc() if success else None,
            details=details,
        )

    def _make_carousel_result(
        self,
        success: bool,
        post_id: Optional[str] = None,
        url: Optional[str] = None,
        error: Optional[str] = None,
        item_ids: Optional[list[str]] = None,
        items_truncated: int = 0,
        **details: Any,
    ) -> CarouselResult:
        """Create a CarouselResult for this platform."""
        ids = list(item_ids or [])
        return CarouselResult(
            success=success,
            platform=self.platform_name,
            post_id=post_id,
            url=url,
            error=error,
            published_at=now_utc() if success else None,
            details=details,
            item_ids=ids,
            items_published=len(ids) if success else 0,
            items_truncated=items_truncated,
        )

    def _failure(self, error: Exception) -> PublishResult:
        """Convert an exception into a failed result."""
        result = self._make_result(success=False, error=str(error))
        result.error_type = type(error).__name__

        if isinstance(error, ValidationError):
            result.message = "Content does not meet platform limits"
            result.details["validation_errors"] = [e.to_dict() for e in error.errors]
        elif isinstance(error, PublishTimeoutError):
            result.pending = True
            result.message = PENDING_MESSAGE
            if error.job_id:
                result.details["job_id"] = error.job_id
        elif isinstance(error, CredentialError):
            result.message = f"Reconnect {self.display_name}"
        elif isinstance(error, PublishError):
            if error.status_code is not None:
                result.details["status_code"] = error.status_code
        else:
            result.error = f"{self.display_name} publish failed: {error}"

        log = self._logger.warning if result.pending else self._logger.error
        log(f"{self.display_name} publish {'pending' if result.pending else 'failed'}: {result.error_type}: {error}")
        return result
