"""Shared test fixtures and configuration.

Provides settings, a fixed clock, a token cipher and a routing fake of the
platform HTTP APIs built on httpx.MockTransport. Nothing here touches the
network.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Union
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs

import httpx
import pytest

from social_publisher.config import ClientCredentials, Settings
from social_publisher.crypto import TokenCipher
from social_publisher.oauth.store import InMemoryConnectionStore
from social_publisher.platforms import PlatformRegistry

TEST_KEY = "11" * 32
STATE_SECRET = "state-secret-for-tests"
BASE_URL = "https://app.example.com"
START = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

Responder = Union[dict, list, httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeApi:
    """Routes requests to canned responses and records every request.

    Routes match on HTTP method and the end of the URL path. Several
    responses for one route are returned in order; the last one repeats.

    Usage:
        api.add("GET", "me/accounts", {"data": []})
        api.add("POST", "media", {"id": "c1"})
        client = api.client()
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._routes: list[tuple[str, str, list[Responder]]] = []

    def add(self, method: str, path_suffix: str, *responses: Responder) -> None:
        self._routes.append((method.upper(), path_suffix, list(responses)))

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, suffix, responses in self._routes:
            if request.method != method or not request.url.path.endswith(suffix):
                continue
            responder = responses.pop(0) if len(responses) > 1 else responses[0]
            if callable(responder) and not isinstance(responder, httpx.Response):
                return responder(request)
            if isinstance(responder, httpx.Response):
                return httpx.Response(
                    responder.status_code,
                    headers=responder.headers,
                    content=responder.content,
                )
            return httpx.Response(200, json=responder)
        return httpx.Response(404, json={"error": {"message": f"no route for {request.method} {request.url}"}})

    def calls(self, method: str, path_suffix: str) -> list[httpx.Request]:
        """Recorded requests matching a route."""
        return [
            r for r in self.requests if r.method == method.upper() and r.url.path.endswith(path_suffix)
        ]

    @staticmethod
    def json_body(request: httpx.Request) -> Any:
        return json.loads(request.content)

    @staticmethod
    def form_body(request: httpx.Request) -> dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.fixture
def registry() -> PlatformRegistry:
    """Registry over the built-in capability table."""
    return PlatformRegistry()


@pytest.fixture
def settings(registry: PlatformRegistry) -> Settings:
    """Settings with keys and client credentials for every platform."""
    return Settings(
        token_encryption_key=TEST_KEY,
        oauth_state_secret=STATE_SECRET,
        app_base_url=BASE_URL,
        oauth_clients={
            name: ClientCredentials(client_id=f"{name}-id", client_secret=f"{name}-secret")
            for name in registry.available_platforms()
        },
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def cipher() -> TokenCipher:
    return TokenCipher.from_key_string(TEST_KEY)


@pytest.fixture
def store() -> InMemoryConnectionStore:
    return InMemoryConnectionStore()


@pytest.fixture
def api() -> FakeApi:
    """Fresh fake platform API."""
    return FakeApi()


@pytest.fixture
def token_manager() -> MagicMock:
    """Stand-in TokenManager that always hands out the token "tok".

    Returns:
        MagicMock with async get_valid_access_token and get_connection.
    """
    manager = MagicMock()
    manager.get_valid_access_token = AsyncMock(return_value="tok")
    manager.get_connection = AsyncMock(return_value=None)
    return manager


@pytest.fixture
def make_publisher(registry: PlatformRegistry, token_manager: MagicMock, api: FakeApi):
    """Build an adapter wired to the fake API with polling delays disabled.

    Usage:
        publisher = make_publisher(InstagramPublisher)
    """

    def _make(publisher_cls, **kwargs):
        return publisher_cls(registry, token_manager, http_client=api.client(), poll_interval=0, **kwargs)

    return _make
