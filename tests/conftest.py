"""Shared fixtures: a fake aiohttp-style session and a client wired to it."""

from typing import Any, Callable, Optional, Union

import aiohttp
import pytest

from qbz.api.client import QobuzClient
from qbz.models.auth import BundleTokens, UserSession


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse used as an async context manager."""

    def __init__(
        self,
        status: int = 200,
        json_data: Any = None,
        text: str = "",
        body: bytes = b"",
    ):
        self.status = status
        self._json = json_data if json_data is not None else {}
        self._text = text
        self._body = body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def json(self):
        return self._json

    async def text(self):
        return self._text

    async def read(self):
        return self._body

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientConnectionError(f"HTTP {self.status}")


Route = Union[FakeResponse, Callable[[dict[str, Any]], FakeResponse]]


class FakeSession:
    """
    Routes requests to canned responses by URL suffix and records every call
    as (method, url, kwargs).
    """

    def __init__(self, routes: Optional[dict[str, Route]] = None):
        self.routes = routes or {}
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.closed = False

    def _respond(self, method: str, url: str, kwargs: dict[str, Any]) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        for suffix, route in self.routes.items():
            if url.endswith(suffix):
                return route(kwargs) if callable(route) else route
        return FakeResponse(status=404)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._respond("GET", url, kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._respond("POST", url, kwargs)

    async def close(self):
        self.closed = True

    def calls_to(self, suffix: str) -> list[tuple[str, str, dict[str, Any]]]:
        return [call for call in self.calls if call[1].endswith(suffix)]


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(session):
    """A client that already holds bundle tokens, talking to the fake session."""
    api_client = QobuzClient(session=session)
    api_client.tokens = BundleTokens(app_id="123456789", secrets=["s1", "s2", "s3"])
    return api_client


@pytest.fixture
def logged_in_client(client):
    client.user_session = UserSession(
        user_auth_token="user-token",
        display_name="Jane",
        subscription_label="Studio",
    )
    return client
