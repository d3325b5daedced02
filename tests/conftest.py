"""Pytest configuration and fixtures for signalk_client tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from signalk_client import ConnectionOptions, HttpResponse
from signalk_client.ws_client import SignalKWsMessage, SignalKWsMessageType


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    session = MagicMock(spec=aiohttp.ClientSession)
    session.closed = False
    return session


def create_mock_response(
    status: int = 200,
    text_data: str = "",
    *,
    reason: str = "OK",
    headers: dict[str, str] | None = None,
) -> AsyncMock:
    """Create a configured mock aiohttp response.

    Args:
        status: HTTP status code
        text_data: Data to return from text() call
        reason: HTTP reason phrase
        headers: Response headers

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status
    response.reason = reason
    response.headers = headers or {}
    response.text.return_value = text_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


def json_response(data: Any, status: int = 200, reason: str = "OK") -> HttpResponse:
    """Build a request-transport response carrying JSON."""
    return HttpResponse(
        status=status,
        reason=reason,
        headers={"Content-Type": "application/json; charset=utf-8"},
        body=json.dumps(data),
    )


def text_response(text: str, status: int = 200, reason: str = "OK") -> HttpResponse:
    return HttpResponse(
        status=status,
        reason=reason,
        headers={"Content-Type": "text/plain"},
        body=text,
    )


async def settle(rounds: int = 50) -> None:
    """Let scheduled tasks run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeWsClient:
    """In-memory stand-in for SignalKWsClient."""

    def __init__(self, *, fail_with: Exception | None = None) -> None:
        self.fail_with = fail_with
        self.urls: list[str] = []
        self.sent: list[str] = []
        self.closed = False
        self.close_code: int | None = None
        self._queue: asyncio.Queue[SignalKWsMessage] = asyncio.Queue()

    async def connect(
        self, url: str, *, ping_interval: int | None = 20, timeout: float = 15.0
    ) -> None:
        self.urls.append(url)
        if self.fail_with is not None:
            raise self.fail_with

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.close_code = 1000
            self._queue.put_nowait(SignalKWsMessage(SignalKWsMessageType.CLOSED))

    async def send_text(self, frame: str) -> None:
        self.sent.append(frame)

    def push_text(self, data: Any) -> None:
        """Deliver a frame from the server."""
        if not isinstance(data, str):
            data = json.dumps(data)
        self._queue.put_nowait(SignalKWsMessage(SignalKWsMessageType.TEXT, data))

    def push_closed(self) -> None:
        """Simulate the server dropping the stream."""
        self.close_code = 1006
        self._queue.put_nowait(SignalKWsMessage(SignalKWsMessageType.CLOSED))

    def push_error(self, err: BaseException | None = None) -> None:
        self._queue.put_nowait(
            SignalKWsMessage(SignalKWsMessageType.ERROR, error=err or OSError("boom"))
        )

    def __aiter__(self):
        return self._iter_messages()

    async def _iter_messages(self):
        while True:
            msg = await self._queue.get()
            yield msg
            if msg.type is not SignalKWsMessageType.TEXT:
                return


class FakeWsFactory:
    """Callable handing out FakeWsClient instances, optionally failing."""

    def __init__(self, failures: list[Exception | None] | None = None) -> None:
        self.clients: list[FakeWsClient] = []
        self._failures = list(failures or [])

    def __call__(self) -> FakeWsClient:
        fail_with = self._failures.pop(0) if self._failures else None
        client = FakeWsClient(fail_with=fail_with)
        self.clients.append(client)
        return client

    @property
    def last(self) -> FakeWsClient:
        return self.clients[-1]


@pytest.fixture
def ws_factory() -> FakeWsFactory:
    return FakeWsFactory()


@pytest.fixture
def http_transport() -> AsyncMock:
    """Request transport answering every call with an empty JSON object."""
    return AsyncMock(return_value=json_response({}))


def make_options(**overrides: Any) -> ConnectionOptions:
    """Options for a local test server with instant reconnects."""
    values: dict[str, Any] = {
        "hostname": "localhost",
        "port": 3000,
        "retry_base_delay": 0.0,
        "retry_max_delay": 0.0,
    }
    values.update(overrides)
    return ConnectionOptions(**values)
