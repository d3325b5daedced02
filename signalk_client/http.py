"""HTTP request transport for Signal K REST endpoints."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

import aiohttp

from .errors import SignalKConnectionError, SignalKTimeout

_LOGGER = logging.getLogger(__name__)

JSON_HEADERS: Mapping[str, str] = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


@dataclass(frozen=True, slots=True)
class HttpRequest:
    """Unary request handed to the request transport."""

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str | bytes | None = None
    credentialed: bool = False


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """Response returned by the request transport."""

    status: int
    reason: str
    headers: Mapping[str, str]
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return ""


RequestTransport = Callable[[HttpRequest], Awaitable[HttpResponse]]


class SignalKHttpTransport:
    """aiohttp-backed request transport.

    Owns its ClientSession only when none is passed in.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        timeout: float = 10.0,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def __call__(self, request: HttpRequest) -> HttpResponse:
        """Issue a request and read the whole body as text."""
        session = self._get_session()
        _LOGGER.debug("%s %s", request.method, request.url)
        try:
            async with session.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                data=request.body,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                body = await resp.text()
                return HttpResponse(
                    status=resp.status,
                    reason=resp.reason or "",
                    headers=dict(resp.headers),
                    body=body,
                )
        except TimeoutError as err:
            raise SignalKTimeout(f"Request to {request.url} timed out") from err
        except aiohttp.ClientError as err:
            raise SignalKConnectionError(f"Request to {request.url} failed") from err

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None
