"""Opening the Signal K delta stream over websockets."""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from .errors import (
    SignalKConnectionError,
    SignalKHandshakeError,
    SignalKTimeout,
)


async def connect_websocket(
    url: str,
    *,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Open the delta stream at ``url``.

    Library failures come back as client errors so the connection manager
    can treat every failed open as one failure episode.

    Args:
        url: Stream address from ``build_uri(options, "stream")``
        ping_interval: Keepalive ping interval in seconds, None to disable
        timeout: Seconds allowed for the opening handshake
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise SignalKTimeout(
            f"Signal K stream at {url} did not open within {timeout}s"
        ) from err
    except (InvalidHandshake, InvalidURI) as err:
        raise SignalKHandshakeError(
            f"Signal K stream handshake rejected: {err}"
        ) from err
    except (OSError, WebSocketException) as err:
        raise SignalKConnectionError(
            f"Signal K stream connection failed: {err}"
        ) from err
