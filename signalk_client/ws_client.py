"""WebSocket client wrapper for the Signal K stream."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed

from .errors import SignalKConnectionError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class SignalKWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class SignalKWsMessage:
    """Normalized WebSocket message payload."""

    type: SignalKWsMessageType
    data: str | None = None
    error: BaseException | None = None


class SignalKWsClient:
    """Wrapper around the websockets library for a Signal K stream."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    @property
    def close_code(self) -> int | None:
        """Close code of the underlying connection, once closed."""
        if self._ws is None:
            return None
        return self._ws.close_code

    async def connect(
        self,
        url: str,
        *,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the stream address."""
        self._ws = await connect_websocket(
            url,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    async def send_text(self, frame: str) -> None:
        """Send an already-serialized frame."""
        if self._ws is None:
            raise SignalKConnectionError("Signal K stream is not connected")
        await self._ws.send(frame)

    def __aiter__(self) -> AsyncIterator[SignalKWsMessage]:
        if self._ws is None:
            raise SignalKConnectionError("Signal K stream is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[SignalKWsMessage]:
        if self._ws is None:
            raise SignalKConnectionError("Signal K stream is not connected")

        try:
            async for msg in self._ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosed:
            yield SignalKWsMessage(type=SignalKWsMessageType.CLOSED)
        except Exception as err:
            yield SignalKWsMessage(type=SignalKWsMessageType.ERROR, error=err)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield SignalKWsMessage(type=SignalKWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: Any) -> SignalKWsMessage | None:
        """Normalize raw frames; binary frames are skipped."""
        if isinstance(msg, bytes):
            return None
        if isinstance(msg, str):
            return SignalKWsMessage(SignalKWsMessageType.TEXT, msg)
        return SignalKWsMessage(SignalKWsMessageType.TEXT, str(msg))
