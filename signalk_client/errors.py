"""Client error types for Signal K server interactions."""

from __future__ import annotations


class SignalKClientError(Exception):
    """Base error for Signal K client failures."""


class SignalKTimeout(SignalKClientError):
    """Timeout while communicating with the server."""


class SignalKConnectionError(SignalKClientError):
    """Network connection to the server failed."""


class SignalKHandshakeError(SignalKClientError):
    """WebSocket handshake failed."""


class NotConnectedError(SignalKClientError):
    """No live stream is available for sending."""


class FrameEncodeError(SignalKClientError):
    """Outbound payload could not be serialized."""


class AuthError(SignalKClientError):
    """Login exchange returned something other than a token."""


class HttpError(SignalKClientError):
    """Non-2xx HTTP response from the server."""

    def __init__(self, status: int, reason: str, url: str | None = None) -> None:
        message = f"{status} {reason}"
        if url is not None:
            message = f"Error fetching {url}: {message}"
        super().__init__(message)
        self.status = status
        self.reason = reason
        self.url = url


class RetryExhausted(SignalKClientError):
    """Reconnect attempts reached the configured maximum."""

    def __init__(self, retries: int) -> None:
        super().__init__(f"Gave up reconnecting after {retries} retries")
        self.retries = retries


# The stream transport failure surfaced through the ``error`` signal.
TransportError = SignalKConnectionError
