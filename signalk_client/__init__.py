"""Signal K client: connection lifecycle over WebSocket and REST."""

__version__ = "0.1.0"

from .auth import Credential, login
from .connection import ConnectionState, SignalKConnection
from .errors import (
    AuthError,
    FrameEncodeError,
    HttpError,
    NotConnectedError,
    RetryExhausted,
    SignalKClientError,
    SignalKConnectionError,
    SignalKHandshakeError,
    SignalKTimeout,
    TransportError,
)
from .events import EventRegistry, SignalKEvent
from .http import HttpRequest, HttpResponse, SignalKHttpTransport
from .options import ConnectionOptions
from .protocol import GenericFrame, HandshakeFrame, decode_frame, encode_frame
from .uri import build_uri, rewrite_request_url
from .ws import connect_websocket
from .ws_client import SignalKWsClient, SignalKWsMessage, SignalKWsMessageType

__all__ = [
    "AuthError",
    "ConnectionOptions",
    "ConnectionState",
    "Credential",
    "EventRegistry",
    "FrameEncodeError",
    "GenericFrame",
    "HandshakeFrame",
    "HttpError",
    "HttpRequest",
    "HttpResponse",
    "NotConnectedError",
    "RetryExhausted",
    "SignalKClientError",
    "SignalKConnection",
    "SignalKConnectionError",
    "SignalKEvent",
    "SignalKHandshakeError",
    "SignalKHttpTransport",
    "SignalKTimeout",
    "SignalKWsClient",
    "SignalKWsMessage",
    "SignalKWsMessageType",
    "TransportError",
    "__version__",
    "build_uri",
    "connect_websocket",
    "decode_frame",
    "encode_frame",
    "login",
    "rewrite_request_url",
]
