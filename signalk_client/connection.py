"""Connection lifecycle manager for a Signal K server.

A ``SignalKConnection`` owns both transports of one server endpoint:

- the REST API (login, discrete requests) over HTTP
- the delta stream over a WebSocket

It logs in when authentication is enabled, opens the stream, feeds inbound
frames through the codec, and decides after every stream failure whether
to reconnect (with backoff) or to stop and release its listeners.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

import aiohttp

from .auth import Credential, login
from .errors import (
    HttpError,
    NotConnectedError,
    RetryExhausted,
    SignalKClientError,
    SignalKConnectionError,
)
from .events import EventHandler, EventRegistry, SignalKEvent
from .http import (
    JSON_HEADERS,
    HttpRequest,
    RequestTransport,
    SignalKHttpTransport,
)
from .options import ConnectionOptions
from .protocol import HandshakeFrame, decode_frame, encode_frame
from .uri import build_uri, is_login_path, rewrite_request_url
from .ws_client import SignalKWsClient, SignalKWsMessageType

_LOGGER = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Lifecycle states of a connection."""

    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    STREAM_CONNECTING = "stream_connecting"
    CONNECTED = "connected"
    CLOSING = "closing"
    ERROR = "error"
    TERMINATED = "terminated"


class SignalKConnection:
    """Single connection to a Signal K server.

    Usage:
        options = ConnectionOptions(hostname="demo.signalk.org", port=443, use_tls=True)
        connection = SignalKConnection(options)
        connection.on("message", my_delta_handler)
        await connection.start()
        await connection.send({"context": "vessels.self", "subscribe": [...]})
        data = await connection.fetch("/vessels/self/navigation/position")
        await connection.close()

    Constructing with ``autoconnect=True`` (the default) schedules the first
    connection attempt on the running event loop.
    """

    def __init__(
        self,
        options: ConnectionOptions,
        *,
        session: aiohttp.ClientSession | None = None,
        http_transport: RequestTransport | None = None,
        ws_client_factory: Callable[[], SignalKWsClient] = SignalKWsClient,
        autoconnect: bool = True,
    ) -> None:
        self.options = options
        self.http_uri = build_uri(options, "request")
        self.ws_uri = build_uri(options, "stream")

        # Lifecycle flags
        self.should_disconnect = False
        self.connected = False
        self.is_connecting = False
        self.fetch_ready = False
        self.last_message: float | None = None
        self._state = ConnectionState.IDLE

        # Retry accounting
        self._retries = 0
        self._consecutive_failures = 0
        self._failure_counted = False
        self._close_requested = False

        # Authentication
        self._authenticated = False
        self._credential = Credential.empty()

        # Server identity
        self._connection_info: dict[str, Any] | None = None
        self._self_id: str | None = None

        # Transports
        if http_transport is None:
            self._http: RequestTransport = SignalKHttpTransport(
                session, timeout=options.request_timeout
            )
            self._owns_http = True
        else:
            self._http = http_transport
            self._owns_http = False
        self._ws_client_factory = ws_client_factory
        self._ws: SignalKWsClient | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None

        self._events = EventRegistry()

        if autoconnect:
            self._reconnect_task = asyncio.get_running_loop().create_task(
                self.reconnect(initial=True)
            )

    # -------------------------------------------------------------------------
    # Public API: Observable state
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def retries(self) -> int:
        """Stream failures counted over the lifetime of this connection."""
        return self._retries

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def connection_info(self) -> dict[str, Any] | None:
        """Latest server hello, replaced on every handshake frame."""
        return self._connection_info

    @property
    def self_id(self) -> str | None:
        """Identifier of the vessel this server reports as ``self``."""
        return self._self_id

    def status(self) -> dict[str, bool]:
        return {
            "connecting": self.is_connecting,
            "connected": self.connected,
            "ready": self.fetch_ready,
        }

    # -------------------------------------------------------------------------
    # Public API: Signals
    # -------------------------------------------------------------------------

    def on(
        self, event: SignalKEvent | str, handler: EventHandler
    ) -> Callable[[], None]:
        """Register a signal handler; returns a callable that removes it."""
        return self._events.on(event, handler)

    def once(
        self, event: SignalKEvent | str, handler: EventHandler
    ) -> Callable[[], None]:
        return self._events.once(event, handler)

    def off(self, event: SignalKEvent | str, handler: EventHandler) -> None:
        self._events.off(event, handler)

    # -------------------------------------------------------------------------
    # Public API: Connection management
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Run the first connection attempt.

        Waits for the attempt scheduled at construction when there is one.
        Does nothing while a stream is open or an attempt is in flight.
        """
        task = self._reconnect_task
        if task is not None and not task.done():
            await asyncio.shield(task)
            return
        if self.connected or self.is_connecting or self._ws is not None:
            _LOGGER.debug("[%s] Start skipped: already running", self.options.hostname)
            return
        await self.reconnect(initial=True)

    async def disconnect(self) -> None:
        """Ask the connection to stop after the stream closes."""
        _LOGGER.debug("[%s] Disconnect requested", self.options.hostname)
        self.should_disconnect = True
        await self.reconnect()

    async def reconnect(self, initial: bool = False) -> None:
        """Reconnect now, or stop if policy says so.

        ``initial`` skips the retry limit, the reconnect setting and any
        pending disconnect request.
        """
        await self._reconnect(initial=initial, delay=0.0)

    def set_authenticated(self, token: str, kind: str | None = None) -> None:
        """Use a credential obtained elsewhere instead of logging in."""
        self._authenticated = True
        self._credential = Credential(
            kind=kind or self.options.bearer_token_prefix, token=token
        )
        self._mark_fetch_ready()

    async def close(self) -> None:
        """Tear down the connection and release every resource."""
        _LOGGER.info("[%s] Closing connection", self.options.hostname)
        self.should_disconnect = True

        for task in (self._reconnect_task, self._listen_task):
            if task is None or task is asyncio.current_task():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None
        self._listen_task = None

        was_connected = self.connected
        if self._ws is not None:
            try:
                await asyncio.wait_for(self._ws.close(), timeout=2.0)
            except TimeoutError:
                _LOGGER.warning("[%s] WebSocket close timed out", self.options.hostname)
            self._ws = None

        self.connected = False
        self.is_connecting = False
        if was_connected:
            self._events.emit(SignalKEvent.DISCONNECT, None)
        self._release_listeners()

        if self._owns_http and isinstance(self._http, SignalKHttpTransport):
            await self._http.close()

    # -------------------------------------------------------------------------
    # Public API: Traffic
    # -------------------------------------------------------------------------

    async def send(self, data: Any) -> None:
        """Send a frame on the stream.

        Objects (or strings holding a JSON object) carry the credential token
        while authenticated.

        Raises:
            NotConnectedError: No live stream
            FrameEncodeError: Payload could not be serialized
        """
        if not self.connected or self._ws is None:
            raise NotConnectedError("Not connected to WebSocket")

        token = self._credential.token if self._authenticated else None
        frame = encode_frame(data, token)
        _LOGGER.debug("[%s] Sending frame: %s", self.options.hostname, frame)
        await self._ws.send_text(frame)

    async def fetch(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> Any:
        """Call a REST endpoint relative to the API root.

        Returns:
            Decoded JSON for JSON responses, otherwise the body text

        Raises:
            HttpError: Non-2xx response
            SignalKTimeout: Request timed out
            SignalKConnectionError: Request could not be sent
        """
        if not path.startswith("/"):
            path = f"/{path}"

        request_headers = dict(headers) if headers else dict(JSON_HEADERS)
        credentialed = False
        if self._authenticated and not is_login_path(path):
            request_headers["Authorization"] = self._credential.header
            credentialed = True

        if isinstance(body, (dict, list)):
            body = json.dumps(body)

        url = rewrite_request_url(f"{self.http_uri}{path}", self.options.version)
        _LOGGER.debug("[%s] fetch %s %s", self.options.hostname, method, url)

        response = await self._http(
            HttpRequest(
                method=method.upper(),
                url=url,
                headers=request_headers,
                body=body,
                credentialed=credentialed,
            )
        )
        if not response.ok:
            raise HttpError(response.status, response.reason, url)

        if "application/json" in response.content_type:
            try:
                return json.loads(response.body)
            except ValueError as err:
                raise SignalKClientError(f"Invalid JSON from {url}") from err
        return response.body

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        if self._state != state:
            _LOGGER.debug(
                "[%s] State: %s → %s",
                self.options.hostname,
                self._state.value,
                state.value,
            )
            self._state = state

    async def _reconnect(self, *, initial: bool, delay: float) -> None:
        name = self.options.hostname
        if self.is_connecting:
            _LOGGER.debug("[%s] Reconnect skipped: attempt in flight", name)
            return

        if self._ws is not None:
            _LOGGER.debug("[%s] Closing stream before reconnecting", name)
            self._close_requested = True
            self._set_state(ConnectionState.CLOSING)
            await self._ws.close()
            return

        if not initial and self._stop_requested():
            return

        self.fetch_ready = False
        self.should_disconnect = False
        self.is_connecting = True

        if delay > 0:
            _LOGGER.info(
                "[%s] Reconnecting in %.1fs (retry %d)", name, delay, self._retries
            )
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                self.is_connecting = False
                raise
            if self.should_disconnect:
                _LOGGER.debug("[%s] Disconnect requested during backoff", name)
                self.is_connecting = False
                self._release_listeners()
                return

        if not self.options.use_authentication:
            self._mark_fetch_ready()
            await self._open_stream()
            return

        self._set_state(ConnectionState.AUTHENTICATING)
        try:
            credential = await login(
                self.fetch,
                username=self.options.username,
                password=self.options.password,
                default_kind=self.options.bearer_token_prefix,
            )
        except SignalKClientError as err:
            _LOGGER.warning("[%s] Error logging in: %s", name, err)
            self.is_connecting = False
            self._set_state(ConnectionState.ERROR)
            self._events.emit(SignalKEvent.ERROR, err)
            return

        self._authenticated = True
        self._credential = credential

        # A disconnect that arrived while the login was in flight wins.
        if self.should_disconnect:
            _LOGGER.info("[%s] Disconnect requested during login", name)
            self.is_connecting = False
            self._release_listeners()
            return

        self._mark_fetch_ready()
        await self._open_stream()

    def _stop_requested(self) -> bool:
        """Apply the stop rules; True means no reconnect happens."""
        name = self.options.hostname
        max_retries = self.options.max_retries

        if max_retries is not None and self._retries == max_retries:
            _LOGGER.warning("[%s] Hit max retries (%d)", name, max_retries)
            self._events.emit(
                SignalKEvent.HIT_MAX_RETRIES, RetryExhausted(self._retries)
            )
            self._release_listeners()
            return True

        if not self.options.reconnect:
            _LOGGER.debug("[%s] Not reconnecting, reconnect is disabled", name)
            self._release_listeners()
            return True

        if self.should_disconnect:
            _LOGGER.debug("[%s] Not reconnecting, disconnect was requested", name)
            self._release_listeners()
            return True

        return False

    def _backoff_delay(self) -> float:
        """Exponential delay for the next automatic reconnect."""
        if self._consecutive_failures == 0:
            return 0.0
        return min(
            self.options.retry_base_delay * (2 ** (self._consecutive_failures - 1)),
            self.options.retry_max_delay,
        )

    def _schedule_reconnect(self) -> None:
        """Run the reconnect decision in its own task after a failure."""
        delay = 0.0 if self._close_requested else self._backoff_delay()
        self._close_requested = False
        self._reconnect_task = asyncio.create_task(
            self._reconnect(initial=False, delay=delay)
        )

    def _release_listeners(self) -> None:
        _LOGGER.debug(
            "[%s] Resetting authentication and removing listeners",
            self.options.hostname,
        )
        self._authenticated = False
        self._credential = Credential.empty()
        self._events.clear()
        self._set_state(ConnectionState.TERMINATED)

        task = self._reconnect_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        self._reconnect_task = None

    def _mark_fetch_ready(self) -> None:
        self.fetch_ready = True
        self._events.emit(SignalKEvent.FETCH_READY)

    # -------------------------------------------------------------------------
    # Internal: Stream transport
    # -------------------------------------------------------------------------

    async def _open_stream(self) -> None:
        name = self.options.hostname
        self._set_state(ConnectionState.STREAM_CONNECTING)
        _LOGGER.info("[%s] Connecting to %s", name, self.ws_uri)

        ws = self._ws_client_factory()
        try:
            await ws.connect(
                self.ws_uri,
                ping_interval=self.options.ping_interval,
                timeout=self.options.connect_timeout,
            )
        except SignalKClientError as err:
            _LOGGER.warning("[%s] Stream connection failed: %s", name, err)
            self._handle_open_failure(err)
            return

        if self.should_disconnect:
            _LOGGER.info("[%s] Disconnect requested while opening stream", name)
            await ws.close()
            self.is_connecting = False
            self._release_listeners()
            return

        self._ws = ws
        self._handle_open()
        self._listen_task = asyncio.create_task(self._listen(ws))

    def _handle_open(self) -> None:
        self.connected = True
        self.is_connecting = False
        self._failure_counted = False
        self._consecutive_failures = 0
        self._set_state(ConnectionState.CONNECTED)
        _LOGGER.info("[%s] Stream connected", self.options.hostname)
        self._events.emit(SignalKEvent.CONNECT)

    def _handle_open_failure(self, err: SignalKClientError) -> None:
        self._retries += 1
        self._consecutive_failures += 1
        self.is_connecting = False
        self._set_state(ConnectionState.ERROR)
        self._events.emit(SignalKEvent.ERROR, err)
        self._events.emit(SignalKEvent.DISCONNECT, None)
        self._schedule_reconnect()

    async def _listen(self, ws: SignalKWsClient) -> None:
        """Pump stream messages until the stream closes or fails."""
        name = self.options.hostname
        try:
            async for msg in ws:
                if msg.type == SignalKWsMessageType.TEXT:
                    self._handle_message(msg.data)
                elif msg.type == SignalKWsMessageType.CLOSED:
                    _LOGGER.info("[%s] WebSocket closed", name)
                    break
                elif msg.type == SignalKWsMessageType.ERROR:
                    self._handle_error(msg.error)
                    break
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Listener cancelled", name)
            raise
        except SignalKClientError as err:
            self._handle_error(err)
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected listener error: %s", name, err)
            self._handle_error(err)

        await self._handle_close(ws)

    def _handle_message(self, raw: Any) -> None:
        self.last_message = time.time()
        frame = decode_frame(raw)
        if isinstance(frame, HandshakeFrame):
            self._set_connection_info(frame)
        self._events.emit(SignalKEvent.MESSAGE, frame.payload)

    def _set_connection_info(self, frame: HandshakeFrame) -> None:
        self._connection_info = frame.info
        self._events.emit(SignalKEvent.CONNECTION_INFO, frame.info)
        self._set_self_id(frame.self_id)

    def _set_self_id(self, self_id: str | None) -> None:
        self._self_id = self_id
        if self_id is not None:
            self._events.emit(SignalKEvent.SELF, self_id)

    def _handle_error(self, err: BaseException | None) -> None:
        """Count and report a stream failure.

        The close that follows is not counted again.
        """
        _LOGGER.warning("[%s] WebSocket error: %s", self.options.hostname, err or "")
        if not isinstance(err, SignalKClientError):
            cause = err
            err = SignalKConnectionError("WebSocket error")
            err.__cause__ = cause
        self._retries += 1
        self._consecutive_failures += 1
        self._failure_counted = True
        self._set_state(ConnectionState.ERROR)
        self._events.emit(SignalKEvent.ERROR, err)

    async def _handle_close(self, ws: SignalKWsClient) -> None:
        _LOGGER.debug("[%s] Stream closed: %s", self.options.hostname, self.ws_uri)
        close_code = ws.close_code
        await ws.close()

        self._ws = None
        self._listen_task = None
        self.connected = False
        self.is_connecting = False

        if not self._failure_counted:
            self._retries += 1
            if not self._close_requested:
                self._consecutive_failures += 1
        self._failure_counted = False
        if self._state != ConnectionState.ERROR:
            self._set_state(ConnectionState.CLOSING)

        self._events.emit(SignalKEvent.DISCONNECT, close_code)
        self._schedule_reconnect()
