"""Signal registry for connection lifecycle events."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

_LOGGER = logging.getLogger(__name__)

EventHandler = Callable[..., Any]


class SignalKEvent(str, Enum):
    """Signals emitted by a connection."""

    CONNECT = "connect"
    DISCONNECT = "disconnect"
    ERROR = "error"
    MESSAGE = "message"
    SELF = "self"
    CONNECTION_INFO = "connectionInfo"
    FETCH_READY = "fetchReady"
    HIT_MAX_RETRIES = "hitMaxRetries"


class EventRegistry:
    """Per-connection handler registry.

    Handlers take at most one positional payload. Coroutine handlers are
    scheduled on the running loop. ``clear()`` drops every handler; the
    owning connection calls it when it stops for good.
    """

    def __init__(self) -> None:
        self._handlers: dict[SignalKEvent, list[EventHandler]] = defaultdict(list)
        self._background_tasks: set[asyncio.Task[Any]] = set()

    def on(
        self, event: SignalKEvent | str, handler: EventHandler
    ) -> Callable[[], None]:
        """Register a handler; returns a callable that removes it."""
        key = SignalKEvent(event)
        self._handlers[key].append(handler)
        return lambda: self.off(key, handler)

    def once(
        self, event: SignalKEvent | str, handler: EventHandler
    ) -> Callable[[], None]:
        """Register a handler that is removed after its first call."""
        key = SignalKEvent(event)

        def wrapper(*args: Any) -> Any:
            self.off(key, wrapper)
            return handler(*args)

        wrapper.listener = handler  # type: ignore[attr-defined]

        return self.on(key, wrapper)

    def off(self, event: SignalKEvent | str, handler: EventHandler) -> None:
        """Remove a specific handler, including one registered with ``once``."""
        handlers = self._handlers.get(SignalKEvent(event), [])
        for registered in handlers:
            original = getattr(registered, "listener", None)
            if registered is handler or original is handler:
                handlers.remove(registered)
                return

    def listener_count(self, event: SignalKEvent | str) -> int:
        return len(self._handlers.get(SignalKEvent(event), []))

    def clear(self) -> None:
        """Release all handlers."""
        self._handlers.clear()

    def emit(self, event: SignalKEvent, *payload: Any) -> None:
        """Call every handler registered for ``event``."""
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(*payload)
                if asyncio.iscoroutine(result):
                    self._fire_task(result)
            except Exception as err:
                _LOGGER.exception("Handler error for '%s': %s", event.value, err)

    def _fire_task(self, coro: Any) -> None:
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
