"""Connection options for a Signal K server."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

DEFAULT_PORT = 80

# camelCase keys used by the JavaScript client's option objects
_CAMEL_CASE_KEYS: dict[str, str] = {
    "useTLS": "use_tls",
    "useAuthentication": "use_authentication",
    "maxRetries": "max_retries",
    "bearerTokenPrefix": "bearer_token_prefix",
    "retryBaseDelay": "retry_base_delay",
    "retryMaxDelay": "retry_max_delay",
    "requestTimeout": "request_timeout",
    "connectTimeout": "connect_timeout",
    "pingInterval": "ping_interval",
}


@dataclass(frozen=True, slots=True)
class ConnectionOptions:
    """Immutable settings for a single server connection.

    Attributes:
        hostname: Server hostname or IP
        port: Server port; 80 is left out of built addresses
        use_tls: Use wss/https instead of ws/http
        version: Signal K API version path segment
        username: Login username (authentication only)
        password: Login password (authentication only)
        use_authentication: Log in before opening the stream
        reconnect: Reconnect automatically after the stream drops
        max_retries: Retry count at which reconnecting stops (None = never)
        bearer_token_prefix: Credential kind when the server omits one
        subscribe: Stream subscription mode (none, self, all)
        retry_base_delay: Base reconnect backoff (seconds)
        retry_max_delay: Maximum reconnect backoff (seconds)
        request_timeout: Total HTTP request timeout (seconds)
        connect_timeout: WebSocket open timeout (seconds)
        ping_interval: WebSocket keepalive interval (seconds)
    """

    hostname: str
    port: int = DEFAULT_PORT
    use_tls: bool = False
    version: str = "v1"
    username: str | None = None
    password: str | None = None
    use_authentication: bool = False
    reconnect: bool = True
    max_retries: int | None = None
    bearer_token_prefix: str = "Bearer"
    subscribe: str = "none"
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    request_timeout: float = 10.0
    connect_timeout: float = 15.0
    ping_interval: int | None = 20

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ConnectionOptions:
        """Build options from a mapping, accepting camelCase keys.

        Unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)
