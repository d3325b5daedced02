"""Login exchange against the Signal K auth endpoint."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .errors import AuthError
from .uri import LOGIN_PATH

_LOGGER = logging.getLogger(__name__)

# fetch-style callable: (path, method=..., body=...) -> decoded response
LoginRequest = Callable[..., Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class Credential:
    """Authorization token pair sent with requests and frames."""

    kind: str
    token: str

    @classmethod
    def empty(cls) -> Credential:
        return cls(kind="", token="")

    @property
    def is_empty(self) -> bool:
        return not self.kind and not self.token

    @property
    def header(self) -> str:
        """Value for the Authorization header."""
        return f"{self.kind} {self.token}"


def build_login_body(username: Any, password: Any) -> str:
    return json.dumps(
        {
            "username": str(username or ""),
            "password": str(password or ""),
        }
    )


def parse_login_response(result: Any, default_kind: str) -> Credential:
    """Turn a login response into a Credential.

    Raises:
        AuthError: If the response is not an object carrying ``token``
    """
    if not isinstance(result, dict) or "token" not in result:
        raise AuthError(f"Login failed: unexpected response shape {result!r}")

    kind = result.get("type")
    if not isinstance(kind, str) or not kind.strip():
        kind = default_kind
    return Credential(kind=kind, token=str(result["token"]))


async def login(
    request: LoginRequest,
    *,
    username: str | None,
    password: str | None,
    default_kind: str = "Bearer",
) -> Credential:
    """POST credentials to the login endpoint and return the token.

    Args:
        request: fetch-style coroutine function issuing the call
        username: Account name (None sends an empty string)
        password: Account password (None sends an empty string)
        default_kind: Credential kind when the server omits ``type``

    Raises:
        AuthError: Response carried no token
        HttpError: Server answered with a non-2xx status
    """
    result = await request(
        LOGIN_PATH,
        method="POST",
        body=build_login_body(username, password),
    )
    credential = parse_login_response(result, default_kind)
    _LOGGER.debug("Login succeeded, credential kind %s", credential.kind)
    return credential
