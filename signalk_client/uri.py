"""Endpoint address helpers for the Signal K stream and REST transports."""

from __future__ import annotations

from typing import Literal

from .options import DEFAULT_PORT, ConnectionOptions

NAMESPACE = "signalk"
LOGIN_PATH = "/auth/login"

UriKind = Literal["stream", "request"]


def build_uri(options: ConnectionOptions, kind: UriKind) -> str:
    """Build the stream (ws) or request (http) base address.

    Options are not validated; bad input yields a well-formed but useless
    address.
    """
    protocol = "ws" if kind == "stream" else "http"
    scheme = f"{protocol}s" if options.use_tls else protocol

    uri = f"{scheme}://{options.hostname}"
    if options.port != DEFAULT_PORT:
        uri += f":{options.port}"
    uri += f"/{NAMESPACE}/{options.version}"

    if kind == "stream":
        uri += f"/stream?subscribe={options.subscribe}"
    else:
        uri += "/api"
    return uri


def rewrite_request_url(url: str, version: str) -> str:
    """Move auxiliary endpoints out from under the /api prefix.

    Login, access requests and security live beside the REST API rather
    than inside it.
    """
    rewrites = (
        (f"/api{LOGIN_PATH}", LOGIN_PATH),
        ("/api/access/requests", "/access/requests"),
        (f"/{NAMESPACE}/{version}/api/security", "/security"),
    )
    for old, new in rewrites:
        if old in url:
            url = url.replace(old, new, 1)
    return url


def is_login_path(path: str) -> bool:
    """Return True for the login endpoint, which never carries a credential."""
    return LOGIN_PATH.lstrip("/") in path
