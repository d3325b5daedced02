"""Frame codec for the Signal K stream.

Inbound frames are decoded into a closed set of variants: the server's
hello (``HandshakeFrame``) or anything else (``GenericFrame``). A hello is
recognised by carrying ``name``, ``version`` and ``roles``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from .errors import FrameEncodeError

_LOGGER = logging.getLogger(__name__)

HANDSHAKE_KEYS: frozenset[str] = frozenset({"name", "version", "roles"})


@dataclass(frozen=True, slots=True)
class HandshakeFrame:
    """Server self-identification sent when the stream opens."""

    info: dict[str, Any]

    @property
    def self_id(self) -> str | None:
        value = self.info.get("self")
        return None if value is None else str(value)

    @property
    def payload(self) -> dict[str, Any]:
        return self.info


@dataclass(frozen=True, slots=True)
class GenericFrame:
    """Any other frame; ``payload`` is parsed JSON or the raw text."""

    payload: Any


Frame = HandshakeFrame | GenericFrame


def is_handshake(data: Any) -> bool:
    return isinstance(data, dict) and HANDSHAKE_KEYS.issubset(data)


def decode_frame(raw: Any) -> Frame:
    """Decode one inbound frame.

    Text that is not valid JSON is passed through unchanged.
    """
    data = raw
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except ValueError as err:
            _LOGGER.warning("Error parsing frame: %s", err)
            return GenericFrame(raw)

    if is_handshake(data):
        return HandshakeFrame(data)
    return GenericFrame(data)


def encode_frame(data: Any, token: str | None = None) -> str:
    """Serialize an outbound frame, injecting ``token`` into objects.

    Strings holding JSON are treated as structured; other strings are sent
    as they are. The caller's dict is never modified.
    """
    if isinstance(data, str):
        try:
            parsed = json.loads(data)
        except ValueError:
            _LOGGER.debug("Frame is text but not JSON, sending as is")
            return data
        if not isinstance(parsed, (dict, list)):
            return data
        data = parsed

    if isinstance(data, dict) and token is not None:
        data = {**data, "token": str(token)}

    try:
        return json.dumps(data)
    except (TypeError, ValueError) as err:
        raise FrameEncodeError(f"Cannot serialize frame: {err}") from err
