"""Tests for the stream frame codec."""

from __future__ import annotations

import json

import pytest

from signalk_client import FrameEncodeError, GenericFrame, HandshakeFrame
from signalk_client.protocol import decode_frame, encode_frame

HELLO = {
    "name": "signalk-server",
    "version": "1.0",
    "roles": ["master"],
    "self": "vessels.urn:mrn:imo:mmsi:1234",
}


class TestDecodeFrame:
    """Tests for decode_frame()."""

    def test_handshake_from_text(self):
        """Test a handshake is decoded from JSON text."""
        frame = decode_frame(json.dumps(HELLO))
        assert isinstance(frame, HandshakeFrame)
        assert frame.info == HELLO
        assert frame.self_id == "vessels.urn:mrn:imo:mmsi:1234"

    def test_handshake_without_self(self):
        """Test a handshake without self has no self id."""
        frame = decode_frame({"name": "x", "version": "1", "roles": []})
        assert isinstance(frame, HandshakeFrame)
        assert frame.self_id is None

    def test_missing_roles_is_generic(self):
        """Test a hello without roles is a generic frame."""
        frame = decode_frame('{"name": "x", "version": "1"}')
        assert isinstance(frame, GenericFrame)
        assert frame.payload == {"name": "x", "version": "1"}

    def test_delta_is_generic(self):
        """Test a delta decodes to a generic frame."""
        delta = {"context": "vessels.self", "updates": []}
        frame = decode_frame(json.dumps(delta))
        assert isinstance(frame, GenericFrame)
        assert frame.payload == delta

    def test_invalid_json_passes_raw_text(self, caplog):
        """Test invalid JSON is logged and passed through as text."""
        frame = decode_frame("not json {")
        assert isinstance(frame, GenericFrame)
        assert frame.payload == "not json {"
        assert "Error parsing frame" in caplog.text


class TestEncodeFrame:
    """Tests for encode_frame()."""

    def test_object_without_token(self):
        """Test objects are encoded unchanged without a token."""
        assert json.loads(encode_frame({"a": 1})) == {"a": 1}

    def test_token_injected(self):
        """Test the token is injected into a copy of the object."""
        payload = {"context": "vessels.self"}
        encoded = json.loads(encode_frame(payload, "abc"))
        assert encoded == {"context": "vessels.self", "token": "abc"}
        assert "token" not in payload

    def test_json_string_treated_as_structured(self):
        """Test JSON strings are parsed before encoding."""
        encoded = json.loads(encode_frame('{"a": 1}', "abc"))
        assert encoded == {"a": 1, "token": "abc"}

    def test_plain_text_sent_as_is(self):
        """Test plain text is sent unchanged."""
        assert encode_frame("hello", "abc") == "hello"

    def test_json_scalar_string_sent_as_is(self):
        """Test JSON scalar strings are sent unchanged."""
        assert encode_frame("42", "abc") == "42"

    def test_lists_carry_no_token(self):
        """Test lists are encoded without a token."""
        assert json.loads(encode_frame([1, 2], "abc")) == [1, 2]

    def test_unserializable_raises(self):
        """Test unserializable payloads raise FrameEncodeError."""
        with pytest.raises(FrameEncodeError):
            encode_frame({"bad": object()})
