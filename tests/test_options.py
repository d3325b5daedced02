"""Tests for ConnectionOptions."""

from __future__ import annotations

import dataclasses

import pytest

from signalk_client import ConnectionOptions


def test_defaults():
    """Test the option defaults."""
    options = ConnectionOptions(hostname="localhost")
    assert options.port == 80
    assert options.use_tls is False
    assert options.version == "v1"
    assert options.reconnect is True
    assert options.max_retries is None
    assert options.bearer_token_prefix == "Bearer"
    assert options.subscribe == "none"


def test_options_are_frozen():
    """Test options cannot be mutated."""
    options = ConnectionOptions(hostname="localhost")
    with pytest.raises(dataclasses.FrozenInstanceError):
        options.port = 8080  # type: ignore[misc]


def test_from_mapping_accepts_camel_case():
    """Test camelCase option names are mapped."""
    options = ConnectionOptions.from_mapping(
        {
            "hostname": "demo.signalk.org",
            "port": 443,
            "useTLS": True,
            "useAuthentication": True,
            "username": "sailor",
            "password": "secret",
            "maxRetries": 5,
            "bearerTokenPrefix": "JWT",
            "notify": True,
        }
    )
    assert options.hostname == "demo.signalk.org"
    assert options.use_tls is True
    assert options.use_authentication is True
    assert options.max_retries == 5
    assert options.bearer_token_prefix == "JWT"
