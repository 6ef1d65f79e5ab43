# tests/conftest.py
"""Shared fixtures: deterministic keypairs, signed entries, mock transports."""

import pytest

from s5_client.keys import KeyPair
from s5_client.registry import RegistryClient, sign_entry
from s5_client.transport import MockHTTPTransport, MockWebSocketTransport
from s5_client.wire import RegistryEntry

PORTAL = "https://portal.example"


@pytest.fixture
def keypair():
    return KeyPair.from_seed(bytes(range(32)))


@pytest.fixture
def other_keypair():
    return KeyPair.from_seed(b"\x42" * 32)


@pytest.fixture
def make_entry(keypair):
    """Build a signed entry for keypair (or another keypair)."""
    def _make(data=b"\x5a" + b"\x01" * 35, revision=0, kp=None):
        kp = kp or keypair
        entry = RegistryEntry(public_key=kp.public_key, data=data, revision=revision)
        return sign_entry(entry, kp)
    return _make


@pytest.fixture
def http():
    return MockHTTPTransport()


@pytest.fixture
def ws():
    return MockWebSocketTransport()


@pytest.fixture
def registry(http, ws):
    return RegistryClient(http=http, portal_url=PORTAL, websocket=ws)
