# s5_client/transport/websocket.py
"""
S5 Client Transport: WebSocket

Duplex connection used by registry subscriptions. The websockets-backed
implementation talks to real portals; the mock lets tests push frames.

Connection Lifecycle:
    connect(url, headers) -> OPEN -> send()/messages() -> close() -> CLOSED

Usage:
    transport = WebsocketsTransport()
    conn = await transport.connect("wss://portal.example/s5/registry/subscription")
    await conn.send(frame)
    async for message in conn.messages():
        ...
    await conn.close()

Requirements:
    pip install websockets
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List, Optional, Union

from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedError,
    InvalidHandshake,
    InvalidStatus,
    InvalidURI,
)
from websockets.asyncio.client import ClientConnection, connect
from websockets.protocol import State

from .http import TransportError

logger = logging.getLogger("s5-transport")


# =============================================================================
# Exceptions
# =============================================================================

class WebSocketError(TransportError):
    """WebSocket handshake or connection failure."""
    pass


# =============================================================================
# Connection / Transport (Abstract)
# =============================================================================

class WebSocketConnection(ABC):
    """Open duplex connection."""

    @abstractmethod
    async def send(self, data: bytes) -> None:
        """Send one binary frame."""
        pass

    @abstractmethod
    def messages(self) -> AsyncIterator[bytes]:
        """Iterate inbound frames in arrival order until the socket closes."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Start the closing handshake and wait for it."""
        pass

    @property
    @abstractmethod
    def is_closing_or_closed(self) -> bool:
        pass


class WebSocketTransport(ABC):
    """Abstract WebSocket transport."""

    @abstractmethod
    async def connect(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> WebSocketConnection:
        """Open a connection."""
        pass


# =============================================================================
# websockets Implementation
# =============================================================================

class WebsocketsConnection(WebSocketConnection):
    """Connection backed by a websockets ClientConnection."""

    def __init__(self, ws: ClientConnection):
        self._ws = ws

    async def send(self, data: bytes) -> None:
        try:
            await self._ws.send(data)
        except ConnectionClosed as e:
            raise WebSocketError(f"Send failed, connection closed: {e}") from e

    async def messages(self) -> AsyncIterator[bytes]:
        try:
            async for message in self._ws:
                if isinstance(message, str):
                    message = message.encode("utf-8")
                yield message
        except ConnectionClosedError as e:
            raise WebSocketError(f"Connection closed abnormally: {e}") from e

    async def close(self) -> None:
        await self._ws.close()

    @property
    def is_closing_or_closed(self) -> bool:
        return self._ws.state in (State.CLOSING, State.CLOSED)


class WebsocketsTransport(WebSocketTransport):
    """WebSocket transport backed by the websockets library."""

    def __init__(
        self,
        open_timeout: float = 10.0,
        ping_interval: Optional[float] = 20.0,
        max_size: Optional[int] = 2 ** 20,
    ):
        self._open_timeout = open_timeout
        self._ping_interval = ping_interval
        self._max_size = max_size

    async def connect(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> WebSocketConnection:
        logger.debug(f"WS connect {url}")
        try:
            ws = await connect(
                url,
                additional_headers=headers or None,
                open_timeout=self._open_timeout,
                ping_interval=self._ping_interval,
                max_size=self._max_size,
            )
        except InvalidStatus as e:
            status = e.response.status_code
            raise WebSocketError(f"WebSocket handshake rejected: HTTP {status}", status_code=status) from e
        except (InvalidURI, InvalidHandshake, OSError, asyncio.TimeoutError) as e:
            raise WebSocketError(f"WebSocket connect to {url} failed: {e}") from e
        return WebsocketsConnection(ws)


# =============================================================================
# Mock Transport
# =============================================================================

_CLOSE = object()


class MockWebSocketConnection(WebSocketConnection):
    """In-memory connection; tests push frames with push()."""

    def __init__(self, url: str, headers: Dict[str, str]):
        self.url = url
        self.headers = headers
        self.sent: List[bytes] = []
        self.close_calls = 0
        self._inbound: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def push(self, frame: Union[bytes, Exception]) -> None:
        """Queue an inbound frame (or an error to raise from messages())."""
        self._inbound.put_nowait(frame)

    def server_close(self) -> None:
        """Simulate the portal closing the socket."""
        self._closed = True
        self._inbound.put_nowait(_CLOSE)

    async def send(self, data: bytes) -> None:
        if self._closed:
            raise WebSocketError("Send failed, connection closed")
        self.sent.append(bytes(data))

    async def messages(self) -> AsyncIterator[bytes]:
        while True:
            frame = await self._inbound.get()
            if frame is _CLOSE:
                return
            if isinstance(frame, Exception):
                raise frame
            yield frame

    async def close(self) -> None:
        self.close_calls += 1
        if not self._closed:
            self._closed = True
            self._inbound.put_nowait(_CLOSE)

    @property
    def is_closing_or_closed(self) -> bool:
        return self._closed


class MockWebSocketTransport(WebSocketTransport):
    """Mock WebSocket transport for testing."""

    def __init__(self):
        self.connections: List[MockWebSocketConnection] = []
        self._connect_error: Optional[Exception] = None

    def fail_next_connect(self, error: Exception) -> None:
        self._connect_error = error

    async def connect(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> WebSocketConnection:
        if self._connect_error is not None:
            error, self._connect_error = self._connect_error, None
            raise error
        conn = MockWebSocketConnection(url, dict(headers or {}))
        self.connections.append(conn)
        return conn
