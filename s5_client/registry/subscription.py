# s5_client/registry/subscription.py
"""
S5 Client Registry: Subscription Channel

Live push updates for one public key over a WebSocket.

Lifecycle:
    open()   connect, send control frame [2, tagged pk]     -> OPEN
    listen() register callback; first call starts the reader -> LISTENING
    end()    cancel reader, close socket (idempotent)        -> ENDED

Delivery:
    - Every inbound binary frame is decoded as a signed registry entry and
      handed to each registered callback once, in arrival order.
    - With verify=True (default) entries that fail signature verification,
      or that belong to another key, are dropped and reported to on_error.
    - Malformed frames are dropped and reported to on_error.
    - No reconnection: when the portal closes the socket the subscription
      ends and on_error receives the transport error, if any.

Usage:
    sub = await client.subscribe_to_entry(public_key)
    sub.listen(lambda entry: print(entry.revision))
    ...
    await sub.end()

    async with await client.subscribe_to_entry(public_key) as sub:
        sub.listen(handle_entry)
        await sub.wait_closed()
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from enum import Enum, auto
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..transport.websocket import WebSocketConnection, WebSocketTransport
from ..wire import MalformedEntryError, SignedRegistryEntry, pack_subscribe_request
from .errors import InvalidEntryError
from .verifier import verify_entry

logger = logging.getLogger("s5-subscription")

EntryCallback = Callable[[SignedRegistryEntry], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], Union[None, Awaitable[None]]]


class SubscriptionState(Enum):
    """Subscription state machine."""
    OPEN = auto()         # Control frame sent, no listener yet
    LISTENING = auto()    # Reader task delivering frames
    ENDED = auto()        # end() called or socket closed


async def _call(callback: Callable[..., Any], arg: Any) -> None:
    result = callback(arg)
    if inspect.isawaitable(result):
        await result


class Subscription:
    """
    Push-update channel keyed by a single public key.

    Callbacks run on the reader task, one frame at a time, so a slow
    callback delays later frames but never reorders them.
    """

    def __init__(
        self,
        connection: WebSocketConnection,
        public_key: bytes,
        verify: bool = True,
        on_error: Optional[ErrorCallback] = None,
    ):
        self._connection = connection
        self._public_key = public_key
        self._verify = verify
        self._on_error = on_error
        self._callbacks: List[EntryCallback] = []
        self._reader: Optional[asyncio.Task] = None
        self._state = SubscriptionState.OPEN
        self._stats: Dict[str, int] = {"delivered": 0, "dropped": 0}

    @classmethod
    async def open(
        cls,
        transport: WebSocketTransport,
        url: str,
        public_key: bytes,
        headers: Optional[Dict[str, str]] = None,
        verify: bool = True,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """Connect and send the subscribe control frame."""
        connection = await transport.connect(url, headers=headers)
        try:
            await connection.send(pack_subscribe_request(public_key))
        except BaseException:
            await connection.close()
            raise
        logger.debug(f"Subscribed to {public_key.hex()[:18]}...")
        return cls(connection, public_key, verify=verify, on_error=on_error)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def public_key(self) -> bytes:
        return self._public_key

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def is_ended(self) -> bool:
        return self._state == SubscriptionState.ENDED

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    # =========================================================================
    # Public API
    # =========================================================================

    def listen(self, callback: EntryCallback) -> None:
        """
        Register a callback for inbound entries (sync or async).

        The first registration starts delivery.
        """
        if self.is_ended:
            raise RuntimeError("Subscription has ended")
        self._callbacks.append(callback)
        if self._reader is None:
            self._state = SubscriptionState.LISTENING
            self._reader = asyncio.get_running_loop().create_task(self._read_loop())

    async def end(self) -> None:
        """Stop delivery and close the socket. Safe to call more than once."""
        if self._state == SubscriptionState.ENDED and self._reader is None:
            return
        self._state = SubscriptionState.ENDED

        reader, self._reader = self._reader, None
        try:
            if reader is not None and reader is not asyncio.current_task():
                reader.cancel()
                try:
                    await reader
                except asyncio.CancelledError:
                    pass
                except Exception:
                    logger.exception(f"Subscription {self._public_key.hex()[:18]}... reader failed")
        finally:
            if not self._connection.is_closing_or_closed:
                await self._connection.close()
        logger.debug(f"Subscription {self._public_key.hex()[:18]}... ended")

    async def wait_closed(self) -> None:
        """Wait until the reader stops (socket closed by either side)."""
        if self._reader is not None:
            await asyncio.shield(self._reader)

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.end()

    # =========================================================================
    # Delivery
    # =========================================================================

    async def _read_loop(self) -> None:
        try:
            async for frame in self._connection.messages():
                if self._state == SubscriptionState.ENDED:
                    break
                await self._deliver(frame)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Subscription {self._public_key.hex()[:18]}... failed: {e}")
            await self._report(e)
        else:
            if self._state != SubscriptionState.ENDED:
                logger.warning(
                    f"Subscription {self._public_key.hex()[:18]}... closed by portal, not reconnecting"
                )
        finally:
            self._state = SubscriptionState.ENDED

    async def _deliver(self, frame: bytes) -> None:
        try:
            entry = SignedRegistryEntry.from_bytes(frame)
        except MalformedEntryError as e:
            await self._drop(e)
            return

        if self._verify:
            if entry.public_key != self._public_key:
                await self._drop(InvalidEntryError(entry.public_key, entry.revision, "entry for another key"))
                return
            if not verify_entry(entry):
                await self._drop(InvalidEntryError(entry.public_key, entry.revision))
                return

        self._stats["delivered"] += 1
        for callback in list(self._callbacks):
            try:
                await _call(callback, entry)
            except Exception as e:
                logger.exception(f"Subscription callback failed on rev {entry.revision}")
                await self._report(e)

    async def _drop(self, error: Exception) -> None:
        self._stats["dropped"] += 1
        logger.warning(f"Dropped subscription frame: {error}")
        await self._report(error)

    async def _report(self, error: Exception) -> None:
        if self._on_error is None:
            return
        try:
            await _call(self._on_error, error)
        except Exception:
            logger.exception(f"Subscription error handler failed on {type(error).__name__}")
