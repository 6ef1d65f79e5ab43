# s5_client/registry/client.py
"""
S5 Client Registry: Registry Client

Get, publish, create and subscribe to registry entries on a portal.

Protocol:
    get_entry       GET  <endpoint_get_entry>?pk=<b64url(tagged pk)>
                         200 → verified SignedRegistryEntry, 404 → None
    publish_entry   POST <endpoint_publish_entry> {pk, revision, data, signature}
                         refuses unverifiable entries before any network call
    create_entry    get → decide revision → sign → publish
    subscribe       WS   <endpoint_subscribe_entry>, see subscription.py

Consistency:
    - create_entry increments the fetched revision, or starts at the
      caller's initial revision when no entry exists.
    - Equal data is a no-op: the fetched entry is returned unpublished.
    - Concurrent writers are not serialized client-side; the portal's
      answer to publish is authoritative. There is no retry loop.

Usage:
    client = RegistryClient(
        http=HttpxTransport(),
        portal_url="https://portal.example",
    )

    entry = await client.get_entry(public_key)
    result = await client.create_entry(seed, CID.from_data(b"..."))
    if result.published:
        ...

    sub = await client.subscribe_to_entry(public_key)
    sub.listen(on_entry)
    await sub.end()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..cid import CID
from ..keys import KeyPair, ensure_keypair, ensure_tagged_public_key
from ..options import (
    DEFAULT_REGISTRY_OPTIONS,
    ClientOptions,
    RegistryOptions,
    options_to_request_config,
    resolve_options,
)
from ..transport.http import HTTPTransport, TransportResponse
from ..transport.url import build_request_url, to_websocket_url
from ..transport.websocket import WebSocketTransport
from ..wire import (
    MAX_DATA_SIZE,
    MAX_REVISION,
    MalformedEntryError,
    RegistryEntry,
    SignedRegistryEntry,
    base64url_encode,
)
from .errors import InvalidEntryError, KeyMismatchError, RegistryError
from .subscription import ErrorCallback, Subscription
from .verifier import sign_entry, verify_entry

logger = logging.getLogger("s5-registry")

HTTP_NOT_FOUND = 404


# =============================================================================
# Result Types
# =============================================================================

@dataclass(frozen=True)
class CreateEntryResult:
    """
    Outcome of create_entry.

    Attributes:
        entry: Entry now current for the key (published or unchanged)
        published: False when the fetched entry already held the target data
        response: Portal acknowledgement (None when nothing was published)
    """
    entry: SignedRegistryEntry
    published: bool
    response: Optional[TransportResponse] = None


TargetData = Union[bytes, CID]


def _target_bytes(target: TargetData) -> bytes:
    if isinstance(target, CID):
        return target.to_registry_entry()
    return bytes(target)


# =============================================================================
# RegistryClient
# =============================================================================

class RegistryClient:
    """
    Registry protocol over a portal's HTTP and WebSocket endpoints.

    Holds no entry cache; every operation is self-contained.
    """

    def __init__(
        self,
        http: HTTPTransport,
        portal_url: str,
        websocket: Optional[WebSocketTransport] = None,
        options: Optional[ClientOptions] = None,
    ):
        """
        Initialize registry client.

        Args:
            http: HTTP transport
            portal_url: Resolved portal base URL
            websocket: WebSocket transport (required for subscriptions)
            options: Client-level options
        """
        self._http = http
        self._websocket = websocket
        self._portal_url = portal_url
        self._options = options

    @property
    def portal_url(self) -> str:
        return self._portal_url

    def _resolve(self, options: Optional[ClientOptions]) -> RegistryOptions:
        return resolve_options(DEFAULT_REGISTRY_OPTIONS, self._options, options)

    # =========================================================================
    # get_entry
    # =========================================================================

    async def get_entry(
        self,
        public_key: bytes,
        options: Optional[ClientOptions] = None,
    ) -> Optional[SignedRegistryEntry]:
        """
        Fetch the portal's current entry for a public key.

        The entry is verified against its own public key. Comparing that key
        with the requested one is left to the caller (create_entry does).

        Args:
            public_key: 32B raw or 33B tagged Ed25519 public key
            options: Call-site options

        Returns:
            Verified entry, or None if the portal has no entry for the key

        Raises:
            MalformedEntryError: If the response body is not a valid entry
            InvalidEntryError: If the entry fails verification
            TransportError: On any other transport failure
        """
        public_key = ensure_tagged_public_key(public_key)
        opts = self._resolve(options)
        config = options_to_request_config(opts)

        url = build_request_url(self._portal_url, endpoint_path=opts.endpoint_get_entry)
        params = {**config.params, "pk": base64url_encode(public_key)}

        response = await self._http.get(
            url, params=params, headers=config.headers, timeout=config.timeout,
        )

        if response.status_code == HTTP_NOT_FOUND:
            logger.debug(f"No entry for {public_key.hex()[:18]}...")
            return None

        response.raise_for_status()

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedEntryError(f"Entry response is not JSON: {e}") from e

        entry = SignedRegistryEntry.from_json_dict(body)

        if not verify_entry(entry):
            raise InvalidEntryError(entry.public_key, entry.revision)

        logger.debug(f"Fetched entry {public_key.hex()[:18]}... rev {entry.revision}")
        return entry

    # =========================================================================
    # publish_entry
    # =========================================================================

    async def publish_entry(
        self,
        signed_entry: SignedRegistryEntry,
        options: Optional[ClientOptions] = None,
    ) -> TransportResponse:
        """
        Publish a signed entry as given.

        Returns:
            Portal acknowledgement

        Raises:
            InvalidEntryError: If the entry does not verify (no request is made)
            TransportError: On transport failure or non-success status
        """
        if not verify_entry(signed_entry):
            raise InvalidEntryError(signed_entry.public_key, signed_entry.revision)

        opts = self._resolve(options)
        config = options_to_request_config(opts)
        url = build_request_url(self._portal_url, endpoint_path=opts.endpoint_publish_entry)

        response = await self._http.post(
            url,
            json_body=signed_entry.to_json_dict(),
            params=config.params or None,
            headers=config.headers,
            timeout=config.timeout,
        )
        response.raise_for_status()

        logger.debug(
            f"Published entry {signed_entry.public_key.hex()[:18]}... rev {signed_entry.revision}"
        )
        return response

    # =========================================================================
    # create_entry
    # =========================================================================

    async def create_entry(
        self,
        secret_key: Union[KeyPair, bytes],
        target_data: TargetData,
        initial_revision: int = 0,
        options: Optional[ClientOptions] = None,
    ) -> CreateEntryResult:
        """
        Point the key's entry at target_data (read-modify-write).

        Args:
            secret_key: KeyPair, 32B seed or 64B secret key
            target_data: Entry payload bytes, or a CID (registry form is used)
            initial_revision: Revision for a key with no existing entry
            options: Call-site options

        Returns:
            CreateEntryResult; published is False for the no-op case

        Raises:
            KeyMismatchError: If the fetched entry belongs to another key
            InvalidEntryError: If the fetched entry fails verification
            RegistryError: If the revision cannot be incremented further
            ValueError: If target_data exceeds the entry data size (no request is made)
            TransportError: On transport failure
        """
        keypair = ensure_keypair(secret_key)
        data = _target_bytes(target_data)
        if len(data) > MAX_DATA_SIZE:
            raise ValueError(f"target data must be at most {MAX_DATA_SIZE}B, got {len(data)}")

        existing = await self.get_entry(keypair.public_key, options)

        if existing is None:
            entry = RegistryEntry(
                public_key=keypair.public_key,
                data=data,
                revision=initial_revision,
            )
        else:
            if existing.public_key != keypair.public_key:
                raise KeyMismatchError(keypair.public_key, existing.public_key)

            if existing.data == data:
                logger.debug(f"Entry rev {existing.revision} already holds target data, skipping publish")
                return CreateEntryResult(entry=existing, published=False)

            if existing.revision >= MAX_REVISION:
                raise RegistryError(f"Revision overflow for {keypair.public_key.hex()[:18]}...")

            entry = existing.with_data(data, existing.revision + 1)

        signed = sign_entry(entry, keypair)
        response = await self.publish_entry(signed, options)

        logger.info(f"Registry entry {keypair.public_key.hex()[:18]}... now at rev {signed.revision}")
        return CreateEntryResult(entry=signed, published=True, response=response)

    # =========================================================================
    # subscribe_to_entry
    # =========================================================================

    async def subscribe_to_entry(
        self,
        public_key: bytes,
        options: Optional[ClientOptions] = None,
        verify: bool = True,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Open a push-update channel for one public key.

        Args:
            public_key: 32B raw or 33B tagged public key
            options: Call-site options
            verify: Drop entries that fail verification (default: True)
            on_error: Called with InvalidEntryError / MalformedEntryError for
                dropped frames and with the transport error if the socket fails

        Returns:
            Open Subscription; register callbacks with listen()
        """
        if self._websocket is None:
            raise RegistryError("WebSocket transport required for subscriptions")

        public_key = ensure_tagged_public_key(public_key)
        opts = self._resolve(options)
        config = options_to_request_config(opts)

        url = to_websocket_url(build_request_url(
            self._portal_url,
            endpoint_path=opts.endpoint_subscribe_entry,
            query=config.params,
        ))

        return await Subscription.open(
            self._websocket,
            url,
            public_key,
            headers=config.headers,
            verify=verify,
            on_error=on_error,
        )
