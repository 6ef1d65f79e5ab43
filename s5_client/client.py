# s5_client/client.py
"""
S5 Client

Entry point for talking to an S5 portal: holds the portal URL, client-level
options and transports, and exposes the registry, download and account
operations.

Endpoints:
    registry    see registry/client.py
    download    GET /s5/download/<cid>[/path]      content bytes
                GET /s5/download/<cid>.obao        verification proof
                GET /s5/metadata/<cid>             JSON metadata
                GET /s5/blob/<cid>                 301 -> blob location
    account     GET /s5/account/pins               JSON pin list

Usage:
    from s5_client import S5Client, ClientOptions

    async with S5Client("portal.example", ClientOptions(api_key="...")) as client:
        result = await client.create_entry(seed, CID.from_data(b"hello"))
        entry = await client.get_entry(result.entry.public_key)

        sub = await client.subscribe_to_entry(result.entry.public_key)
        sub.listen(print)
        ...
        await sub.end()

        data = await client.download_data(cid)
        pins = await client.account_pins()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from urllib.parse import quote, urljoin, urlsplit

from .cid import CID
from .keys import KeyPair
from .options import (
    DEFAULT_ACCOUNT_OPTIONS,
    DEFAULT_CLIENT_OPTIONS,
    DEFAULT_DOWNLOAD_OPTIONS,
    ClientOptions,
    RequestConfig,
    options_to_request_config,
    resolve_options,
)
from .registry import CreateEntryResult, RegistryClient, Subscription
from .registry.subscription import ErrorCallback
from .transport.http import (
    HTTPTransport,
    HttpxTransport,
    PortalConnectionError,
    TransportError,
    TransportResponse,
)
from .transport.url import (
    PORTAL_URL_CACHE,
    PortalUrlCache,
    PortalUrlResolver,
    add_url_query,
    build_request_url,
    ensure_url,
    make_url,
)
from .transport.websocket import WebSocketError, WebSocketTransport, WebsocketsTransport
from .wire import SignedRegistryEntry

logger = logging.getLogger("s5-client")

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})
PROOF_SUFFIX = ".obao"


@dataclass(frozen=True)
class MetadataResult:
    """Metadata for a CID, as returned by the portal."""
    metadata: Dict[str, Any]


def _encode_path(path: str) -> str:
    return "/".join(quote(part, safe="") for part in path.split("/") if part)


class S5Client:
    """
    The S5 client.

    The initial portal URL is resolved once through a portal URL cache; a
    connection failure invalidates the cached value so the next call
    resolves again. Clients share the process-wide cache unless they bring
    their own cache or a custom url_resolver, which gets a private cache.
    """

    def __init__(
        self,
        portal_url: str,
        options: Optional[ClientOptions] = None,
        http: Optional[HTTPTransport] = None,
        websocket: Optional[WebSocketTransport] = None,
        url_cache: Optional[PortalUrlCache] = None,
        url_resolver: Optional[PortalUrlResolver] = None,
    ):
        """
        Initialize client.

        Args:
            portal_url: Initial portal URL ("https://" assumed when missing)
            options: Client-level options
            http: HTTP transport (HttpxTransport if None)
            websocket: WebSocket transport (WebsocketsTransport if None)
            url_cache: Portal URL cache (process-wide cache if None and no
                url_resolver is given, otherwise a private cache)
            url_resolver: Coroutine mapping the initial URL to the API base URL
        """
        if not portal_url:
            raise ValueError("portal_url must be a non-empty string")

        self._initial_portal_url = ensure_url(portal_url)
        self._options = options or ClientOptions()
        resolved = resolve_options(DEFAULT_CLIENT_OPTIONS, self._options)

        self._owns_http = http is None
        self._http = http or HttpxTransport(timeout=resolved.timeout)
        self._websocket = websocket or WebsocketsTransport()

        if url_cache is None:
            url_cache = PortalUrlCache() if url_resolver is not None else PORTAL_URL_CACHE
        self._url_cache = url_cache
        self._url_resolver = url_resolver

    @classmethod
    def create(cls, portal_url: str, options: Optional[ClientOptions] = None) -> S5Client:
        return cls(portal_url, options)

    @property
    def options(self) -> ClientOptions:
        return self._options

    @property
    def initial_portal_url(self) -> str:
        return self._initial_portal_url

    async def portal_url(self) -> str:
        """Resolved portal API base URL."""
        return await self._url_cache.get(self._initial_portal_url, self._url_resolver)

    async def _registry(self) -> RegistryClient:
        return RegistryClient(
            http=self._http,
            portal_url=await self.portal_url(),
            websocket=self._websocket,
            options=self._options,
        )

    def _invalidate_portal_url(self, error: Exception) -> None:
        logger.warning(f"Portal {self._initial_portal_url} unreachable, invalidating cached URL: {error}")
        self._url_cache.invalidate(self._initial_portal_url)

    async def _get(
        self,
        url: str,
        config: RequestConfig,
        follow_redirects: bool = True,
    ) -> TransportResponse:
        try:
            return await self._http.get(
                url,
                params=config.params or None,
                headers=config.headers,
                timeout=config.timeout,
                follow_redirects=follow_redirects,
            )
        except PortalConnectionError as e:
            self._invalidate_portal_url(e)
            raise

    # =========================================================================
    # Registry
    # =========================================================================

    async def get_entry(
        self,
        public_key: bytes,
        options: Optional[ClientOptions] = None,
    ) -> Optional[SignedRegistryEntry]:
        registry = await self._registry()
        try:
            return await registry.get_entry(public_key, options)
        except PortalConnectionError as e:
            self._invalidate_portal_url(e)
            raise

    async def publish_entry(
        self,
        signed_entry: SignedRegistryEntry,
        options: Optional[ClientOptions] = None,
    ) -> TransportResponse:
        registry = await self._registry()
        try:
            return await registry.publish_entry(signed_entry, options)
        except PortalConnectionError as e:
            self._invalidate_portal_url(e)
            raise

    async def create_entry(
        self,
        secret_key: Union[KeyPair, bytes],
        target_data: Union[bytes, CID],
        initial_revision: int = 0,
        options: Optional[ClientOptions] = None,
    ) -> CreateEntryResult:
        registry = await self._registry()
        try:
            return await registry.create_entry(secret_key, target_data, initial_revision, options)
        except PortalConnectionError as e:
            self._invalidate_portal_url(e)
            raise

    async def subscribe_to_entry(
        self,
        public_key: bytes,
        options: Optional[ClientOptions] = None,
        verify: bool = True,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        registry = await self._registry()
        try:
            return await registry.subscribe_to_entry(public_key, options, verify=verify, on_error=on_error)
        except WebSocketError as e:
            if e.status_code is None:
                self._invalidate_portal_url(e)
            raise

    # =========================================================================
    # Download
    # =========================================================================

    async def get_cid_url(
        self,
        cid: Union[str, CID],
        options: Optional[ClientOptions] = None,
    ) -> str:
        """Full download URL for a CID, with auth_token when an API key is set."""
        opts = resolve_options(DEFAULT_CLIENT_OPTIONS, self._options, options)
        config = options_to_request_config(opts)
        url = make_url(await self.portal_url(), str(cid))
        return add_url_query(url, config.params)

    async def get_metadata(
        self,
        cid: Union[str, CID],
        options: Optional[ClientOptions] = None,
    ) -> MetadataResult:
        """
        Fetch the JSON metadata for a CID without its content.

        Raises:
            HTTPStatusError: On a non-success status
            TransportError: If the body is not a JSON object
        """
        opts = resolve_options(DEFAULT_DOWNLOAD_OPTIONS, self._options, options)
        config = options_to_request_config(opts)
        url = build_request_url(
            await self.portal_url(),
            endpoint_path=opts.endpoint_get_metadata,
            extra_path=str(cid),
        )

        response = (await self._get(url, config)).raise_for_status()
        try:
            metadata = response.json()
        except ValueError as e:
            raise TransportError(f"Metadata for {cid} is not JSON: {e}", response.status_code) from e
        if not isinstance(metadata, dict):
            raise TransportError(f"Metadata for {cid} is not a JSON object", response.status_code)
        return MetadataResult(metadata=metadata)

    async def download_data(
        self,
        cid: Union[str, CID],
        options: Optional[ClientOptions] = None,
    ) -> bytes:
        """
        Download the content of a CID into memory.

        DownloadOptions.path is appended after the CID and
        DownloadOptions.range is sent as the Range header.

        Raises:
            HTTPStatusError: On a non-success status
        """
        opts = resolve_options(DEFAULT_DOWNLOAD_OPTIONS, self._options, options)
        config = options_to_request_config(opts)
        url = build_request_url(
            await self.portal_url(),
            endpoint_path=opts.endpoint_download,
            extra_path=str(cid),
        )
        if opts.path:
            url = make_url(url, _encode_path(opts.path))

        response = (await self._get(url, config)).raise_for_status()
        logger.debug(f"Downloaded {len(response.body)}B for {cid}")
        return response.body

    async def download_proof(
        self,
        cid: Union[str, CID],
        options: Optional[ClientOptions] = None,
    ) -> bytes:
        """Download the verification proof (<cid>.obao) for a CID."""
        return await self.download_data(f"{cid}{PROOF_SUFFIX}", options)

    async def download_blob(
        self,
        cid: Union[str, CID],
        options: Optional[ClientOptions] = None,
    ) -> bytes:
        """
        Download a blob: capture the portal's redirect to the blob location,
        then fetch that location.

        Credentials are only sent to the redirect target when it is on the
        portal's own host.

        Raises:
            TransportError: If the portal does not redirect
            HTTPStatusError: On a non-success status from either request
        """
        opts = resolve_options(DEFAULT_DOWNLOAD_OPTIONS, self._options, options)
        config = options_to_request_config(opts)
        url = build_request_url(
            await self.portal_url(),
            endpoint_path=opts.endpoint_download_blob,
            extra_path=str(cid),
        )

        response = await self._get(url, config, follow_redirects=False)
        location = response.header("Location")
        if response.status_code not in REDIRECT_STATUSES or not location:
            response.raise_for_status()
            raise TransportError(f"Failed to download blob {cid}: no redirect", response.status_code)

        location = urljoin(response.url or url, location)
        if urlsplit(location).netloc == urlsplit(url).netloc:
            target_config = config
        else:
            target_config = RequestConfig(timeout=config.timeout)
        logger.debug(f"Blob {cid} redirected to {location}")

        blob = (await self._get(location, target_config)).raise_for_status()
        return blob.body

    # =========================================================================
    # Account
    # =========================================================================

    async def account_pins(self, options: Optional[ClientOptions] = None) -> Any:
        """
        List the CIDs pinned by the account behind the API key.

        Returns:
            Decoded JSON body of the portal's pin list

        Raises:
            HTTPStatusError: On a non-success status (401 without an API key)
            TransportError: If the body is not JSON
        """
        opts = resolve_options(DEFAULT_ACCOUNT_OPTIONS, self._options, options)
        config = options_to_request_config(opts)
        url = build_request_url(await self.portal_url(), endpoint_path=opts.endpoint_account_pins)

        response = (await self._get(url, config)).raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Account pins response is not JSON: {e}", response.status_code) from e

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> S5Client:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
