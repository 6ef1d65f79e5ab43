# s5_client/transport/http.py
"""
S5 Client Transport: HTTP

Abstract HTTP transport used by the registry client, with an httpx
implementation for real portals and an in-memory mock for tests.

Usage:
    transport = HttpxTransport(timeout=30.0)
    response = await transport.get(url, params={"pk": "..."})
    if response.status_code == 404:
        ...
    response.raise_for_status()
    body = response.json()

    await transport.aclose()

Requirements:
    pip install httpx
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import httpx

logger = logging.getLogger("s5-transport")


# =============================================================================
# Exceptions
# =============================================================================

class TransportError(Exception):
    """Base transport error."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class HTTPStatusError(TransportError):
    """Portal answered with a non-success HTTP status."""
    def __init__(self, status_code: int, url: str, body: bytes = b""):
        self.url = url
        self.body = body
        detail = body[:200].decode("utf-8", errors="replace") if body else ""
        message = f"HTTP {status_code} from {url}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, status_code=status_code)


class PortalConnectionError(TransportError):
    """Failed to reach the portal (DNS, connect, timeout, protocol)."""
    pass


# =============================================================================
# Response Type
# =============================================================================

@dataclass
class TransportResponse:
    """HTTP response as seen by the registry client."""
    status_code: int
    url: str
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None

    def json(self) -> Any:
        """Parse body as JSON."""
        return json.loads(self.body.decode("utf-8"))

    def raise_for_status(self) -> TransportResponse:
        """
        Raises:
            HTTPStatusError: If status is not 2xx
        """
        if not self.is_success:
            raise HTTPStatusError(self.status_code, self.url, self.body)
        return self


# =============================================================================
# HTTP Transport (Abstract)
# =============================================================================

class HTTPTransport(ABC):
    """Abstract HTTP transport for portal calls."""

    @abstractmethod
    async def get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        follow_redirects: bool = True,
    ) -> TransportResponse:
        """Send GET request and return the response (any status).

        With follow_redirects=False a 3xx response is returned as is.
        """
        pass

    @abstractmethod
    async def post(
        self,
        url: str,
        json_body: Any = None,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> TransportResponse:
        """Send POST request with a JSON body and return the response (any status)."""
        pass

    async def aclose(self) -> None:
        """Release pooled connections."""
        pass


# =============================================================================
# httpx Transport
# =============================================================================

class HttpxTransport(HTTPTransport):
    """
    HTTP transport backed by httpx.AsyncClient.

    Owns the connection pool unless a client is passed in.
    """

    MAX_CONNECTIONS = 20

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        """
        Initialize transport.

        Args:
            client: Existing httpx.AsyncClient (not closed by aclose)
            timeout: Default request timeout in seconds
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(max_connections=self.MAX_CONNECTIONS),
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> TransportResponse:
        timeout = kwargs.pop("timeout", None)
        if timeout is not None:
            kwargs["timeout"] = httpx.Timeout(timeout)

        logger.debug(f"{method} {url}")
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise PortalConnectionError(f"{method} {url} failed: {e}") from e

        return TransportResponse(
            status_code=response.status_code,
            url=str(response.url),
            body=response.content,
            headers=dict(response.headers),
        )

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        follow_redirects: bool = True,
    ) -> TransportResponse:
        return await self._request(
            "GET", url, params=params, headers=headers, timeout=timeout,
            follow_redirects=follow_redirects,
        )

    async def post(
        self,
        url: str,
        json_body: Any = None,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> TransportResponse:
        return await self._request(
            "POST", url, json=json_body, params=params, headers=headers, timeout=timeout,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


# =============================================================================
# Mock Transport
# =============================================================================

class MockHTTPTransport(HTTPTransport):
    """Mock HTTP transport for testing."""

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self._response_queue: List[Union[TransportResponse, Exception]] = []

    def queue_response(
        self,
        status_code: int = 200,
        json_body: Any = None,
        body: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        """Queue a response to return."""
        if json_body is not None:
            body = json.dumps(json_body).encode()
        self._response_queue.append(
            TransportResponse(status_code=status_code, url="", body=body, headers=dict(headers or {}))
        )

    def queue_error(self, error: Exception) -> None:
        """Queue an exception to raise."""
        self._response_queue.append(error)

    def requests_for(self, method: str) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["method"] == method]

    async def _respond(self, request: Dict[str, Any]) -> TransportResponse:
        self.requests.append(request)
        if self._response_queue:
            response = self._response_queue.pop(0)
            if isinstance(response, Exception):
                raise response
            response.url = request["url"]
            return response
        return TransportResponse(status_code=200, url=request["url"])

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        follow_redirects: bool = True,
    ) -> TransportResponse:
        """Record request and return queued response."""
        return await self._respond({
            "method": "GET",
            "url": url,
            "params": dict(params or {}),
            "headers": dict(headers or {}),
            "follow_redirects": follow_redirects,
        })

    async def post(
        self,
        url: str,
        json_body: Any = None,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> TransportResponse:
        """Record request and return queued response."""
        return await self._respond({
            "method": "POST",
            "url": url,
            "json": json_body,
            "params": dict(params or {}),
            "headers": dict(headers or {}),
        })
