# s5_client/transport/__init__.py
"""
S5 Client Transport Layer

HTTP and WebSocket collaborators used by the registry client.

Components:
    HTTPTransport: abstract request/response transport
        - HttpxTransport: httpx.AsyncClient backed
        - MockHTTPTransport: in-memory, for tests
    WebSocketTransport: abstract duplex transport for subscriptions
        - WebsocketsTransport: websockets backed
        - MockWebSocketTransport: in-memory, for tests
    url: request URL building and the resolved portal URL cache
"""

from .http import (
    HTTPTransport,
    HttpxTransport,
    MockHTTPTransport,
    TransportResponse,
    TransportError,
    HTTPStatusError,
    PortalConnectionError,
)

from .websocket import (
    WebSocketTransport,
    WebSocketConnection,
    WebsocketsTransport,
    MockWebSocketTransport,
    MockWebSocketConnection,
    WebSocketError,
)

from .url import (
    PortalUrlCache,
    PORTAL_URL_CACHE,
    build_request_url,
    ensure_url,
    ensure_url_prefix,
    make_url,
    add_url_query,
    add_url_subdomain,
    to_websocket_url,
)

__all__ = [
    # HTTP
    "HTTPTransport",
    "HttpxTransport",
    "MockHTTPTransport",
    "TransportResponse",
    "TransportError",
    "HTTPStatusError",
    "PortalConnectionError",

    # WebSocket
    "WebSocketTransport",
    "WebSocketConnection",
    "WebsocketsTransport",
    "MockWebSocketTransport",
    "MockWebSocketConnection",
    "WebSocketError",

    # URL
    "PortalUrlCache",
    "PORTAL_URL_CACHE",
    "build_request_url",
    "ensure_url",
    "ensure_url_prefix",
    "make_url",
    "add_url_query",
    "add_url_subdomain",
    "to_websocket_url",
]
