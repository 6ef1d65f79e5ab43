# s5_client/transport/url.py
"""
S5 Client Transport: URL Helpers and Portal URL Cache

URL building for portal endpoints and the process-wide cache of resolved
portal URLs.

Usage:
    url = build_request_url(
        "siasky.example",
        endpoint_path="/s5/registry",
        query={"pk": "7Q..."},
    )
    # "https://siasky.example/s5/registry?pk=7Q..."

    ws_url = to_websocket_url(url)   # "wss://..."

    base = await PORTAL_URL_CACHE.get("https://portal.example")
    PORTAL_URL_CACHE.invalidate("https://portal.example")
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Mapping, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

logger = logging.getLogger("s5-transport")


# =============================================================================
# URL Helpers
# =============================================================================

def ensure_url_prefix(url: str) -> str:
    """Make sure the URL has a protocol, defaulting to https (http for localhost)."""
    if url.startswith(("http://", "https://", "ws://", "wss://")):
        return url
    if url.startswith("localhost"):
        return f"http://{url}"
    return f"https://{url}"


def ensure_url(url: str) -> str:
    """Normalize a portal URL: protocol prefix, no trailing slash."""
    if not url:
        raise ValueError("portal URL must be a non-empty string")
    return ensure_url_prefix(url.strip()).rstrip("/")


def make_url(*parts: str) -> str:
    """Join URL parts with exactly one slash between them."""
    if not parts:
        raise ValueError("make_url requires at least one part")
    url = parts[0].rstrip("/")
    for part in parts[1:]:
        part = part.strip("/")
        if part:
            url = f"{url}/{part}"
    return url


def add_url_subdomain(url: str, subdomain: str) -> str:
    """Prefix the URL host with a subdomain."""
    split = urlsplit(url)
    return urlunsplit(split._replace(netloc=f"{subdomain}.{split.netloc}"))


def add_url_query(url: str, query: Mapping[str, Optional[str]]) -> str:
    """Append query parameters, skipping None values."""
    params = {k: v for k, v in query.items() if v is not None}
    if not params:
        return url
    split = urlsplit(url)
    encoded = urlencode(params)
    new_query = f"{split.query}&{encoded}" if split.query else encoded
    return urlunsplit(split._replace(query=new_query))


def build_request_url(
    base_url: str,
    endpoint_path: Optional[str] = None,
    extra_path: Optional[str] = None,
    subdomain: Optional[str] = None,
    query: Optional[Mapping[str, Optional[str]]] = None,
) -> str:
    """
    Build a request URL from its parts.

    Args:
        base_url: Portal base URL
        endpoint_path: Endpoint to contact
        extra_path: Optional path appended after the endpoint
        subdomain: Optional subdomain to add to the host
        query: Optional query parameters (None values skipped)

    Returns:
        Full URL, always with a protocol prefix
    """
    url = ensure_url_prefix(base_url)

    if endpoint_path:
        url = make_url(url, endpoint_path)
    if extra_path:
        url = make_url(url, extra_path)
    if subdomain:
        url = add_url_subdomain(url, subdomain)
    if query:
        url = add_url_query(url, query)

    return url


def to_websocket_url(url: str) -> str:
    """Upgrade an http(s) URL to ws(s)."""
    split = urlsplit(ensure_url_prefix(url))
    scheme = {"http": "ws", "https": "wss"}.get(split.scheme, split.scheme)
    return urlunsplit(split._replace(scheme=scheme))


# =============================================================================
# Portal URL Cache
# =============================================================================

PortalUrlResolver = Callable[[str], Awaitable[str]]


async def _default_resolver(initial_url: str) -> str:
    return ensure_url(initial_url)


class PortalUrlCache:
    """
    Memoized portal URL resolution keyed by the initial portal URL.

    Concurrent callers for the same key share one in-flight resolution.
    A failed resolution is not cached; invalidate() drops a cached value
    so the next call resolves again.

    The key is the initial URL alone, not the resolver: callers with
    different resolvers for the same URL need separate caches.
    """

    def __init__(self):
        self._resolved: Dict[str, str] = {}
        self._pending: Dict[str, asyncio.Future] = {}

    async def get(
        self,
        initial_url: str,
        resolver: Optional[PortalUrlResolver] = None,
    ) -> str:
        """Return the resolved URL for initial_url, resolving once if needed."""
        if initial_url in self._resolved:
            return self._resolved[initial_url]

        if initial_url in self._pending:
            return await asyncio.shield(self._pending[initial_url])

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[initial_url] = future
        try:
            resolved = await (resolver or _default_resolver)(initial_url)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so a lone failure doesn't log "never retrieved"
            future.exception()
            raise
        else:
            self._resolved[initial_url] = resolved
            future.set_result(resolved)
            logger.debug(f"Resolved portal URL {initial_url} -> {resolved}")
            return resolved
        finally:
            self._pending.pop(initial_url, None)

    def invalidate(self, initial_url: Optional[str] = None) -> None:
        """Drop one cached URL, or all of them when initial_url is None."""
        if initial_url is None:
            self._resolved.clear()
        else:
            self._resolved.pop(initial_url, None)

    def __contains__(self, initial_url: str) -> bool:
        return initial_url in self._resolved


PORTAL_URL_CACHE = PortalUrlCache()
