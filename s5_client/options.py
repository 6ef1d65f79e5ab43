# s5_client/options.py
"""
S5 Client: Options

Options are layered default < client-level < call-site. A field left as
None on a layer does not override the layer below it. Layers are resolved
once per operation with resolve_options().

Usage:
    client_opts = ClientOptions(api_key="...")
    call_opts = RegistryOptions(endpoint_get_entry="/custom/registry")

    opts = resolve_options(DEFAULT_REGISTRY_OPTIONS, client_opts, call_opts)
    config = options_to_request_config(opts)
    config.headers   # {"Authorization": "Bearer ..."}
    config.params    # {"auth_token": "..."}
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Dict, Optional, TypeVar


# =============================================================================
# Option Types
# =============================================================================

@dataclass(frozen=True)
class ClientOptions:
    """
    Client-wide options.

    Attributes:
        api_key: Portal API key, sent as bearer token and auth_token query
        custom_user_agent: User-Agent header value
        custom_cookie: Cookie header value (server contexts only)
        timeout: Request timeout in seconds
    """
    api_key: Optional[str] = None
    custom_user_agent: Optional[str] = None
    custom_cookie: Optional[str] = None
    timeout: Optional[float] = None


@dataclass(frozen=True)
class RegistryOptions(ClientOptions):
    """Registry endpoint options."""
    endpoint_get_entry: Optional[str] = None
    endpoint_publish_entry: Optional[str] = None
    endpoint_subscribe_entry: Optional[str] = None


@dataclass(frozen=True)
class DownloadOptions(ClientOptions):
    """
    Download endpoint options.

    Attributes:
        path: Unix-style path appended after the CID, each component URL-encoded
        range: Range header value for the download
    """
    endpoint_download: Optional[str] = None
    endpoint_get_metadata: Optional[str] = None
    endpoint_download_blob: Optional[str] = None
    path: Optional[str] = None
    range: Optional[str] = None


@dataclass(frozen=True)
class AccountOptions(ClientOptions):
    """Account endpoint options."""
    endpoint_account_pins: Optional[str] = None


DEFAULT_TIMEOUT = 30.0

DEFAULT_CLIENT_OPTIONS = ClientOptions(timeout=DEFAULT_TIMEOUT)

DEFAULT_REGISTRY_OPTIONS = RegistryOptions(
    timeout=DEFAULT_TIMEOUT,
    endpoint_get_entry="/s5/registry",
    endpoint_publish_entry="/s5/registry",
    endpoint_subscribe_entry="/s5/registry/subscription",
)

DEFAULT_DOWNLOAD_OPTIONS = DownloadOptions(
    timeout=DEFAULT_TIMEOUT,
    endpoint_download="/s5/download",
    endpoint_get_metadata="/s5/metadata",
    endpoint_download_blob="/s5/blob",
)

DEFAULT_ACCOUNT_OPTIONS = AccountOptions(
    timeout=DEFAULT_TIMEOUT,
    endpoint_account_pins="/s5/account/pins",
)


OptionsT = TypeVar("OptionsT", bound=ClientOptions)


def resolve_options(default: OptionsT, *layers: Optional[ClientOptions]) -> OptionsT:
    """
    Merge option layers onto a default.

    Later layers win; None fields never override. Layers may be a base
    ClientOptions, in which case only the fields it declares are applied.
    """
    resolved = default
    names = {f.name for f in fields(default)}
    for layer in layers:
        if layer is None:
            continue
        overrides = {
            f.name: getattr(layer, f.name)
            for f in fields(layer)
            if f.name in names and getattr(layer, f.name) is not None
        }
        if overrides:
            resolved = replace(resolved, **overrides)
    return resolved


# =============================================================================
# Request Config
# =============================================================================

@dataclass
class RequestConfig:
    """Headers and query parameters derived from options."""
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None


def options_to_request_config(options: ClientOptions) -> RequestConfig:
    """Translate resolved options into request headers and query params."""
    config = RequestConfig(timeout=options.timeout)

    if options.custom_cookie:
        config.headers["Cookie"] = options.custom_cookie

    if options.custom_user_agent:
        config.headers["User-Agent"] = options.custom_user_agent

    if options.api_key:
        config.headers["Authorization"] = f"Bearer {options.api_key}"
        config.params["auth_token"] = options.api_key

    byte_range = getattr(options, "range", None)
    if byte_range:
        config.headers["Range"] = byte_range

    return config
