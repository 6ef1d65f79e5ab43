# tests/test_options.py
"""
Option layering and request config.
"""

import pytest

from s5_client.options import (
    DEFAULT_ACCOUNT_OPTIONS,
    DEFAULT_DOWNLOAD_OPTIONS,
    DEFAULT_REGISTRY_OPTIONS,
    DEFAULT_TIMEOUT,
    ClientOptions,
    DownloadOptions,
    RegistryOptions,
    options_to_request_config,
    resolve_options,
)


def test_defaults():
    assert DEFAULT_REGISTRY_OPTIONS.endpoint_get_entry == "/s5/registry"
    assert DEFAULT_REGISTRY_OPTIONS.endpoint_publish_entry == "/s5/registry"
    assert DEFAULT_REGISTRY_OPTIONS.endpoint_subscribe_entry == "/s5/registry/subscription"
    assert DEFAULT_REGISTRY_OPTIONS.timeout == DEFAULT_TIMEOUT


def test_call_site_beats_client_beats_default():
    client = RegistryOptions(api_key="client", endpoint_get_entry="/client")
    call = RegistryOptions(api_key="call")

    resolved = resolve_options(DEFAULT_REGISTRY_OPTIONS, client, call)

    assert resolved.api_key == "call"
    assert resolved.endpoint_get_entry == "/client"
    assert resolved.endpoint_publish_entry == "/s5/registry"


def test_none_fields_do_not_override():
    resolved = resolve_options(DEFAULT_REGISTRY_OPTIONS, RegistryOptions(endpoint_get_entry=None))
    assert resolved.endpoint_get_entry == "/s5/registry"


def test_base_options_layer_onto_registry_options():
    resolved = resolve_options(DEFAULT_REGISTRY_OPTIONS, ClientOptions(timeout=3.0), None)
    assert isinstance(resolved, RegistryOptions)
    assert resolved.timeout == 3.0


def test_options_are_frozen():
    with pytest.raises(Exception):
        ClientOptions().api_key = "x"


def test_request_config_headers_and_params():
    config = options_to_request_config(ClientOptions(
        api_key="k",
        custom_user_agent="ua",
        custom_cookie="c=1",
        timeout=2.0,
    ))
    assert config.headers == {
        "Authorization": "Bearer k",
        "User-Agent": "ua",
        "Cookie": "c=1",
    }
    assert config.params == {"auth_token": "k"}
    assert config.timeout == 2.0


def test_request_config_empty():
    config = options_to_request_config(ClientOptions())
    assert config.headers == {}
    assert config.params == {}


def test_download_defaults_and_range_header():
    assert DEFAULT_DOWNLOAD_OPTIONS.endpoint_download == "/s5/download"
    assert DEFAULT_DOWNLOAD_OPTIONS.endpoint_get_metadata == "/s5/metadata"
    assert DEFAULT_DOWNLOAD_OPTIONS.endpoint_download_blob == "/s5/blob"
    assert DEFAULT_ACCOUNT_OPTIONS.endpoint_account_pins == "/s5/account/pins"

    resolved = resolve_options(DEFAULT_DOWNLOAD_OPTIONS, ClientOptions(api_key="k"), DownloadOptions(range="bytes=0-9"))
    assert options_to_request_config(resolved).headers == {
        "Authorization": "Bearer k",
        "Range": "bytes=0-9",
    }
