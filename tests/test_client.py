# tests/test_client.py
"""
S5Client: portal URL resolution, cache invalidation, delegation.
"""

import pytest

from s5_client import MetadataResult, S5Client
from s5_client.cid import CID
from s5_client.options import AccountOptions, ClientOptions, DownloadOptions
from s5_client.transport import (
    PORTAL_URL_CACHE,
    HTTPStatusError,
    PortalConnectionError,
    PortalUrlCache,
    TransportError,
    WebSocketError,
)


@pytest.fixture
def url_cache():
    return PortalUrlCache()


@pytest.fixture
def client(http, ws, url_cache):
    return S5Client("portal.example", http=http, websocket=ws, url_cache=url_cache)


def test_initial_url_normalized(client):
    assert client.initial_portal_url == "https://portal.example"


def test_empty_portal_url_rejected():
    with pytest.raises(ValueError):
        S5Client("")


async def test_resolver_result_used_for_requests(http, ws, url_cache, keypair):
    async def resolver(url):
        return "https://api.portal.example"

    client = S5Client("portal.example", http=http, websocket=ws, url_cache=url_cache, url_resolver=resolver)
    http.queue_response(404)
    await client.get_entry(keypair.public_key)

    assert http.requests[0]["url"] == "https://api.portal.example/s5/registry"


async def test_create_then_get(client, http, keypair):
    http.queue_response(404)
    result = await client.create_entry(keypair, b"\x01")
    assert result.published

    http.queue_response(200, json_body=result.entry.to_json_dict())
    assert await client.get_entry(keypair.public_key) == result.entry


async def test_publish_entry_delegates(client, http, make_entry):
    entry = make_entry()
    await client.publish_entry(entry)
    assert http.requests_for("POST")[0]["json"] == entry.to_json_dict()


async def test_connection_error_invalidates_cached_url(client, http, url_cache, keypair):
    http.queue_error(PortalConnectionError("refused"))
    with pytest.raises(PortalConnectionError):
        await client.get_entry(keypair.public_key)
    assert "https://portal.example" not in url_cache


async def test_status_error_keeps_cached_url(client, http, url_cache, keypair):
    http.queue_response(500)
    with pytest.raises(HTTPStatusError):
        await client.get_entry(keypair.public_key)
    assert "https://portal.example" in url_cache


async def test_subscribe_connect_failure_invalidates(client, ws, url_cache, keypair):
    await client.portal_url()
    ws.fail_next_connect(WebSocketError("unreachable"))
    with pytest.raises(WebSocketError):
        await client.subscribe_to_entry(keypair.public_key)
    assert "https://portal.example" not in url_cache


async def test_subscribe_handshake_rejection_keeps_cache(client, ws, url_cache, keypair):
    ws.fail_next_connect(WebSocketError("rejected", status_code=403))
    with pytest.raises(WebSocketError):
        await client.subscribe_to_entry(keypair.public_key)
    assert "https://portal.example" in url_cache


async def test_subscribe_delegates(client, ws, keypair, make_entry):
    sub = await client.subscribe_to_entry(keypair.public_key)
    conn = ws.connections[0]
    assert conn.url == "wss://portal.example/s5/registry/subscription"

    received = []
    sub.listen(received.append)
    conn.push(make_entry().to_bytes())
    conn.server_close()
    await sub.wait_closed()
    assert len(received) == 1


async def test_get_cid_url(http, ws, url_cache):
    client = S5Client(
        "portal.example",
        ClientOptions(api_key="k"),
        http=http,
        websocket=ws,
        url_cache=url_cache,
    )
    cid = CID.from_data(b"abc")
    assert await client.get_cid_url(cid) == f"https://portal.example/{cid}?auth_token=k"
    assert await client.get_cid_url(str(cid), ClientOptions(api_key="other")) == (
        f"https://portal.example/{cid}?auth_token=other"
    )


async def test_context_manager_leaves_borrowed_transport_open(http, ws, url_cache):
    async with S5Client("portal.example", http=http, websocket=ws, url_cache=url_cache) as client:
        assert await client.portal_url() == "https://portal.example"


async def test_custom_resolver_gets_private_cache(http, ws):
    async def first(url):
        return "https://first.example"

    async def second(url):
        return "https://second.example"

    a = S5Client("portal.example", http=http, websocket=ws, url_resolver=first)
    b = S5Client("portal.example", http=http, websocket=ws, url_resolver=second)

    assert await a.portal_url() == "https://first.example"
    assert await b.portal_url() == "https://second.example"
    assert "https://portal.example" not in PORTAL_URL_CACHE


# =============================================================================
# Download
# =============================================================================

async def test_get_metadata(client, http):
    cid = CID.from_data(b"abc")
    http.queue_response(200, json_body={"name": "abc.txt"})

    result = await client.get_metadata(cid)

    assert result == MetadataResult(metadata={"name": "abc.txt"})
    assert http.requests[0]["url"] == f"https://portal.example/s5/metadata/{cid}"


async def test_get_metadata_rejects_non_object(client, http):
    http.queue_response(200, json_body=["not", "an", "object"])
    with pytest.raises(TransportError):
        await client.get_metadata("uabc")


async def test_download_data_with_auth_path_and_range(http, ws, url_cache):
    client = S5Client(
        "portal.example",
        ClientOptions(api_key="k"),
        http=http,
        websocket=ws,
        url_cache=url_cache,
    )
    http.queue_response(206, body=b"partial")

    data = await client.download_data("uabc", DownloadOptions(path="dir one/file.txt", range="bytes=0-6"))

    assert data == b"partial"
    request = http.requests[0]
    assert request["url"] == "https://portal.example/s5/download/uabc/dir%20one/file.txt"
    assert request["headers"]["Range"] == "bytes=0-6"
    assert request["headers"]["Authorization"] == "Bearer k"
    assert request["params"] == {"auth_token": "k"}


async def test_download_data_missing_content(client, http):
    http.queue_response(404)
    with pytest.raises(HTTPStatusError) as exc_info:
        await client.download_data("uabc")
    assert exc_info.value.status_code == 404


async def test_download_proof_appends_suffix(client, http):
    http.queue_response(200, body=b"proof")
    assert await client.download_proof("uabc") == b"proof"
    assert http.requests[0]["url"] == "https://portal.example/s5/download/uabc.obao"


async def test_download_blob_follows_captured_redirect(http, ws, url_cache):
    client = S5Client(
        "portal.example",
        ClientOptions(api_key="k"),
        http=http,
        websocket=ws,
        url_cache=url_cache,
    )
    http.queue_response(301, headers={"location": "https://storage.example/blobs/abc"})
    http.queue_response(200, body=b"blob bytes")

    assert await client.download_blob("uabc") == b"blob bytes"

    first, second = http.requests
    assert first["url"] == "https://portal.example/s5/blob/uabc"
    assert first["follow_redirects"] is False
    assert second["url"] == "https://storage.example/blobs/abc"
    assert "Authorization" not in second["headers"]
    assert second["params"] == {}


async def test_download_blob_relative_redirect_keeps_auth(http, ws, url_cache):
    client = S5Client(
        "portal.example",
        ClientOptions(api_key="k"),
        http=http,
        websocket=ws,
        url_cache=url_cache,
    )
    http.queue_response(302, headers={"Location": "/s5/blob-store/abc"})
    http.queue_response(200, body=b"blob")

    assert await client.download_blob("uabc") == b"blob"
    second = http.requests[1]
    assert second["url"] == "https://portal.example/s5/blob-store/abc"
    assert second["headers"]["Authorization"] == "Bearer k"


async def test_download_blob_without_redirect_fails(client, http):
    http.queue_response(200, body=b"inline")
    with pytest.raises(TransportError, match="no redirect"):
        await client.download_blob("uabc")
    assert len(http.requests) == 1


async def test_download_connection_error_invalidates_cached_url(client, http, url_cache):
    http.queue_error(PortalConnectionError("refused"))
    with pytest.raises(PortalConnectionError):
        await client.download_data("uabc")
    assert "https://portal.example" not in url_cache


# =============================================================================
# Account
# =============================================================================

async def test_account_pins(http, ws, url_cache):
    client = S5Client(
        "portal.example",
        ClientOptions(api_key="k"),
        http=http,
        websocket=ws,
        url_cache=url_cache,
    )
    http.queue_response(200, json_body={"pins": ["uabc"]})

    assert await client.account_pins() == {"pins": ["uabc"]}
    request = http.requests[0]
    assert request["url"] == "https://portal.example/s5/account/pins"
    assert request["headers"]["Authorization"] == "Bearer k"


async def test_account_pins_custom_endpoint(client, http):
    http.queue_response(200, json_body=[])
    await client.account_pins(AccountOptions(endpoint_account_pins="/v2/pins"))
    assert http.requests[0]["url"] == "https://portal.example/v2/pins"


async def test_account_pins_unauthorized(client, http):
    http.queue_response(401, body=b"unauthorized")
    with pytest.raises(HTTPStatusError):
        await client.account_pins()
