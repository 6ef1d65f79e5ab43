# tests/test_registry_client.py
"""
RegistryClient over MockHTTPTransport: get / publish / create.
"""

import pytest

from s5_client.cid import CID
from s5_client.options import ClientOptions, RegistryOptions
from s5_client.registry import (
    InvalidEntryError,
    KeyMismatchError,
    RegistryClient,
    RegistryError,
)
from s5_client.transport import HTTPStatusError, MockHTTPTransport, PortalConnectionError
from s5_client.wire import (
    MAX_DATA_SIZE,
    MAX_REVISION,
    MalformedEntryError,
    SignedRegistryEntry,
    base64url_encode,
)

PORTAL = "https://portal.example"


# =============================================================================
# get_entry
# =============================================================================

async def test_get_entry_not_found_returns_none(registry, http, keypair):
    http.queue_response(404)
    assert await registry.get_entry(keypair.public_key) is None


async def test_get_entry_request_shape(registry, http, keypair):
    http.queue_response(404)
    await registry.get_entry(keypair.public_key)

    request = http.requests[0]
    assert request["method"] == "GET"
    assert request["url"] == f"{PORTAL}/s5/registry"
    assert request["params"]["pk"] == base64url_encode(keypair.public_key)


async def test_get_entry_accepts_raw_public_key(registry, http, keypair):
    http.queue_response(404)
    await registry.get_entry(keypair.public_key_raw)
    assert http.requests[0]["params"]["pk"] == base64url_encode(keypair.public_key)


async def test_get_entry_returns_verified_entry(registry, http, make_entry, keypair):
    entry = make_entry(revision=4)
    http.queue_response(200, json_body=entry.to_json_dict())

    fetched = await registry.get_entry(keypair.public_key)
    assert fetched == entry


async def test_get_entry_rejects_bad_signature(registry, http, make_entry, keypair):
    entry = make_entry()
    body = entry.to_json_dict()
    body["revision"] = entry.revision + 1
    http.queue_response(200, json_body=body)

    with pytest.raises(InvalidEntryError) as exc_info:
        await registry.get_entry(keypair.public_key)
    assert exc_info.value.revision == entry.revision + 1


async def test_get_entry_non_json_body(registry, http, keypair):
    http.queue_response(200, body=b"<html>")
    with pytest.raises(MalformedEntryError):
        await registry.get_entry(keypair.public_key)


async def test_get_entry_malformed_body(registry, http, keypair):
    http.queue_response(200, json_body={"pk": "x"})
    with pytest.raises(MalformedEntryError):
        await registry.get_entry(keypair.public_key)


async def test_get_entry_server_error(registry, http, keypair):
    http.queue_response(500, body=b"boom")
    with pytest.raises(HTTPStatusError) as exc_info:
        await registry.get_entry(keypair.public_key)
    assert exc_info.value.status_code == 500


async def test_get_entry_connection_error_propagates(registry, http, keypair):
    http.queue_error(PortalConnectionError("refused"))
    with pytest.raises(PortalConnectionError):
        await registry.get_entry(keypair.public_key)


# =============================================================================
# publish_entry
# =============================================================================

async def test_publish_entry_posts_json(registry, http, make_entry):
    entry = make_entry(revision=2)
    response = await registry.publish_entry(entry)

    assert response.is_success
    request = http.requests_for("POST")[0]
    assert request["url"] == f"{PORTAL}/s5/registry"
    assert request["json"] == entry.to_json_dict()


async def test_publish_entry_refuses_unverified_without_request(registry, http, make_entry):
    entry = make_entry()
    tampered = entry.with_signature(bytes(64))

    with pytest.raises(InvalidEntryError):
        await registry.publish_entry(tampered)
    assert http.requests == []


async def test_publish_entry_rejection_raises(registry, http, make_entry):
    http.queue_response(400, body=b"revision too low")
    with pytest.raises(HTTPStatusError, match="revision too low"):
        await registry.publish_entry(make_entry())


# =============================================================================
# create_entry
# =============================================================================

async def test_create_entry_new_key_uses_initial_revision(registry, http, keypair):
    http.queue_response(404)
    result = await registry.create_entry(keypair, b"\x01\x02", initial_revision=5)

    assert result.published
    assert result.entry.revision == 5
    assert result.entry.data == b"\x01\x02"

    posted = http.requests_for("POST")[0]["json"]
    assert SignedRegistryEntry.from_json_dict(posted) == result.entry


async def test_create_entry_default_initial_revision_is_zero(registry, http, keypair):
    http.queue_response(404)
    result = await registry.create_entry(keypair.seed, b"\x01")
    assert result.entry.revision == 0


async def test_create_entry_increments_revision(registry, http, make_entry, keypair):
    http.queue_response(200, json_body=make_entry(data=b"old", revision=7).to_json_dict())
    result = await registry.create_entry(keypair, b"new")

    assert result.published
    assert result.entry.revision == 8
    assert result.entry.data == b"new"


async def test_create_entry_same_data_is_noop(registry, http, make_entry, keypair):
    existing = make_entry(data=b"same", revision=3)
    http.queue_response(200, json_body=existing.to_json_dict())

    result = await registry.create_entry(keypair, b"same")

    assert not result.published
    assert result.entry == existing
    assert result.response is None
    assert http.requests_for("POST") == []


async def test_create_entry_foreign_entry_raises_key_mismatch(registry, http, make_entry, keypair, other_keypair):
    foreign = make_entry(data=b"theirs", kp=other_keypair)
    http.queue_response(200, json_body=foreign.to_json_dict())

    with pytest.raises(KeyMismatchError) as exc_info:
        await registry.create_entry(keypair, b"mine")
    assert exc_info.value.expected == keypair.public_key
    assert exc_info.value.actual == other_keypair.public_key
    assert http.requests_for("POST") == []


async def test_create_entry_revision_overflow(registry, http, make_entry, keypair):
    http.queue_response(200, json_body=make_entry(data=b"a", revision=MAX_REVISION).to_json_dict())
    with pytest.raises(RegistryError, match="overflow"):
        await registry.create_entry(keypair, b"b")


async def test_create_entry_with_cid_uses_registry_form(registry, http, keypair):
    cid = CID.from_data(b"hello world")
    http.queue_response(404)

    result = await registry.create_entry(keypair, cid)
    assert result.entry.data == cid.to_registry_entry()
    assert CID.from_registry_entry(result.entry.data) == cid


async def test_create_entry_oversize_target_rejected_before_request(registry, http, keypair):
    with pytest.raises(ValueError, match="at most"):
        await registry.create_entry(keypair, b"\x00" * (MAX_DATA_SIZE + 1))
    assert http.requests == []


async def test_get_entry_non_ascii_digit_revision_is_malformed(registry, http, make_entry, keypair):
    body = make_entry().to_json_dict()
    body["revision"] = "²"
    http.queue_response(200, json_body=body)
    with pytest.raises(MalformedEntryError):
        await registry.get_entry(keypair.public_key)


async def test_create_entry_publish_rejected(registry, http, keypair):
    http.queue_response(404)
    http.queue_response(409, body=b"conflict")
    with pytest.raises(HTTPStatusError):
        await registry.create_entry(keypair, b"x")


# =============================================================================
# Options
# =============================================================================

async def test_api_key_sets_auth_header_and_query(http, keypair):
    client = RegistryClient(http=http, portal_url=PORTAL, options=ClientOptions(api_key="secret"))
    http.queue_response(404)
    await client.get_entry(keypair.public_key)

    request = http.requests[0]
    assert request["headers"]["Authorization"] == "Bearer secret"
    assert request["params"]["auth_token"] == "secret"


async def test_user_agent_and_cookie_headers(http, make_entry):
    options = ClientOptions(custom_user_agent="agent/1.0", custom_cookie="a=b")
    client = RegistryClient(http=http, portal_url=PORTAL, options=options)
    await client.publish_entry(make_entry())

    headers = http.requests[0]["headers"]
    assert headers["User-Agent"] == "agent/1.0"
    assert headers["Cookie"] == "a=b"


async def test_call_site_options_override_client_options(http, keypair):
    client = RegistryClient(
        http=http,
        portal_url=PORTAL,
        options=RegistryOptions(api_key="client", endpoint_get_entry="/client/registry"),
    )
    http.queue_response(404)
    await client.get_entry(keypair.public_key, RegistryOptions(api_key="call"))

    request = http.requests[0]
    assert request["url"] == f"{PORTAL}/client/registry"
    assert request["headers"]["Authorization"] == "Bearer call"


async def test_no_api_key_sends_no_auth(registry, http, keypair):
    http.queue_response(404)
    await registry.get_entry(keypair.public_key)

    request = http.requests[0]
    assert "Authorization" not in request["headers"]
    assert "auth_token" not in request["params"]


async def test_subscribe_requires_websocket_transport(keypair):
    client = RegistryClient(http=MockHTTPTransport(), portal_url=PORTAL)
    with pytest.raises(RegistryError, match="WebSocket"):
        await client.subscribe_to_entry(keypair.public_key)
