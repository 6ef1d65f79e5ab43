# s5_client/__init__.py
"""
S5 Client: Registry Entries for the S5 Content-Addressed Network

Signed, monotonic-revision mutable pointers over immutable content.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │  s5_client                                              │
    │  ├── keys.py          # Ed25519 KeyPair, key type tags  │
    │  ├── cid.py           # Content identifiers             │
    │  ├── options.py       # Client/registry/download options│
    │  ├── client.py        # S5Client, download, account     │
    │  │                                                      │
    │  ├── wire/            # Registry entry codec            │
    │  │   ├── entry.py     # Binary + JSON forms             │
    │  │   └── encoding.py  # Padding-free base64url          │
    │  │                                                      │
    │  ├── registry/        # Registry protocol               │
    │  │   ├── verifier.py  # sign_entry / verify_entry       │
    │  │   ├── client.py    # get / publish / create          │
    │  │   └── subscription.py  # Live push updates          │
    │  │                                                      │
    │  └── transport/       # Portal collaborators            │
    │      ├── http.py      # httpx transport                 │
    │      ├── websocket.py # websockets transport            │
    │      └── url.py       # URL building, portal URL cache  │
    └─────────────────────────────────────────────────────────┘

Quick Start:
    from s5_client import S5Client, KeyPair, CID

    kp = KeyPair.generate()
    async with S5Client("portal.example") as client:
        result = await client.create_entry(kp, CID.from_data(b"hello"))
        entry = await client.get_entry(kp.public_key)
"""

__version__ = "0.1.0"

from .keys import (
    KeyPair,
    KeyType,
    KEY_TYPES,
    KEY_TYPE_ED25519,
    get_key_type,
    tag_public_key,
    ensure_tagged_public_key,
    verify_signature,
)

from .cid import (
    CID,
    CIDType,
)

from .options import (
    ClientOptions,
    RegistryOptions,
    DownloadOptions,
    AccountOptions,
    resolve_options,
)

from .wire import (
    RegistryEntry,
    SignedRegistryEntry,
    EntryError,
    MalformedEntryError,
    encode,
    decode,
)

from .registry import (
    RegistryClient,
    CreateEntryResult,
    Subscription,
    SubscriptionState,
    RegistryError,
    InvalidEntryError,
    KeyMismatchError,
    verify_entry,
    sign_entry,
)

from .transport import (
    HTTPTransport,
    HttpxTransport,
    WebSocketTransport,
    WebsocketsTransport,
    TransportResponse,
    TransportError,
    HTTPStatusError,
    PortalConnectionError,
    WebSocketError,
)

from .client import S5Client, MetadataResult

__all__ = [
    "__version__",

    # Client
    "S5Client",
    "MetadataResult",

    # Keys
    "KeyPair",
    "KeyType",
    "KEY_TYPES",
    "KEY_TYPE_ED25519",
    "get_key_type",
    "tag_public_key",
    "ensure_tagged_public_key",
    "verify_signature",

    # CID
    "CID",
    "CIDType",

    # Options
    "ClientOptions",
    "RegistryOptions",
    "DownloadOptions",
    "AccountOptions",
    "resolve_options",

    # Wire
    "RegistryEntry",
    "SignedRegistryEntry",
    "encode",
    "decode",

    # Registry
    "RegistryClient",
    "CreateEntryResult",
    "Subscription",
    "SubscriptionState",
    "verify_entry",
    "sign_entry",

    # Transport
    "HTTPTransport",
    "HttpxTransport",
    "WebSocketTransport",
    "WebsocketsTransport",
    "TransportResponse",

    # Errors
    "EntryError",
    "MalformedEntryError",
    "RegistryError",
    "InvalidEntryError",
    "KeyMismatchError",
    "TransportError",
    "HTTPStatusError",
    "PortalConnectionError",
    "WebSocketError",
]
