# s5_client/wire/__init__.py
"""
S5 Client Wire Format

Binary and text encodings for registry entries, and the subscription
control frame.

Modules:
    entry: RegistryEntry / SignedRegistryEntry codec
    encoding: padding-free base64url

Usage:
    from s5_client.wire import SignedRegistryEntry, encode, decode

    wire = encode(signed)
    signed = decode(wire)
"""

from .encoding import (
    base64url_encode,
    base64url_decode,
)

from .entry import (
    # Entry classes
    RegistryEntry,
    SignedRegistryEntry,

    # Enums
    RecordType,
    SubscriptionOpcode,

    # Constants
    MAX_DATA_SIZE,
    MAX_REVISION,
    ENTRY_HEADER_SIZE,

    # Exceptions
    EntryError,
    MalformedEntryError,

    # Codec
    encode,
    decode,
    pack_subscribe_request,
)

__all__ = [
    "base64url_encode",
    "base64url_decode",
    "RegistryEntry",
    "SignedRegistryEntry",
    "RecordType",
    "SubscriptionOpcode",
    "MAX_DATA_SIZE",
    "MAX_REVISION",
    "ENTRY_HEADER_SIZE",
    "EntryError",
    "MalformedEntryError",
    "encode",
    "decode",
    "pack_subscribe_request",
]
