# s5_client/wire/entry.py
"""
S5 Client Wire Format: Registry Entry

Binary and text encodings for signed, versioned registry entries.
The binary layout matches the serialized registry entry of the S5 network,
so entries pushed over a subscription socket decode with the same codec.

Wire Format (binary):
    ┌─────────────────────────────────────────────────────────────────────┐
    │  record_type (1B) = 0x07                                            │
    │  public_key (33B)  ← key type tag (0xED) + raw Ed25519 key          │
    │  revision (8B)     ← uint64 little-endian                           │
    │  data_len (1B)     │  data (N ≤ 64B)                                │
    │  signature (64B)   ← Ed25519 over the signing payload               │
    └─────────────────────────────────────────────────────────────────────┘

Signing payload:
    [record_type:1][revision:8][data_len:1][data:N]

Text Format (HTTP JSON):
    {"pk": b64url, "revision": int, "data": b64url, "signature": b64url}
    b64url = URL-safe base64 with the '=' padding stripped

Subscription control frame (MessagePack):
    2 (opcode: subscribe), <bin: tagged public key>

Usage:
    from s5_client.wire import RegistryEntry, SignedRegistryEntry

    entry = RegistryEntry(public_key=kp.public_key, data=b"...", revision=0)
    payload = entry.signing_payload()

    wire = signed.to_bytes()
    signed = SignedRegistryEntry.from_bytes(wire)

    body = signed.to_json_dict()
    signed = SignedRegistryEntry.from_json_dict(body)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Dict, Mapping

import msgpack

from ..keys import (
    KEY_TYPES,
    SIGNATURE_SIZE,
    TAGGED_PUBLIC_KEY_SIZE,
)
from .encoding import base64url_decode, base64url_encode


# =============================================================================
# Constants
# =============================================================================

class RecordType(IntEnum):
    """Record type discriminants."""
    REGISTRY_ENTRY = 0x07


class SubscriptionOpcode(IntEnum):
    """Control message opcodes for the subscription socket."""
    SUBSCRIBE = 0x02


MAX_REVISION = 0xFFFFFFFFFFFFFFFF
MAX_DATA_SIZE = 64
REVISION_SIZE = 8

# record_type(1) + public_key(33) + revision(8) + data_len(1)
ENTRY_HEADER_SIZE = 1 + TAGGED_PUBLIC_KEY_SIZE + REVISION_SIZE + 1  # 43 bytes
MIN_SIGNED_ENTRY_SIZE = ENTRY_HEADER_SIZE + SIGNATURE_SIZE


# =============================================================================
# Exceptions
# =============================================================================

class EntryError(Exception):
    """Base entry codec error."""
    pass


class MalformedEntryError(EntryError):
    """Bytes or text do not form a structurally valid registry entry."""
    pass


# =============================================================================
# RegistryEntry
# =============================================================================

@dataclass(frozen=True)
class RegistryEntry:
    """
    Unsigned registry entry.

    Attributes:
        public_key: 33B tagged public key of the owner
        data: Opaque payload (≤ 64B), usually a CID in registry form
        revision: uint64, strictly increasing per public key
    """

    public_key: bytes
    data: bytes
    revision: int

    def __post_init__(self):
        """Validate entry fields."""
        if not isinstance(self.public_key, (bytes, bytearray)):
            raise ValueError("public_key is required")
        if not isinstance(self.data, (bytes, bytearray)):
            raise ValueError("data is required")

        object.__setattr__(self, "public_key", bytes(self.public_key))
        object.__setattr__(self, "data", bytes(self.data))

        if len(self.public_key) != TAGGED_PUBLIC_KEY_SIZE:
            raise ValueError(f"public_key must be {TAGGED_PUBLIC_KEY_SIZE}B, got {len(self.public_key)}")

        if self.public_key[0] not in KEY_TYPES:
            raise ValueError(f"Unsupported key type: 0x{self.public_key[0]:02x}")

        if len(self.data) > MAX_DATA_SIZE:
            raise ValueError(f"data must be at most {MAX_DATA_SIZE}B, got {len(self.data)}")

        if isinstance(self.revision, bool) or not isinstance(self.revision, int):
            raise ValueError(f"revision must be an integer, got {type(self.revision).__name__}")

        if not (0 <= self.revision <= MAX_REVISION):
            raise ValueError(f"revision must be uint64, got {self.revision}")

    def signing_payload(self) -> bytes:
        """
        Canonical bytes covered by the signature.

        Payload: [record_type:1][revision:8 LE][data_len:1][data:N]
        """
        return struct.pack(
            f"<BQB{len(self.data)}s",
            RecordType.REGISTRY_ENTRY,
            self.revision,
            len(self.data),
            self.data,
        )

    def with_data(self, data: bytes, revision: int) -> RegistryEntry:
        """New unsigned entry for the same owner."""
        return RegistryEntry(public_key=self.public_key, data=data, revision=revision)


# =============================================================================
# SignedRegistryEntry
# =============================================================================

@dataclass(frozen=True)
class SignedRegistryEntry(RegistryEntry):
    """
    Registry entry with a detached Ed25519 signature over its signing payload.
    """

    signature: bytes

    def __post_init__(self):
        super().__post_init__()

        if not isinstance(self.signature, (bytes, bytearray)):
            raise ValueError("signature is required")
        object.__setattr__(self, "signature", bytes(self.signature))

        if len(self.signature) != SIGNATURE_SIZE:
            raise ValueError(f"signature must be {SIGNATURE_SIZE}B, got {len(self.signature)}")

    @property
    def unsigned(self) -> RegistryEntry:
        return RegistryEntry(public_key=self.public_key, data=self.data, revision=self.revision)

    def with_signature(self, signature: bytes) -> SignedRegistryEntry:
        return replace(self, signature=signature)

    # =========================================================================
    # Binary Serialization
    # =========================================================================

    def to_bytes(self) -> bytes:
        """
        Serialize entry to wire format.

        Wire: [0x07][public_key:33][revision:8][data_len:1][data:N][signature:64]
        """
        return struct.pack(
            f"<B{TAGGED_PUBLIC_KEY_SIZE}sQB{len(self.data)}s{SIGNATURE_SIZE}s",
            RecordType.REGISTRY_ENTRY,
            self.public_key,
            self.revision,
            len(self.data),
            self.data,
            self.signature,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> SignedRegistryEntry:
        """
        Deserialize entry from wire format.

        Raises:
            MalformedEntryError: On wrong length, bad record type or bad key tag
        """
        data = bytes(data)
        if len(data) < MIN_SIGNED_ENTRY_SIZE:
            raise MalformedEntryError(f"Data too short for entry: {len(data)} < {MIN_SIGNED_ENTRY_SIZE}")

        record_type, public_key, revision, data_len = struct.unpack(
            f"<B{TAGGED_PUBLIC_KEY_SIZE}sQB", data[:ENTRY_HEADER_SIZE]
        )

        if record_type != RecordType.REGISTRY_ENTRY:
            raise MalformedEntryError(f"Unexpected record type: 0x{record_type:02x}")

        expected = ENTRY_HEADER_SIZE + data_len + SIGNATURE_SIZE
        if len(data) != expected:
            raise MalformedEntryError(f"Entry length mismatch: {len(data)} != {expected}")

        payload = data[ENTRY_HEADER_SIZE:ENTRY_HEADER_SIZE + data_len]
        signature = data[ENTRY_HEADER_SIZE + data_len:]

        try:
            return cls(
                public_key=public_key,
                data=payload,
                revision=revision,
                signature=signature,
            )
        except ValueError as e:
            raise MalformedEntryError(str(e)) from e

    # =========================================================================
    # Text Serialization
    # =========================================================================

    def to_json_dict(self) -> Dict[str, Any]:
        """Convert to the JSON body used by the registry HTTP endpoints."""
        return {
            "pk": base64url_encode(self.public_key),
            "revision": self.revision,
            "data": base64url_encode(self.data),
            "signature": base64url_encode(self.signature),
        }

    @classmethod
    def from_json_dict(cls, body: Mapping[str, Any]) -> SignedRegistryEntry:
        """
        Parse the registry JSON body.

        Raises:
            MalformedEntryError: On missing fields, bad base64url or bad sizes
        """
        if not isinstance(body, Mapping):
            raise MalformedEntryError(f"Entry body must be an object, got {type(body).__name__}")

        missing = [k for k in ("pk", "revision", "data", "signature") if k not in body]
        if missing:
            raise MalformedEntryError(f"Entry body missing fields: {', '.join(missing)}")

        revision = body["revision"]
        if isinstance(revision, str) and revision.isascii() and revision.isdigit():
            revision = int(revision)

        try:
            return cls(
                public_key=base64url_decode(body["pk"]),
                data=base64url_decode(body["data"]),
                revision=revision,
                signature=base64url_decode(body["signature"]),
            )
        except ValueError as e:
            raise MalformedEntryError(str(e)) from e


# =============================================================================
# Codec Functions
# =============================================================================

def encode(entry: SignedRegistryEntry) -> bytes:
    """Binary encode a signed entry."""
    return entry.to_bytes()


def decode(data: bytes) -> SignedRegistryEntry:
    """Binary decode a signed entry."""
    return SignedRegistryEntry.from_bytes(data)


def pack_subscribe_request(public_key: bytes) -> bytes:
    """
    Build the subscription control frame.

    Frame: MessagePack(2) || MessagePack(bin public_key)
    """
    if len(public_key) != TAGGED_PUBLIC_KEY_SIZE:
        raise ValueError(f"public_key must be {TAGGED_PUBLIC_KEY_SIZE}B, got {len(public_key)}")
    packer = msgpack.Packer(use_bin_type=True)
    return packer.pack(int(SubscriptionOpcode.SUBSCRIBE)) + packer.pack(bytes(public_key))
