# s5_client/cid.py
"""
S5 Client: Content Identifiers

Self-describing identifiers naming immutable content by hash and size.
A CID in registry form is the usual data payload of a registry entry.

Byte Layout:
    raw:      [type:1 = 0x26][mhash:33 = 0x1f + BLAKE3-256][size: LE, trailing zeros trimmed]
    resolver: [type:1 = 0x25][tagged public key:33]
    other:    [type:1][mhash:33]

Registry form:
    [0x5a][cid bytes]

Text form (multibase):
    'u' + base64url (no padding)
    'b' + base32 lowercase (no padding)

Usage:
    from s5_client.cid import CID

    cid = CID.from_data(b"hello world")
    entry_data = cid.to_registry_entry()
    cid = CID.from_registry_entry(entry_data)
    str(cid)   # "u..."

Requirements:
    pip install blake3
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from blake3 import blake3

from .keys import ensure_tagged_public_key
from .wire.encoding import base64url_decode, base64url_encode


# =============================================================================
# Constants
# =============================================================================

class CIDType(IntEnum):
    """CID type bytes."""
    RAW = 0x26
    RESOLVER = 0x25
    METADATA_MEDIA = 0xC5
    METADATA_WEBAPP = 0x59
    USER_IDENTITY = 0x77
    BRIDGE = 0x3A
    ENCRYPTED_STATIC = 0xAE
    ENCRYPTED_DYNAMIC = 0xAD


MHASH_BLAKE3 = 0x1F
HASH_SIZE = 32
MULTIHASH_SIZE = 1 + HASH_SIZE  # 33

REGISTRY_CID_BYTE = 0x5A


# =============================================================================
# Size Encoding
# =============================================================================

def encode_size(size: int) -> bytes:
    """Little-endian size with trailing zero bytes trimmed (at least one byte)."""
    if size < 0:
        raise ValueError(f"size must be non-negative, got {size}")
    out = size.to_bytes(8, "little").rstrip(b"\x00")
    return out or b"\x00"


def decode_size(data: bytes) -> int:
    return int.from_bytes(data, "little")


# =============================================================================
# CID
# =============================================================================

@dataclass(frozen=True)
class CID:
    """
    Content identifier.

    Attributes:
        type: CID type byte
        hash: 33B multihash (or tagged public key for resolver CIDs)
        size: Content size in bytes (raw CIDs only)
    """

    type: CIDType
    hash: bytes
    size: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "type", CIDType(self.type))
        object.__setattr__(self, "hash", bytes(self.hash))

        if len(self.hash) != MULTIHASH_SIZE:
            raise ValueError(f"hash must be {MULTIHASH_SIZE}B, got {len(self.hash)}")

        if self.type == CIDType.RAW and self.size is None:
            raise ValueError("raw CID requires a size")

    # =========================================================================
    # Factory Methods
    # =========================================================================

    @classmethod
    def from_data(cls, data: bytes) -> CID:
        """Raw CID for in-memory bytes (BLAKE3-256)."""
        digest = blake3(bytes(data)).digest()
        return cls(
            type=CIDType.RAW,
            hash=bytes([MHASH_BLAKE3]) + digest,
            size=len(data),
        )

    @classmethod
    def resolver(cls, public_key: bytes) -> CID:
        """Resolver CID pointing at a registry entry's public key."""
        return cls(type=CIDType.RESOLVER, hash=ensure_tagged_public_key(public_key))

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_bytes(self) -> bytes:
        if self.type == CIDType.RAW:
            return bytes([self.type]) + self.hash + encode_size(self.size)
        return bytes([self.type]) + self.hash

    @classmethod
    def from_bytes(cls, data: bytes) -> CID:
        """
        Raises:
            ValueError: On unknown type or wrong length
        """
        data = bytes(data)
        if len(data) < 1 + MULTIHASH_SIZE:
            raise ValueError(f"CID too short: {len(data)}B")

        cid_type = CIDType(data[0])
        if cid_type == CIDType.RAW:
            size_bytes = data[1 + MULTIHASH_SIZE:]
            if not size_bytes or len(size_bytes) > 8:
                raise ValueError(f"raw CID size must be 1-8B, got {len(size_bytes)}")
            return cls(type=cid_type, hash=data[1:1 + MULTIHASH_SIZE], size=decode_size(size_bytes))

        if len(data) != 1 + MULTIHASH_SIZE:
            raise ValueError(f"CID length mismatch: {len(data)} != {1 + MULTIHASH_SIZE}")
        return cls(type=cid_type, hash=data[1:])

    def to_registry_entry(self) -> bytes:
        """Registry entry data payload for this CID."""
        return bytes([REGISTRY_CID_BYTE]) + self.to_bytes()

    @classmethod
    def from_registry_entry(cls, data: bytes) -> CID:
        if not data or data[0] != REGISTRY_CID_BYTE:
            raise ValueError("Data is not a CID registry entry")
        return cls.from_bytes(data[1:])

    def to_base64url(self) -> str:
        return "u" + base64url_encode(self.to_bytes())

    def to_base32(self) -> str:
        return "b" + base64.b32encode(self.to_bytes()).decode("ascii").lower().rstrip("=")

    @classmethod
    def from_string(cls, text: str) -> CID:
        """
        Parse a multibase CID string ('u' base64url or 'b' base32).
        """
        if not text:
            raise ValueError("Empty CID string")
        prefix, body = text[0], text[1:]
        if prefix == "u":
            return cls.from_bytes(base64url_decode(body))
        if prefix == "b":
            padded = body.upper() + "=" * (-len(body) % 8)
            return cls.from_bytes(base64.b32decode(padded))
        raise ValueError(f"Unsupported multibase prefix: {prefix!r}")

    @property
    def public_key(self) -> bytes:
        """Tagged public key of a resolver CID."""
        if self.type != CIDType.RESOLVER:
            raise ValueError("Only resolver CIDs carry a public key")
        return self.hash

    def __str__(self) -> str:
        return self.to_base64url()
