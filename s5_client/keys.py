# s5_client/keys.py
"""
S5 Client: Key Types and Ed25519 KeyPair

Defines the key-type table used to tag public keys on the wire and wraps
PyNaCl's Ed25519 signing key for registry entry signatures.

Key Types:
    - 0xED: Ed25519 (32-byte public key, 64-byte signature)

Tagged public key (33B):
    - tag (1B): key type (0xED)
    - key (32B): raw Ed25519 public key

Usage:
    from s5_client.keys import KeyPair, verify_signature

    kp = KeyPair.from_seed(seed)
    kp.public_key      # 33B tagged
    sig = kp.sign(b"message")

    verify_signature(kp.public_key, b"message", sig)  # True

Requirements:
    pip install pynacl
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Dict, Union

from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import SigningKey, VerifyKey


# =============================================================================
# Key Type Definitions
# =============================================================================

@dataclass(frozen=True)
class KeyType:
    """Public key type definition."""
    tag: int
    name: str
    public_key_size: int     # Raw public key size in bytes
    signature_size: int      # Detached signature size in bytes


KEY_TYPE_ED25519 = 0xED

KEY_TYPES: Dict[int, KeyType] = {
    KEY_TYPE_ED25519: KeyType(
        tag=KEY_TYPE_ED25519,
        name="ed25519",
        public_key_size=32,
        signature_size=64,
    ),
}

SEED_SIZE = 32
PUBLIC_KEY_SIZE = 32
TAGGED_PUBLIC_KEY_SIZE = 1 + PUBLIC_KEY_SIZE  # 33
SIGNATURE_SIZE = 64


def get_key_type(tag: int) -> KeyType:
    """
    Get key type by tag byte.

    Raises:
        ValueError: If tag is unknown
    """
    if tag not in KEY_TYPES:
        raise ValueError(f"Unknown key type: 0x{tag:02x}. Valid: {[hex(t) for t in KEY_TYPES]}")
    return KEY_TYPES[tag]


# =============================================================================
# Public Key Helpers
# =============================================================================

def tag_public_key(raw: bytes, tag: int = KEY_TYPE_ED25519) -> bytes:
    """Prefix a raw public key with its key type tag."""
    key_type = get_key_type(tag)
    if len(raw) != key_type.public_key_size:
        raise ValueError(f"public key must be {key_type.public_key_size}B, got {len(raw)}")
    return bytes([tag]) + bytes(raw)


def ensure_tagged_public_key(public_key: bytes) -> bytes:
    """
    Normalize a public key to its 33-byte tagged form.

    Accepts a raw 32-byte Ed25519 key or an already tagged 33-byte key.
    """
    public_key = bytes(public_key)
    if len(public_key) == PUBLIC_KEY_SIZE:
        return tag_public_key(public_key)
    if len(public_key) == TAGGED_PUBLIC_KEY_SIZE:
        get_key_type(public_key[0])
        return public_key
    raise ValueError(
        f"public key must be {PUBLIC_KEY_SIZE}B raw or {TAGGED_PUBLIC_KEY_SIZE}B tagged, "
        f"got {len(public_key)}"
    )


def verify_signature(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """
    Verify a detached signature against a tagged public key.

    Returns False for unknown key types, malformed keys or bad signatures.
    """
    if len(public_key) != TAGGED_PUBLIC_KEY_SIZE or public_key[0] not in KEY_TYPES:
        return False
    if len(signature) != KEY_TYPES[public_key[0]].signature_size:
        return False
    try:
        VerifyKey(bytes(public_key[1:])).verify(bytes(message), bytes(signature))
        return True
    except (BadSignatureError, CryptoError, ValueError, TypeError):
        return False


# =============================================================================
# KeyPair
# =============================================================================

class KeyPair:
    """
    Ed25519 keypair used to sign registry entries.

    The 32-byte seed is the single source of truth; the public key is
    derived deterministically from it.
    """

    def __init__(self, signing_key: SigningKey):
        self._signing_key = signing_key
        self._public_key_raw = bytes(signing_key.verify_key)

    @classmethod
    def from_seed(cls, seed: bytes) -> KeyPair:
        """Derive keypair from a 32-byte seed."""
        if len(seed) != SEED_SIZE:
            raise ValueError(f"Seed must be exactly {SEED_SIZE} bytes, got {len(seed)}")
        return cls(SigningKey(bytes(seed)))

    @classmethod
    def from_secret_key(cls, secret_key: bytes) -> KeyPair:
        """
        Derive keypair from a secret key.

        Args:
            secret_key: 32-byte seed, or 64-byte expanded key (seed || public key)
        """
        secret_key = bytes(secret_key)
        if len(secret_key) == SEED_SIZE:
            return cls.from_seed(secret_key)
        if len(secret_key) == SEED_SIZE + PUBLIC_KEY_SIZE:
            kp = cls.from_seed(secret_key[:SEED_SIZE])
            if kp.public_key_raw != secret_key[SEED_SIZE:]:
                raise ValueError("Secret key does not match its embedded public key")
            return kp
        raise ValueError(
            f"Secret key must be {SEED_SIZE}B or {SEED_SIZE + PUBLIC_KEY_SIZE}B, got {len(secret_key)}"
        )

    @classmethod
    def generate(cls) -> KeyPair:
        """Generate a random keypair."""
        return cls.from_seed(secrets.token_bytes(SEED_SIZE))

    @property
    def seed(self) -> bytes:
        return bytes(self._signing_key)

    @property
    def public_key_raw(self) -> bytes:
        """32B raw Ed25519 public key."""
        return self._public_key_raw

    @property
    def public_key(self) -> bytes:
        """33B tagged public key."""
        return tag_public_key(self._public_key_raw)

    def sign(self, message: bytes) -> bytes:
        """Sign message, returning the 64-byte detached signature."""
        return bytes(self._signing_key.sign(bytes(message)).signature)

    def verify(self, message: bytes, signature: bytes) -> bool:
        return verify_signature(self.public_key, message, signature)

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_key.hex()[:18]}...)"


def ensure_keypair(secret_key_or_keypair: Union[KeyPair, bytes]) -> KeyPair:
    """Accept a KeyPair as-is or derive one from secret key bytes."""
    if isinstance(secret_key_or_keypair, KeyPair):
        return secret_key_or_keypair
    return KeyPair.from_secret_key(secret_key_or_keypair)
