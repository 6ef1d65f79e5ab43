# s5_client/registry/verifier.py
"""
S5 Client Registry: Entry Signing and Verification

Pure functions, no network access. verify_entry never raises; callers
decide whether a False result is fatal.
"""

from __future__ import annotations

from ..keys import KeyPair, verify_signature
from ..wire import RegistryEntry, SignedRegistryEntry


def verify_entry(entry: SignedRegistryEntry) -> bool:
    """
    Check an entry's signature against its own public key.

    Recomputes the signing payload from (data, revision) and verifies with
    the algorithm of the key's type tag.
    """
    try:
        payload = entry.signing_payload()
    except (AttributeError, TypeError, ValueError):
        return False
    return verify_signature(entry.public_key, payload, entry.signature)


def sign_entry(entry: RegistryEntry, keypair: KeyPair) -> SignedRegistryEntry:
    """
    Sign an unsigned entry with the owner's keypair.

    Raises:
        ValueError: If keypair does not own entry.public_key
    """
    if keypair.public_key != entry.public_key:
        raise ValueError("Keypair does not match entry public key")

    return SignedRegistryEntry(
        public_key=entry.public_key,
        data=entry.data,
        revision=entry.revision,
        signature=keypair.sign(entry.signing_payload()),
    )
