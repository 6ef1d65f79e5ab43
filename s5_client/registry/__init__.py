# s5_client/registry/__init__.py
"""
S5 Client Registry Layer

Signed, versioned mutable pointers keyed by an Ed25519 public key.

Components:
    RegistryClient: get / publish / create / subscribe against a portal
    Subscription: live push updates for one key
    verify_entry / sign_entry: pure signature helpers

Usage:
    from s5_client.registry import RegistryClient, KeyMismatchError

    client = RegistryClient(http=HttpxTransport(), portal_url="https://portal.example")

    result = await client.create_entry(seed, cid)
    entry = await client.get_entry(public_key)
"""

from .errors import (
    RegistryError,
    InvalidEntryError,
    KeyMismatchError,
)

from .verifier import (
    verify_entry,
    sign_entry,
)

from .subscription import (
    Subscription,
    SubscriptionState,
)

from .client import (
    RegistryClient,
    CreateEntryResult,
)

__all__ = [
    # Errors
    "RegistryError",
    "InvalidEntryError",
    "KeyMismatchError",
    # Verification
    "verify_entry",
    "sign_entry",
    # Subscription
    "Subscription",
    "SubscriptionState",
    # Client
    "RegistryClient",
    "CreateEntryResult",
]
