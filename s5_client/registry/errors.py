# s5_client/registry/errors.py
"""
S5 Client Registry: Exceptions

    RegistryError
    ├── InvalidEntryError   signature does not verify (never "not found")
    └── KeyMismatchError    fetched entry owned by another key
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base registry error."""
    pass


class InvalidEntryError(RegistryError):
    """Entry is well-formed but its signature does not verify."""
    def __init__(self, public_key: bytes, revision: int, reason: str = "signature verification failed"):
        self.public_key = public_key
        self.revision = revision
        self.reason = reason
        super().__init__(f"Invalid entry for {public_key.hex()[:18]}... rev {revision}: {reason}")


class KeyMismatchError(RegistryError):
    """Fetched entry is owned by a different key than the caller's."""
    def __init__(self, expected: bytes, actual: bytes):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Public key mismatch: expected {expected.hex()[:18]}..., got {actual.hex()[:18]}..."
        )
