# tests/test_keys.py
"""
Key type table and Ed25519 KeyPair.
"""

import pytest

from s5_client.keys import (
    KEY_TYPE_ED25519,
    KeyPair,
    ensure_keypair,
    ensure_tagged_public_key,
    get_key_type,
    tag_public_key,
    verify_signature,
)


# =============================================================================
# Key Types
# =============================================================================

def test_ed25519_key_type():
    kt = get_key_type(0xED)
    assert kt.name == "ed25519"
    assert kt.public_key_size == 32
    assert kt.signature_size == 64


def test_unknown_key_type_rejected():
    with pytest.raises(ValueError, match="Unknown key type"):
        get_key_type(0x01)


def test_tag_public_key_prefixes_tag(keypair):
    tagged = tag_public_key(keypair.public_key_raw)
    assert tagged[0] == KEY_TYPE_ED25519
    assert tagged[1:] == keypair.public_key_raw
    assert len(tagged) == 33


def test_ensure_tagged_accepts_raw_and_tagged(keypair):
    assert ensure_tagged_public_key(keypair.public_key_raw) == keypair.public_key
    assert ensure_tagged_public_key(keypair.public_key) == keypair.public_key


@pytest.mark.parametrize("bad", [b"", b"\x00" * 31, b"\x00" * 34, b"\x01" + b"\x00" * 32])
def test_ensure_tagged_rejects_bad_keys(bad):
    with pytest.raises(ValueError):
        ensure_tagged_public_key(bad)


# =============================================================================
# KeyPair
# =============================================================================

def test_keypair_is_deterministic_from_seed():
    a = KeyPair.from_seed(b"\x07" * 32)
    b = KeyPair.from_seed(b"\x07" * 32)
    assert a.public_key == b.public_key
    assert a.seed == b"\x07" * 32


def test_keypair_from_expanded_secret_key(keypair):
    expanded = keypair.seed + keypair.public_key_raw
    assert KeyPair.from_secret_key(expanded).public_key == keypair.public_key


def test_keypair_rejects_inconsistent_expanded_key(keypair, other_keypair):
    expanded = keypair.seed + other_keypair.public_key_raw
    with pytest.raises(ValueError, match="does not match"):
        KeyPair.from_secret_key(expanded)


def test_keypair_rejects_bad_seed_length():
    with pytest.raises(ValueError):
        KeyPair.from_secret_key(b"\x00" * 16)


def test_ensure_keypair_passthrough(keypair):
    assert ensure_keypair(keypair) is keypair
    assert ensure_keypair(keypair.seed).public_key == keypair.public_key


def test_sign_and_verify(keypair, other_keypair):
    sig = keypair.sign(b"message")
    assert len(sig) == 64
    assert verify_signature(keypair.public_key, b"message", sig)
    assert not verify_signature(keypair.public_key, b"messagf", sig)
    assert not verify_signature(other_keypair.public_key, b"message", sig)


def test_verify_signature_never_raises(keypair):
    sig = keypair.sign(b"m")
    assert not verify_signature(b"\x00" * 33, b"m", sig)
    assert not verify_signature(keypair.public_key, b"m", sig[:10])
    assert not verify_signature(keypair.public_key_raw, b"m", sig)
