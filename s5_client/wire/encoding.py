# s5_client/wire/encoding.py
"""
Padding-free URL-safe base64, as used for pk/data/signature over HTTP.
"""

from __future__ import annotations

import base64
import re

_BASE64URL_RE = re.compile(r"[A-Za-z0-9_-]*")


def base64url_encode(data: bytes) -> str:
    """Encode bytes to URL-safe base64 without '=' padding."""
    return base64.urlsafe_b64encode(bytes(data)).decode("ascii").rstrip("=")


def base64url_decode(text: str) -> bytes:
    """
    Decode padding-free URL-safe base64, re-deriving the stripped padding.

    Raises:
        ValueError: If text is not valid base64url
    """
    if not isinstance(text, str):
        raise ValueError(f"Expected base64url string, got {type(text).__name__}")
    text = text.rstrip("=")
    if not _BASE64URL_RE.fullmatch(text):
        raise ValueError("Invalid base64url: unexpected characters")
    if len(text) % 4 == 1:
        raise ValueError(f"Invalid base64url length: {len(text)}")
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
