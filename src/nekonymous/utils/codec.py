# src/nekonymous/utils/codec.py
"""Base64 helpers shared by tickets, conversation IDs and sealed blobs."""

from __future__ import annotations

import base64
import binascii


def encode_b64(data: bytes) -> str:
    """Encode bytes as URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def decode_b64(data: str) -> bytes:
    """Decode URL-safe base64 produced by :func:`encode_b64`.

    Decoding is strict: characters outside the URL-safe alphabet, stray
    padding and non-canonical trailing bits are all rejected, so two distinct
    strings never decode to the same bytes.

    Raises:
        ValueError: If the input is not canonical URL-safe base64
    """
    if "=" in data:
        raise ValueError("Invalid base64 encoding: unexpected padding")
    padding = "=" * (-len(data) % 4)
    try:
        decoded = base64.b64decode(data + padding, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as err:
        raise ValueError(f"Invalid base64 encoding: {err}") from err
    if encode_b64(decoded) != data:
        raise ValueError("Invalid base64 encoding: non-canonical input")
    return decoded
