# src/nekonymous/services/crypto.py
"""Cryptographic primitives behind tickets.

A ticket is a secp256k1 private scalar. The conversation it names is stored
under the BIP-340 (x-only) public key of that scalar, and the conversation
payload is sealed with AES-256-GCM under a key taken from the same scalar.
Holding the ticket is therefore both the lookup and the decryption
capability.
"""

from __future__ import annotations

import hashlib
import os
from typing import Final

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from nekonymous.core.errors import AuthenticationFailure, InvalidSecretLength, MalformedBlob
from nekonymous.utils.codec import decode_b64, encode_b64

SECRET_LENGTH_BYTES: Final[int] = 32
PUBLIC_ID_LENGTH_BYTES: Final[int] = 32
NONCE_LENGTH_BYTES: Final[int] = 12
TAG_LENGTH_BYTES: Final[int] = 16
BLOB_DELIMITER: Final[str] = ":"

# Order of the secp256k1 base point.
SECP256K1_ORDER: Final[int] = int(
    "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16
)


def normalize_secret(secret: bytes, app_key: bytes | str | None = None) -> bytes:
    """Return the 32-byte scalar used for both identity and payload keys.

    With an application key the scalar is ``SHA-256(secret || app_key)``;
    without one the secret is used as-is.

    Args:
        secret: Raw ticket bytes
        app_key: Optional application-wide secret

    Returns:
        The normalized scalar bytes

    Raises:
        InvalidSecretLength: If the result is not a usable secp256k1 scalar
    """
    if app_key is not None:
        key_bytes = app_key.encode() if isinstance(app_key, str) else app_key
        scalar = hashlib.sha256(secret + key_bytes).digest()
    else:
        scalar = secret

    if len(scalar) != SECRET_LENGTH_BYTES:
        raise InvalidSecretLength(f"Secret must be {SECRET_LENGTH_BYTES} bytes, got {len(scalar)}")
    if not 0 < int.from_bytes(scalar, "big") < SECP256K1_ORDER:
        raise InvalidSecretLength("Secret is outside the secp256k1 scalar range")
    return scalar


def derive_public_id(secret: bytes, app_key: bytes | str | None = None) -> bytes:
    """Derive the x-only secp256k1 public key for a secret.

    The same ``(secret, app_key)`` pair always produces the same identifier,
    which is what lets a conversation be found again from its ticket alone.
    """
    scalar = normalize_secret(secret, app_key)
    private_key = ec.derive_private_key(int.from_bytes(scalar, "big"), ec.SECP256K1())
    x_coordinate = private_key.public_key().public_numbers().x
    return x_coordinate.to_bytes(PUBLIC_ID_LENGTH_BYTES, "big")


def derive_payload_key(secret: bytes, app_key: bytes | str | None = None) -> bytes:
    """Return the AES-256 key bound to a secret."""
    return normalize_secret(secret, app_key)[:32]


def seal_payload(secret: bytes, plaintext: bytes, app_key: bytes | str | None = None) -> str:
    """Encrypt ``plaintext`` under the secret-derived key.

    Returns:
        ``b64(nonce):b64(ciphertext||tag)``
    """
    key = derive_payload_key(secret, app_key)
    nonce = os.urandom(NONCE_LENGTH_BYTES)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext, None)
    return f"{encode_b64(nonce)}{BLOB_DELIMITER}{encode_b64(ciphertext)}"


def open_payload(secret: bytes, blob: str, app_key: bytes | str | None = None) -> bytes:
    """Decrypt a blob produced by :func:`seal_payload`.

    Raises:
        MalformedBlob: If the blob structure or encoding is invalid
        AuthenticationFailure: If the authentication tag does not verify
    """
    parts = blob.split(BLOB_DELIMITER)
    if len(parts) != 2:
        raise MalformedBlob("Sealed payload must contain exactly one delimiter")

    try:
        nonce = decode_b64(parts[0])
        ciphertext = decode_b64(parts[1])
    except ValueError as err:
        raise MalformedBlob(str(err)) from err

    if len(nonce) != NONCE_LENGTH_BYTES:
        raise MalformedBlob("Invalid nonce length")
    if len(ciphertext) < TAG_LENGTH_BYTES:
        raise MalformedBlob("Ciphertext shorter than the authentication tag")

    key = derive_payload_key(secret, app_key)
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as err:
        raise AuthenticationFailure("Sealed payload failed authentication") from err
