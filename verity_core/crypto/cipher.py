"""
Authenticated Encryption
========================
AES-256-GCM helpers producing colon-joined hex blobs.

Blob format: ``hex(iv):hex(tag):hex(ciphertext)`` with a 16-byte IV and a
16-byte authentication tag.
"""

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import AuthenticationFailure

KEY_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16
KEY_PAD_CHAR = b"0"


def derive_key(key: str) -> bytes:
    """
    Normalize key material to exactly 32 bytes.

    The UTF-8 key is right-padded with ASCII ``"0"`` (0x30) up to 32 bytes,
    then truncated to 32 bytes. Keys longer than 32 bytes therefore share
    a key with any other key sharing their first 32 bytes.
    """
    raw = key.encode("utf-8") if isinstance(key, str) else bytes(key)
    return raw.ljust(KEY_LENGTH, KEY_PAD_CHAR)[:KEY_LENGTH]


def encrypt(plaintext: str, key: str) -> str:
    """
    Encrypt text with a fresh random IV.

    Args:
        plaintext: UTF-8 text to protect
        key: Key material (padded/truncated to 32 bytes)

    Returns:
        ``hex(iv):hex(tag):hex(ciphertext)``
    """
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(derive_key(key)).encrypt(iv, plaintext.encode("utf-8"), None)
    # AESGCM appends the tag to the ciphertext
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"


def decrypt(blob: str, key: str) -> str:
    """
    Authenticate and decrypt a blob produced by ``encrypt``.

    Raises:
        AuthenticationFailure: For any malformed blob, tag mismatch or
            wrong key. The cases are indistinguishable to the caller.
    """
    if not isinstance(blob, str):
        raise AuthenticationFailure()

    parts = blob.split(":")
    if len(parts) != 3:
        raise AuthenticationFailure()

    try:
        iv, tag, ciphertext = (bytes.fromhex(part) for part in parts)
    except ValueError:
        raise AuthenticationFailure() from None

    if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
        raise AuthenticationFailure()

    try:
        plaintext = AESGCM(derive_key(key)).decrypt(iv, ciphertext + tag, None)
        return plaintext.decode("utf-8")
    except (InvalidTag, ValueError):
        raise AuthenticationFailure() from None
