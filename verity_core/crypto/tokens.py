"""
Hashing and Random Tokens
=========================
One-way hashing and cryptographically secure token/OTP generation.
"""

import hashlib
import hmac
import secrets


def hash_data(data: str) -> str:
    """SHA-256 hex digest. Never use for anything that must be recovered."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def generate_token(byte_length: int = 32) -> str:
    """Random hex token of ``byte_length`` bytes (twice as many characters)."""
    return secrets.token_hex(byte_length)


def generate_otp(length: int = 6) -> str:
    """
    Generate a numeric OTP.

    Drawn uniformly from ``[0, 10**length)`` and zero-padded, so every digit
    position is uniform too.
    """
    if length <= 0:
        raise ValueError("OTP length must be positive")
    return str(secrets.randbelow(10 ** length)).zfill(length)


def constant_time_equals(a: str, b: str) -> bool:
    """Compare two strings without leaking the mismatch position."""
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
