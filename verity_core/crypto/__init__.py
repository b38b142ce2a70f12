"""
Crypto Primitives
=================
Authenticated encryption, hashing and secure random generation.
"""

from .cipher import encrypt, decrypt, derive_key, IV_LENGTH, TAG_LENGTH, KEY_LENGTH
from .tokens import hash_data, generate_token, generate_otp, constant_time_equals

__all__ = [
    # Cipher
    "encrypt",
    "decrypt",
    "derive_key",
    "IV_LENGTH",
    "TAG_LENGTH",
    "KEY_LENGTH",
    # Tokens
    "hash_data",
    "generate_token",
    "generate_otp",
    "constant_time_equals",
]
