"""
Digital ID
==========
Signed, encrypted, expiring identity payloads rendered as QR codes.
"""

from .models import DigitalIdentityPayload, IssuedIdentity, DigitalIDCard
from .issuer import DigitalIdentityIssuer, format_display_number

__all__ = [
    "DigitalIdentityPayload",
    "IssuedIdentity",
    "DigitalIDCard",
    "DigitalIdentityIssuer",
    "format_display_number",
]
