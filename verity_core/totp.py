"""
TOTP Engine
===========
RFC 6238 time-based codes compatible with authenticator apps.

HMAC-SHA1 over a 30-second counter, dynamic truncation to 6 digits.
Verification tolerates one step of clock skew either way and no more.
"""

import base64
import binascii
import time
from typing import Callable, Optional

import pyotp
import structlog

from .config import DEFAULT_TOTP_ISSUER
from .crypto import constant_time_equals
from .errors import InvalidFormat
from .qr import render_data_url

logger = structlog.get_logger(__name__)

TOTP_INTERVAL = 30
TOTP_DIGITS = 6
VALID_WINDOW = 1
SECRET_BYTES = 20  # 160 bits


def b32encode_secret(raw: bytes) -> str:
    """RFC 4648 Base32 without padding."""
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def b32decode_secret(secret: str) -> bytes:
    """
    Decode a Base32 secret.

    Case-insensitive; trailing ``=`` padding and embedded spaces are
    accepted.

    Raises:
        InvalidFormat: If the text is not valid Base32
    """
    cleaned = secret.replace(" ", "").strip().rstrip("=").upper()
    if not cleaned:
        raise InvalidFormat("Invalid TOTP secret")
    padded = cleaned + "=" * (-len(cleaned) % 8)
    try:
        return base64.b32decode(padded)
    except (binascii.Error, ValueError):
        raise InvalidFormat("Invalid TOTP secret") from None


class TOTPEngine:
    """Secret provisioning, code computation and verification."""

    def __init__(self, issuer: str = DEFAULT_TOTP_ISSUER, clock: Callable[[], float] = time.time):
        self.issuer = issuer
        self._clock = clock

    def _totp(self, secret: str) -> pyotp.TOTP:
        normalized = b32encode_secret(b32decode_secret(secret))
        return pyotp.TOTP(normalized, digits=TOTP_DIGITS, interval=TOTP_INTERVAL, issuer=self.issuer)

    def generate_secret(self) -> str:
        """160-bit random secret, Base32 without padding (32 characters)."""
        return pyotp.random_base32(length=32)

    def compute_code(self, secret: str, time_step_offset: int = 0, for_time: Optional[float] = None) -> str:
        """
        Code for the 30-second step containing ``for_time`` shifted by
        ``time_step_offset`` steps.
        """
        if for_time is None:
            for_time = self._clock()
        return self._totp(secret).at(int(for_time), counter_offset=time_step_offset)

    def verify(self, candidate: str, secret: str, for_time: Optional[float] = None) -> bool:
        """Accept codes for the previous, current or next time step."""
        if not candidate or not secret:
            return False

        code = candidate.replace(" ", "")
        if len(code) != TOTP_DIGITS or not code.isdigit():
            return False

        if for_time is None:
            for_time = self._clock()

        try:
            expected = [
                self.compute_code(secret, offset, for_time)
                for offset in range(-VALID_WINDOW, VALID_WINDOW + 1)
            ]
        except InvalidFormat:
            logger.error("totp_secret_malformed")
            return False

        matched = False
        for value in expected:
            # No early exit
            matched = constant_time_equals(value, code) or matched
        return matched

    def provisioning_uri(self, email: str, secret: str) -> str:
        """``otpauth://totp/...`` URI for authenticator enrollment."""
        return self._totp(secret).provisioning_uri(name=email, issuer_name=self.issuer)

    def provisioning_qr(self, email: str, secret: str) -> str:
        """Provisioning URI as a PNG data URL."""
        return render_data_url(self.provisioning_uri(email, secret))
