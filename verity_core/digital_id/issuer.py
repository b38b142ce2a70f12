"""
Digital ID Issuer
=================
Mint and verify encrypted, signed, expiring identity QR payloads.

Payloads are not stored: anything needed for verification travels in the
QR code itself. A payload stays valid until it expires and may be
verified any number of times.
"""

import time
from datetime import datetime, timezone
from typing import Callable

from pydantic import ValidationError
import structlog

from ..crypto import constant_time_equals, decrypt, encrypt, hash_data
from ..errors import AuthenticationFailure, Expired, InvalidFormat, InvalidSignature
from ..qr import render_data_url
from .models import DigitalIDCard, DigitalIdentityPayload, IssuedIdentity

logger = structlog.get_logger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


def format_display_number(subject_id: str, created_at: datetime, prefix: str = "ESE") -> str:
    """Human-readable member number, e.g. ``ESE-2024-AB12C``."""
    return f"{prefix}-{created_at.year}-{subject_id[:5].upper()}"


class DigitalIdentityIssuer:
    """Issue and verify digital ID payloads under one server secret."""

    def __init__(
        self,
        secret_key: str,
        expiry_days: int = 365,
        clock: Callable[[], float] = time.time,
    ):
        self.secret_key = secret_key
        self.expiry_days = expiry_days
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def sign(self, payload: DigitalIdentityPayload) -> str:
        """
        SHA-256 over the fields in fixed order, then the server secret.

        Order: subject id, display number, issued at, expires at, full
        name, email, role.
        """
        return hash_data(
            f"{payload.subject_id}{payload.display_number}"
            f"{payload.issued_at}{payload.expires_at}"
            f"{payload.full_name}{payload.email}{payload.role}"
            f"{self.secret_key}"
        )

    def mint(
        self,
        subject_id: str,
        display_number: str,
        full_name: str,
        email: str,
        role: str,
    ) -> IssuedIdentity:
        """Build, sign and encrypt a payload without rendering it."""
        issued_at = self._now_ms()
        unsigned = DigitalIdentityPayload(
            subject_id=subject_id,
            display_number=display_number,
            full_name=full_name,
            email=email,
            role=role,
            issued_at=issued_at,
            expires_at=issued_at + self.expiry_days * DAY_MS,
        )
        payload = unsigned.model_copy(update={"signature": self.sign(unsigned)})
        blob = encrypt(payload.to_json(), self.secret_key)

        logger.info("digital_id_minted", subject_id=subject_id, expires_at=payload.expires_at)
        return IssuedIdentity(payload=payload, blob=blob)

    def issue(
        self,
        subject_id: str,
        display_number: str,
        full_name: str,
        email: str,
        role: str,
    ) -> str:
        """Mint a payload and render it as a PNG QR data URL."""
        issued = self.mint(subject_id, display_number, full_name, email, role)
        return render_data_url(issued.blob)

    def verify(self, scanned_blob: str) -> DigitalIdentityPayload:
        """
        Decode and check a scanned payload.

        Raises:
            InvalidFormat: Undecryptable or unparseable (one class for both)
            InvalidSignature: Fields do not match the signature
            Expired: Past ``expires_at``
        """
        try:
            payload = DigitalIdentityPayload.model_validate_json(decrypt(scanned_blob, self.secret_key))
        except (AuthenticationFailure, ValidationError):
            logger.warning("digital_id_invalid_format")
            raise InvalidFormat() from None

        if not constant_time_equals(payload.signature, self.sign(payload)):
            logger.warning("digital_id_invalid_signature", subject_id=payload.subject_id)
            raise InvalidSignature()

        if self._now_ms() > payload.expires_at:
            raise Expired("QR code has expired")

        return payload

    def generate_card(
        self,
        subject_id: str,
        display_number: str,
        full_name: str,
        email: str,
        role: str,
        member_since: datetime,
    ) -> DigitalIDCard:
        """Card data with a freshly issued QR code."""
        issued = self.mint(subject_id, display_number, full_name, email, role)
        return DigitalIDCard(
            subject_id=subject_id,
            display_number=display_number,
            full_name=full_name,
            email=email,
            role=role,
            member_since=member_since,
            qr_code_data_url=render_data_url(issued.blob),
            issued_at=datetime.fromtimestamp(issued.payload.issued_at / 1000, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(issued.payload.expires_at / 1000, tz=timezone.utc),
        )
