"""
OTP Challenge Store
===================
Issue and verify emailed one-time codes.

At most one unverified challenge exists per subject. Codes are stored
encrypted; only the delivery email ever carries the plaintext.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import structlog

from ..config import DEFAULT_MAIL_FROM
from ..crypto import constant_time_equals, decrypt, encrypt, generate_otp
from ..errors import DeliveryFailure, Expired, InvalidCode, InvalidFormat, NotFound, TooManyAttempts
from ..validators import is_valid_email
from .mailer import EmailMessage, Mailer, render_otp_email
from .locks import SubjectLocks
from .models import OTPChallenge
from .store import DocumentStore

logger = structlog.get_logger(__name__)

MFA_COLLECTION = "mfa_codes"


class OTPChallengeStore:
    """Lifecycle of emailed OTP challenges."""

    def __init__(
        self,
        store: DocumentStore,
        mailer: Mailer,
        secret_key: str,
        expiry_minutes: int = 10,
        max_attempts: int = 3,
        code_length: int = 6,
        mail_from: str = DEFAULT_MAIL_FROM,
        brand: str = "Easy Sales Export",
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.mailer = mailer
        self.secret_key = secret_key
        self.expiry_minutes = expiry_minutes
        self.max_attempts = max_attempts
        self.code_length = code_length
        self.mail_from = mail_from
        self.brand = brand
        self._clock = clock
        self._locks = SubjectLocks()

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    async def issue(self, subject_id: str, destination: str) -> OTPChallenge:
        """
        Create a challenge and email its code.

        Any earlier unverified challenge for the subject is deleted first.
        If delivery fails the new challenge is deleted too, so the caller
        can retry straight away.

        Args:
            subject_id: Account the code is for
            destination: Email address to deliver to

        Returns:
            The persisted challenge (code encrypted)

        Raises:
            InvalidFormat: If ``destination`` is not an email address
            DeliveryFailure: If the mailer rejects the message
        """
        if not is_valid_email(destination):
            raise InvalidFormat("Invalid email address")

        async with self._locks(subject_id):
            await self._clear_active(subject_id)

            code = generate_otp(self.code_length)
            now = self._now()
            challenge = OTPChallenge(
                subject_id=subject_id,
                destination=destination,
                encrypted_code=encrypt(code, self.secret_key),
                created_at=now,
                expires_at=now + timedelta(minutes=self.expiry_minutes),
            )
            challenge.id = await self.store.create(MFA_COLLECTION, challenge.to_document())

            message = EmailMessage(
                from_address=self.mail_from,
                to=destination,
                subject="Your Verification Code",
                html=render_otp_email(code, self.expiry_minutes, self.brand),
            )
            try:
                await self.mailer.send(message)
            except Exception as e:
                await self.store.delete(MFA_COLLECTION, challenge.id)
                logger.error("otp_delivery_failed", subject_id=subject_id, error=str(e))
                raise DeliveryFailure() from e

            logger.info(
                "otp_challenge_issued",
                subject_id=subject_id,
                challenge_id=challenge.id,
                expires_in_minutes=self.expiry_minutes,
            )
            return challenge

    async def get_active(self, subject_id: str) -> Optional[OTPChallenge]:
        """The subject's unverified challenge, if any."""
        matches = await self.store.query(MFA_COLLECTION, subject_id=subject_id, verified=False)
        if not matches:
            return None
        document_id, document = matches[0]
        return OTPChallenge.from_document(document_id, document)

    async def verify(self, subject_id: str, candidate: str) -> None:
        """
        Verify a code against the subject's active challenge.

        Checks run in a fixed order: existence, expiry, attempt cap, then
        the code itself. The challenge is deleted on success, on expiry and
        once the attempt cap is reached.

        Raises:
            NotFound: No active challenge
            Expired: Challenge past its expiry
            TooManyAttempts: Attempt cap already reached
            InvalidCode: Wrong code (attempts incremented)
        """
        async with self._locks(subject_id):
            challenge = await self.get_active(subject_id)
            if challenge is None:
                raise NotFound()

            if challenge.is_expired(self._now()):
                await self.store.delete(MFA_COLLECTION, challenge.id)
                logger.warning("otp_challenge_expired", subject_id=subject_id)
                raise Expired()

            if challenge.attempts >= self.max_attempts:
                await self.store.delete(MFA_COLLECTION, challenge.id)
                logger.warning("otp_attempts_exhausted", subject_id=subject_id)
                raise TooManyAttempts()

            expected = decrypt(challenge.encrypted_code, self.secret_key)
            if not constant_time_equals(expected, candidate):
                attempts = challenge.attempts + 1
                await self.store.update(MFA_COLLECTION, challenge.id, attempts=attempts)
                remaining = max(self.max_attempts - attempts, 0)
                logger.warning("otp_invalid_code", subject_id=subject_id, remaining=remaining)
                raise InvalidCode(attempts_remaining=remaining)

            await self.store.delete(MFA_COLLECTION, challenge.id)
            logger.info("otp_verified", subject_id=subject_id)

    async def _clear_active(self, subject_id: str) -> None:
        matches = await self.store.query(MFA_COLLECTION, subject_id=subject_id, verified=False)
        for document_id, _ in matches:
            await self.store.delete(MFA_COLLECTION, document_id)
