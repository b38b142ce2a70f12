"""
Security Service
================
Uniform-result facade over the security primitives.

Every method returns an ``OperationResult`` or ``VerificationResult``.
Subsystem exceptions are logged here and reduced to a short message and
an error code; nothing else leaves this boundary.
"""

import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import structlog

from .config import SecurityConfig
from .digital_id import DigitalIdentityIssuer, DigitalIdentityPayload
from .errors import (
    DeliveryFailure,
    Expired,
    InvalidCode,
    NotFound,
    RateLimited,
    SecurityError,
    TooManyAttempts,
)
from .mfa_gate import requires_mfa
from .otp import BackupCodeStore, DocumentStore, Mailer, OTPChallengeStore
from .rate_limit import InMemoryRateLimiter, LoginAttemptLimiter
from .totp import TOTPEngine
from .validators import PasswordValidationResult, validate_password

logger = structlog.get_logger(__name__)

# Failures the caller may be told about specifically
OTP_LIFECYCLE_ERRORS = (NotFound, Expired, TooManyAttempts, InvalidCode)

LOGIN_WINDOW_SECONDS = 900
LOGIN_BLOCK_SECONDS = 900


@dataclass
class OperationResult:
    success: bool
    error: Optional[str] = None
    code: Optional[str] = None
    retry_after_seconds: Optional[int] = None
    remaining: Optional[int] = None
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class VerificationResult:
    valid: bool
    payload: Optional[DigitalIdentityPayload] = None
    error: Optional[str] = None
    code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"valid": self.valid}
        if self.payload is not None:
            result["payload"] = self.payload.model_dump(by_alias=True)
        if self.error:
            result["error"] = self.error
        if self.code:
            result["code"] = self.code
        return result


def _failure(exc: SecurityError, message: Optional[str] = None) -> OperationResult:
    retry_after = exc.retry_after_seconds if isinstance(exc, RateLimited) else None
    return OperationResult(
        success=False,
        error=message or exc.message,
        code=exc.code,
        retry_after_seconds=retry_after,
    )


def _code_of(exc: Exception) -> str:
    return exc.code if isinstance(exc, SecurityError) else SecurityError.code


class SecurityService:
    """
    The platform-facing surface.

    Collaborators are injected; configuration is resolved once and shared.
    """

    def __init__(
        self,
        config: SecurityConfig,
        store: DocumentStore,
        mailer: Mailer,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.otp = OTPChallengeStore(
            store,
            mailer,
            secret_key=config.mfa_secret_key,
            expiry_minutes=config.mfa_otp_expiry_minutes,
            mail_from=config.mail_from,
            brand=config.totp_issuer,
            clock=clock,
        )
        self.backup_codes = BackupCodeStore(store, secret_key=config.mfa_secret_key, clock=clock)
        self.totp = TOTPEngine(issuer=config.totp_issuer, clock=clock)
        self.digital_id = DigitalIdentityIssuer(
            secret_key=config.qr_encryption_key,
            expiry_days=config.qr_code_expiry_days,
            clock=clock,
        )
        self.request_limiter = InMemoryRateLimiter(
            points=config.rate_limit_max_requests,
            duration=config.rate_limit_window_seconds,
            clock=clock,
        )
        self.login_limiter = LoginAttemptLimiter(
            max_attempts=config.max_login_attempts,
            duration=LOGIN_WINDOW_SECONDS,
            block_duration=LOGIN_BLOCK_SECONDS,
            clock=clock,
        )

        for name in config.insecure_defaults():
            logger.warning("insecure_default_secret", key=name)

    # -- Email OTP ---------------------------------------------------------

    async def send_mfa_code(self, email: str, subject_id: str) -> OperationResult:
        try:
            await self.otp.issue(subject_id, email)
        except SecurityError as e:
            logger.warning("send_mfa_code_failed", subject_id=subject_id, code=e.code)
            return _failure(e)
        except Exception:
            logger.exception("send_mfa_code_error", subject_id=subject_id)
            return _failure(DeliveryFailure())
        return OperationResult(
            success=True,
            data={"expires_in_seconds": self.config.mfa_otp_expiry_minutes * 60},
        )

    async def verify_mfa_code(self, subject_id: str, code: str) -> OperationResult:
        try:
            await self.otp.verify(subject_id, code)
        except OTP_LIFECYCLE_ERRORS as e:
            result = _failure(e)
            result.remaining = getattr(e, "attempts_remaining", None)
            return result
        except Exception as e:
            logger.exception("verify_mfa_code_error", subject_id=subject_id)
            return OperationResult(
                success=False,
                error="Verification failed. Please try again.",
                code=_code_of(e),
            )
        return OperationResult(success=True)

    # -- Backup codes ------------------------------------------------------

    def generate_backup_codes(self, count: int = 10) -> List[str]:
        return self.backup_codes.generate(count)

    async def store_backup_codes(self, subject_id: str, codes: List[str]) -> OperationResult:
        try:
            await self.backup_codes.store_codes(subject_id, codes)
        except Exception as e:
            logger.exception("store_backup_codes_error", subject_id=subject_id)
            return OperationResult(success=False, error="Failed to store backup codes", code=_code_of(e))
        return OperationResult(success=True, remaining=len(codes))

    async def verify_backup_code(self, subject_id: str, code: str) -> OperationResult:
        try:
            await self.backup_codes.verify(subject_id, code)
        except (NotFound, InvalidCode) as e:
            return _failure(e)
        except Exception as e:
            logger.exception("verify_backup_code_error", subject_id=subject_id)
            return OperationResult(success=False, error="Verification failed", code=_code_of(e))
        return OperationResult(success=True)

    # -- TOTP --------------------------------------------------------------

    def generate_totp_secret(self) -> str:
        return self.totp.generate_secret()

    def generate_totp_qr_code(self, email: str, secret: str) -> OperationResult:
        try:
            qr_code = self.totp.provisioning_qr(email, secret)
        except SecurityError as e:
            return _failure(e)
        except Exception as e:
            logger.exception("generate_totp_qr_code_error")
            return OperationResult(success=False, error="Failed to generate QR code", code=_code_of(e))
        return OperationResult(success=True, data={"qr_code": qr_code})

    def verify_totp_token(self, token: str, secret: str) -> bool:
        return self.totp.verify(token, secret)

    # -- Digital ID --------------------------------------------------------

    def generate_digital_id_qr(
        self,
        subject_id: str,
        display_number: str,
        full_name: str,
        email: str,
        role: str,
    ) -> OperationResult:
        try:
            qr_code = self.digital_id.issue(subject_id, display_number, full_name, email, role)
        except Exception as e:
            logger.exception("generate_digital_id_qr_error", subject_id=subject_id)
            return OperationResult(success=False, error="Failed to generate digital ID", code=_code_of(e))
        return OperationResult(success=True, data={"qr_code": qr_code})

    def verify_digital_id_qr(self, scanned: str) -> VerificationResult:
        try:
            payload = self.digital_id.verify(scanned)
        except SecurityError as e:
            return VerificationResult(valid=False, error=e.message, code=e.code)
        except Exception:
            logger.exception("verify_digital_id_qr_error")
            return VerificationResult(valid=False, error="Verification failed", code=SecurityError.code)
        return VerificationResult(valid=True, payload=payload)

    def generate_digital_id_card(
        self,
        subject_id: str,
        display_number: str,
        full_name: str,
        email: str,
        role: str,
        member_since: datetime,
    ) -> OperationResult:
        try:
            card = self.digital_id.generate_card(subject_id, display_number, full_name, email, role, member_since)
        except Exception as e:
            logger.exception("generate_digital_id_card_error", subject_id=subject_id)
            return OperationResult(success=False, error="Failed to generate digital ID card", code=_code_of(e))
        return OperationResult(success=True, data=asdict(card))

    # -- Rate limiting -----------------------------------------------------

    def rate_limit(self, identifier: Optional[str] = None) -> OperationResult:
        try:
            info = self.request_limiter.consume(identifier or "anonymous")
        except RateLimited as e:
            return _failure(e, f"Too many requests. Please try again in {e.retry_after_seconds} seconds.")
        return OperationResult(success=True, remaining=info.remaining)

    def consume_login_attempt(self, email: str) -> OperationResult:
        try:
            info = self.login_limiter.consume_attempt(email)
        except RateLimited as e:
            minutes = -(-e.retry_after_seconds // 60)
            return _failure(e, f"Too many failed login attempts. Please try again in {minutes} minutes.")
        return OperationResult(success=True, remaining=info.remaining)

    def reset_login_attempts(self, email: str) -> None:
        self.login_limiter.reset_attempts(email)

    # -- Policy ------------------------------------------------------------

    def validate_password(self, password: str) -> PasswordValidationResult:
        return validate_password(password, self.config.password_policy)

    @staticmethod
    def requires_mfa(action_name: str) -> bool:
        return requires_mfa(action_name)
