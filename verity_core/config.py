"""
Security Configuration
======================
Environment-backed settings, resolved once at startup.

Every secret-bearing key falls back to an insecure default so local
development works out of the box. Production deployments must override
all of them; ``insecure_defaults()`` reports the ones that were not.
"""

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from .errors import ConfigurationError

DEFAULT_QR_ENCRYPTION_KEY = "default-qr-secret-change-in-production"
DEFAULT_MFA_SECRET_KEY = "default-secret-key-change-in-production"
DEFAULT_MAIL_FROM = "Easy Sales Export <noreply@easysalesexport.com>"
DEFAULT_TOTP_ISSUER = "Easy Sales Export"


def _int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _flag(environ: Mapping[str, str], name: str) -> bool:
    # Only the literal "true" enables a flag
    return environ.get(name, "").strip().lower() == "true"


@dataclass(frozen=True)
class PasswordPolicy:
    """Password complexity requirements."""
    min_length: int = 8
    require_uppercase: bool = False
    require_lowercase: bool = False
    require_number: bool = False
    require_special: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PasswordPolicy":
        environ = os.environ if environ is None else environ
        return cls(
            min_length=_int(environ, "PASSWORD_MIN_LENGTH", 8),
            require_uppercase=_flag(environ, "PASSWORD_REQUIRE_UPPERCASE"),
            require_lowercase=_flag(environ, "PASSWORD_REQUIRE_LOWERCASE"),
            require_number=_flag(environ, "PASSWORD_REQUIRE_NUMBER"),
            require_special=_flag(environ, "PASSWORD_REQUIRE_SPECIAL"),
        )


@dataclass(frozen=True)
class SecurityConfig:
    """Immutable settings shared by every subsystem."""
    qr_encryption_key: str = DEFAULT_QR_ENCRYPTION_KEY
    qr_code_expiry_days: int = 365
    mfa_secret_key: str = DEFAULT_MFA_SECRET_KEY
    mfa_otp_expiry_minutes: int = 10
    max_login_attempts: int = 5
    rate_limit_window_ms: int = 900_000
    rate_limit_max_requests: int = 100
    password_policy: PasswordPolicy = field(default_factory=PasswordPolicy)
    totp_issuer: str = DEFAULT_TOTP_ISSUER
    mail_from: str = DEFAULT_MAIL_FROM
    resend_api_key: str = ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SecurityConfig":
        """
        Build the configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Raises:
            ConfigurationError: If a numeric key is not an integer
        """
        environ = os.environ if environ is None else environ
        config = cls(
            qr_encryption_key=environ.get("QR_ENCRYPTION_KEY") or DEFAULT_QR_ENCRYPTION_KEY,
            qr_code_expiry_days=_int(environ, "QR_CODE_EXPIRY_DAYS", 365),
            mfa_secret_key=environ.get("MFA_SECRET_KEY") or DEFAULT_MFA_SECRET_KEY,
            mfa_otp_expiry_minutes=_int(environ, "MFA_OTP_EXPIRY_MINUTES", 10),
            max_login_attempts=_int(environ, "MAX_LOGIN_ATTEMPTS", 5),
            rate_limit_window_ms=_int(environ, "RATE_LIMIT_WINDOW_MS", 900_000),
            rate_limit_max_requests=_int(environ, "RATE_LIMIT_MAX_REQUESTS", 100),
            password_policy=PasswordPolicy.from_env(environ),
            totp_issuer=environ.get("TOTP_ISSUER") or DEFAULT_TOTP_ISSUER,
            mail_from=environ.get("MFA_EMAIL_FROM") or DEFAULT_MAIL_FROM,
            resend_api_key=environ.get("RESEND_API_KEY", ""),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Reject values that would make the primitives misbehave."""
        positive = {
            "QR_CODE_EXPIRY_DAYS": self.qr_code_expiry_days,
            "MFA_OTP_EXPIRY_MINUTES": self.mfa_otp_expiry_minutes,
            "MAX_LOGIN_ATTEMPTS": self.max_login_attempts,
            "RATE_LIMIT_WINDOW_MS": self.rate_limit_window_ms,
            "RATE_LIMIT_MAX_REQUESTS": self.rate_limit_max_requests,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.rate_limit_window_ms / 1000

    def insecure_defaults(self) -> List[str]:
        """Names of secret-bearing keys still at their development defaults."""
        insecure = []
        if self.qr_encryption_key == DEFAULT_QR_ENCRYPTION_KEY:
            insecure.append("QR_ENCRYPTION_KEY")
        if self.mfa_secret_key == DEFAULT_MFA_SECRET_KEY:
            insecure.append("MFA_SECRET_KEY")
        return insecure
