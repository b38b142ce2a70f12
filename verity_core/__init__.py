"""
Verity Core
===========
Identity verification and abuse prevention primitives.
"""

__version__ = "0.1.0"

# Configuration
from verity_core.config import SecurityConfig, PasswordPolicy

# Errors
from verity_core.errors import (
    SecurityError,
    AuthenticationFailure,
    NotFound,
    Expired,
    TooManyAttempts,
    InvalidCode,
    InvalidSignature,
    InvalidFormat,
    RateLimited,
    DeliveryFailure,
    ConfigurationError,
)

# Crypto
from verity_core.crypto import (
    encrypt,
    decrypt,
    hash_data,
    generate_token,
    generate_otp,
)

# Rate Limiting
from verity_core.rate_limit import (
    InMemoryRateLimiter,
    LoginAttemptLimiter,
    RedisRateLimiter,
    RateLimitMiddleware,
    RateLimitInfo,
)

# OTP
from verity_core.otp import (
    OTPChallengeStore,
    BackupCodeStore,
    InMemoryDocumentStore,
    ResendMailer,
    EmailMessage,
)

# TOTP
from verity_core.totp import TOTPEngine

# Digital ID
from verity_core.digital_id import (
    DigitalIdentityIssuer,
    DigitalIdentityPayload,
    format_display_number,
)

# Policy
from verity_core.validators import validate_password, is_valid_email
from verity_core.mfa_gate import requires_mfa, SensitiveAction

# Facade
from verity_core.service import SecurityService, OperationResult, VerificationResult

__all__ = [
    # Configuration
    "SecurityConfig",
    "PasswordPolicy",
    # Errors
    "SecurityError",
    "AuthenticationFailure",
    "NotFound",
    "Expired",
    "TooManyAttempts",
    "InvalidCode",
    "InvalidSignature",
    "InvalidFormat",
    "RateLimited",
    "DeliveryFailure",
    "ConfigurationError",
    # Crypto
    "encrypt",
    "decrypt",
    "hash_data",
    "generate_token",
    "generate_otp",
    # Rate Limiting
    "InMemoryRateLimiter",
    "LoginAttemptLimiter",
    "RedisRateLimiter",
    "RateLimitMiddleware",
    "RateLimitInfo",
    # OTP
    "OTPChallengeStore",
    "BackupCodeStore",
    "InMemoryDocumentStore",
    "ResendMailer",
    "EmailMessage",
    # TOTP
    "TOTPEngine",
    # Digital ID
    "DigitalIdentityIssuer",
    "DigitalIdentityPayload",
    "format_display_number",
    # Policy
    "validate_password",
    "is_valid_email",
    "requires_mfa",
    "SensitiveAction",
    # Facade
    "SecurityService",
    "OperationResult",
    "VerificationResult",
]
