"""
Error Taxonomy
==============
Exceptions raised by the security primitives.

Subsystems raise these; ``SecurityService`` translates them into uniform
result objects so no raw exception reaches a caller-visible response.
"""

from typing import Optional


class SecurityError(Exception):
    """Base exception for all verity-core failures."""

    code = "SECURITY_ERROR"
    default_message = "Security check failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationFailure(SecurityError):
    """Ciphertext could not be authenticated (tampered, malformed or wrong key)."""

    code = "AUTHENTICATION_FAILURE"
    default_message = "Unable to decrypt data"


class NotFound(SecurityError):
    """No active challenge or code set exists for the subject."""

    code = "NOT_FOUND"
    default_message = "No verification code found. Please request a new one."


class Expired(SecurityError):
    code = "EXPIRED"
    default_message = "Verification code has expired. Please request a new one."


class TooManyAttempts(SecurityError):
    code = "TOO_MANY_ATTEMPTS"
    default_message = "Too many failed attempts. Please request a new code."


class InvalidCode(SecurityError):
    """Candidate code did not match."""

    code = "INVALID_CODE"
    default_message = "Invalid verification code. Please try again."

    def __init__(self, message: Optional[str] = None, attempts_remaining: Optional[int] = None):
        self.attempts_remaining = attempts_remaining
        super().__init__(message)


class InvalidSignature(SecurityError):
    code = "INVALID_SIGNATURE"
    default_message = "Invalid QR code signature"


class InvalidFormat(SecurityError):
    """Structurally bad input. Deliberately silent about which stage failed."""

    code = "INVALID_FORMAT"
    default_message = "Invalid QR code format"


class RateLimited(SecurityError):
    """Consumption rejected; carries a retry-after hint."""

    code = "RATE_LIMITED"
    default_message = "Too many requests"

    def __init__(self, retry_after_ms: int, message: Optional[str] = None):
        self.retry_after_ms = max(int(retry_after_ms), 0)
        super().__init__(message)

    @property
    def retry_after_seconds(self) -> int:
        # Round up so a client never retries early
        return -(-self.retry_after_ms // 1000)


class DeliveryFailure(SecurityError):
    code = "DELIVERY_FAILURE"
    default_message = "Failed to send verification code. Please try again."


class ConfigurationError(SecurityError):
    code = "CONFIG_ERROR"
    default_message = "Invalid security configuration"
