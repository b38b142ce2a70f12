"""
Input Validators
================
Password policy checks and email syntax validation.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from .config import PasswordPolicy

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SPECIAL_PATTERN = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")


@dataclass
class PasswordValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def validate_password(password: str, policy: Optional[PasswordPolicy] = None) -> PasswordValidationResult:
    """
    Check a password against the complexity policy.

    Returns one message per failed requirement.
    """
    policy = policy or PasswordPolicy()
    errors = []

    if len(password) < policy.min_length:
        errors.append(f"Password must be at least {policy.min_length} characters long")
    if policy.require_uppercase and not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if policy.require_lowercase and not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if policy.require_number and not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    if policy.require_special and not SPECIAL_PATTERN.search(password):
        errors.append("Password must contain at least one special character")

    return PasswordValidationResult(is_valid=not errors, errors=errors)


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None
