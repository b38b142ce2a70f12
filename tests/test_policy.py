"""
Unit Tests for Configuration, Password Policy and the MFA Gate
==============================================================
"""

import pytest

from verity_core.config import PasswordPolicy, SecurityConfig
from verity_core.errors import ConfigurationError
from verity_core.mfa_gate import SensitiveAction, requires_mfa
from verity_core.validators import is_valid_email, validate_password


class TestSecurityConfig:
    """Tests for environment resolution."""

    def test_defaults(self):
        """Should fall back to defaults for an empty environment."""
        config = SecurityConfig.from_env({})

        assert config.qr_code_expiry_days == 365
        assert config.mfa_otp_expiry_minutes == 10
        assert config.max_login_attempts == 5
        assert config.rate_limit_window_ms == 900_000
        assert config.rate_limit_window_seconds == 900
        assert config.rate_limit_max_requests == 100
        assert config.password_policy == PasswordPolicy()

    def test_insecure_defaults_reported(self):
        """Should report secrets left at their defaults."""
        assert SecurityConfig.from_env({}).insecure_defaults() == ["QR_ENCRYPTION_KEY", "MFA_SECRET_KEY"]

    def test_overrides(self):
        """Should read every key from the environment."""
        config = SecurityConfig.from_env({
            "QR_ENCRYPTION_KEY": "qr-key",
            "MFA_SECRET_KEY": "mfa-key",
            "QR_CODE_EXPIRY_DAYS": "30",
            "MFA_OTP_EXPIRY_MINUTES": "5",
            "MAX_LOGIN_ATTEMPTS": "3",
            "RATE_LIMIT_WINDOW_MS": "60000",
            "RATE_LIMIT_MAX_REQUESTS": "10",
            "PASSWORD_MIN_LENGTH": "12",
            "PASSWORD_REQUIRE_UPPERCASE": "true",
            "PASSWORD_REQUIRE_NUMBER": "TRUE",
            "PASSWORD_REQUIRE_SPECIAL": "yes",
        })

        assert config.insecure_defaults() == []
        assert config.qr_code_expiry_days == 30
        assert config.mfa_otp_expiry_minutes == 5
        assert config.max_login_attempts == 3
        assert config.rate_limit_window_seconds == 60
        assert config.rate_limit_max_requests == 10
        assert config.password_policy.min_length == 12
        assert config.password_policy.require_uppercase is True
        assert config.password_policy.require_number is True
        assert config.password_policy.require_special is False

    def test_non_integer_rejected(self):
        """Should reject a non-integer numeric key."""
        with pytest.raises(ConfigurationError):
            SecurityConfig.from_env({"MAX_LOGIN_ATTEMPTS": "five"})

    def test_non_positive_rejected(self):
        """Should reject a non-positive numeric key."""
        with pytest.raises(ConfigurationError):
            SecurityConfig.from_env({"RATE_LIMIT_MAX_REQUESTS": "0"})

    def test_frozen(self):
        """Should not allow mutation."""
        config = SecurityConfig()
        with pytest.raises(Exception):
            config.max_login_attempts = 99


class TestPasswordPolicy:
    """Tests for password complexity validation."""

    def test_default_policy_checks_length_only(self):
        """Should only check length by default."""
        assert validate_password("aaaaaaaa").is_valid is True
        result = validate_password("short")
        assert result.is_valid is False
        assert result.errors == ["Password must be at least 8 characters long"]

    def test_all_rules(self):
        """Should report one message per failed rule."""
        policy = PasswordPolicy(
            min_length=10,
            require_uppercase=True,
            require_lowercase=True,
            require_number=True,
            require_special=True,
        )

        assert len(validate_password("", policy).errors) == 5
        assert validate_password("Abcdefgh1!", policy).is_valid is True
        assert validate_password("abcdefgh1!", policy).errors == [
            "Password must contain at least one uppercase letter",
        ]
        assert validate_password("Abcdefghi1", policy).errors == [
            "Password must contain at least one special character",
        ]


class TestEmail:
    """Tests for email validation."""

    @pytest.mark.parametrize("email,valid", [
        ("user@example.com", True),
        ("a.b+c@sub.example.ng", True),
        ("no-at-sign", False),
        ("user@nodot", False),
        ("has space@example.com", False),
        ("", False),
    ])
    def test_is_valid_email(self, email, valid):
        """Should recognise well-formed email addresses."""
        assert is_valid_email(email) is valid


class TestMFAGate:
    """Tests for the sensitive-action lookup."""

    @pytest.mark.parametrize("action", [a.value for a in SensitiveAction])
    def test_sensitive_actions(self, action):
        """Should require MFA for sensitive actions."""
        assert requires_mfa(action) is True

    def test_set_is_fixed(self):
        """Should define exactly ten sensitive actions."""
        assert len(SensitiveAction) == 10

    @pytest.mark.parametrize("action", ["view_profile", "list_products", "", "WITHDRAWAL"])
    def test_other_actions(self, action):
        """Should not require MFA for other actions."""
        assert requires_mfa(action) is False
