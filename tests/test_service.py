"""
Integration Tests for SecurityService
=====================================
End-to-end flows through the uniform-result surface.
"""

from datetime import datetime, timezone

import pytest

from verity_core.config import SecurityConfig
from verity_core.service import SecurityService

from .conftest import FailingMailer, extract_code


@pytest.fixture
def config():
    return SecurityConfig(qr_encryption_key="qr-key", mfa_secret_key="mfa-key")


@pytest.fixture
def service(config, store, mailer, clock):
    return SecurityService(config, store, mailer, clock=clock)


class TestMFAFlow:
    """Tests for email OTP through the facade."""

    async def test_send_verify_then_not_found(self, service, mailer):
        """Issue, verify once, and the repeat finds nothing."""
        sent = await service.send_mfa_code("user@example.com", "u1")
        code = extract_code(mailer.last)

        assert sent.success is True
        assert sent.data == {"expires_in_seconds": 600}

        assert (await service.verify_mfa_code("u1", code)).success is True

        repeat = await service.verify_mfa_code("u1", code)
        assert repeat.success is False
        assert repeat.code == "NOT_FOUND"
        assert repeat.error == "No verification code found. Please request a new one."

    async def test_second_issue_supersedes_first(self, service, mailer):
        """Should accept only the latest code."""
        await service.send_mfa_code("user@example.com", "u1")
        first = extract_code(mailer.last)
        await service.send_mfa_code("user@example.com", "u1")
        second = extract_code(mailer.last)

        if first != second:
            assert (await service.verify_mfa_code("u1", first)).success is False
        assert (await service.verify_mfa_code("u1", second)).success is True

    async def test_error_precedence(self, service, mailer):
        """Should report attempts remaining, then the cap, then nothing."""
        await service.send_mfa_code("user@example.com", "u1")
        code = extract_code(mailer.last)
        wrong = "000000" if code != "000000" else "111111"

        results = [await service.verify_mfa_code("u1", wrong) for _ in range(3)]
        assert [r.code for r in results] == ["INVALID_CODE"] * 3
        assert [r.remaining for r in results] == [2, 1, 0]

        capped = await service.verify_mfa_code("u1", code)
        assert capped.code == "TOO_MANY_ATTEMPTS"
        assert (await service.verify_mfa_code("u1", code)).code == "NOT_FOUND"

    async def test_expired(self, service, mailer, clock):
        """Should report an expired code."""
        await service.send_mfa_code("user@example.com", "u1")
        code = extract_code(mailer.last)
        clock.advance(11 * 60)

        result = await service.verify_mfa_code("u1", code)

        assert result.code == "EXPIRED"

    async def test_delivery_failure_reported_generically(self, config, store, clock):
        """Should hide transport details on delivery failure."""
        service = SecurityService(config, store, FailingMailer(), clock=clock)

        result = await service.send_mfa_code("user@example.com", "u1")

        assert result.success is False
        assert result.code == "DELIVERY_FAILURE"
        assert "smtp" not in result.error
        assert (await service.verify_mfa_code("u1", "123456")).code == "NOT_FOUND"

    async def test_store_failure_does_not_escape(self, config, mailer, clock):
        """Should turn a store error into a generic result."""
        class BrokenStore:
            async def query(self, collection, **equals):
                raise RuntimeError("database offline")

        service = SecurityService(config, BrokenStore(), mailer, clock=clock)

        result = await service.verify_mfa_code("u1", "123456")

        assert result.success is False
        assert "database" not in result.error

    async def test_result_dict_shape(self, service):
        """Should drop unset fields from the result dict."""
        result = await service.verify_mfa_code("nobody", "123456")

        assert result.to_dict() == {
            "success": False,
            "error": "No verification code found. Please request a new one.",
            "code": "NOT_FOUND",
        }


class TestBackupCodeFlow:
    """Tests for backup codes through the facade."""

    async def test_generate_store_verify(self, service):
        """Should redeem each stored code once."""
        codes = service.generate_backup_codes()
        stored = await service.store_backup_codes("u1", codes)

        assert stored.success is True
        assert stored.remaining == 10
        assert (await service.verify_backup_code("u1", codes[3])).success is True

        reused = await service.verify_backup_code("u1", codes[3])
        assert reused.success is False
        assert reused.error == "Invalid or already used backup code"

    async def test_no_codes(self, service):
        """Should report a subject without backup codes."""
        result = await service.verify_backup_code("u1", "1111-2222")

        assert result.error == "No backup codes found"


class TestTOTPFlow:
    """Tests for authenticator enrollment through the facade."""

    def test_enrollment_and_verification(self, service):
        """Should return a QR data URL and accept only the current code."""
        secret = service.generate_totp_secret()
        qr = service.generate_totp_qr_code("user@example.com", secret)
        code = service.totp.compute_code(secret)

        assert qr.success is True
        assert qr.data["qr_code"].startswith("data:image/png;base64,")
        assert service.verify_totp_token(code, secret) is True
        assert service.verify_totp_token(service.totp.compute_code(secret, 2), secret) is False

    def test_malformed_secret_returns_failure(self, service):
        """Should report a malformed secret as a result, not an exception."""
        result = service.generate_totp_qr_code("user@example.com", "!!not-base32!!")

        assert result.success is False
        assert result.code == "INVALID_FORMAT"
        assert result.error == "Invalid TOTP secret"
        assert service.verify_totp_token("123456", "!!not-base32!!") is False


class TestDigitalIDFlow:
    """Tests for digital ID issue and scan through the facade."""

    def test_issue_and_verify(self, service):
        """Should issue a QR code and verify a minted payload."""
        generated = service.generate_digital_id_qr("u1", "ESE-2024-U1", "Ada Obi", "ada@example.com", "member")
        issued = service.digital_id.mint("u1", "ESE-2024-U1", "Ada Obi", "ada@example.com", "member")

        result = service.verify_digital_id_qr(issued.blob)

        assert generated.success is True
        assert generated.data["qr_code"].startswith("data:image/png;base64,")
        assert result.valid is True
        assert result.payload.subject_id == "u1"
        assert result.to_dict()["payload"]["memberNumber"] == "ESE-2024-U1"

    def test_expired(self, service, clock):
        """Should report an expired payload without returning it."""
        issued = service.digital_id.mint("u1", "ESE-2024-U1", "Ada Obi", "ada@example.com", "member")
        clock.advance(366 * 24 * 60 * 60)

        result = service.verify_digital_id_qr(issued.blob)

        assert result.valid is False
        assert result.error == "QR code has expired"
        assert result.code == "EXPIRED"
        assert result.payload is None

    def test_garbage(self, service):
        """Should carry the error code in the dict like OperationResult does."""
        result = service.verify_digital_id_qr("not-a-qr-payload")

        assert result.to_dict() == {
            "valid": False,
            "error": "Invalid QR code format",
            "code": "INVALID_FORMAT",
        }

    def test_card(self, service):
        """Should return the card fields with a QR code in the result data."""
        result = service.generate_digital_id_card(
            "u1", "ESE-2024-U1", "Ada Obi", "ada@example.com", "member",
            datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

        assert result.success is True
        assert result.data["display_number"] == "ESE-2024-U1"
        assert result.data["qr_code_data_url"].startswith("data:image/png;base64,")

    def test_issue_failure_returns_result(self, service, monkeypatch):
        """Should not let an unexpected issuer error leave the facade."""
        def broken(*args, **kwargs):
            raise RuntimeError("qr renderer crashed")

        monkeypatch.setattr(service.digital_id, "issue", broken)
        monkeypatch.setattr(service.digital_id, "generate_card", broken)
        monkeypatch.setattr(service.digital_id, "verify", broken)

        generated = service.generate_digital_id_qr("u1", "ESE-2024-U1", "Ada Obi", "ada@example.com", "member")
        card = service.generate_digital_id_card(
            "u1", "ESE-2024-U1", "Ada Obi", "ada@example.com", "member",
            datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        scanned = service.verify_digital_id_qr("anything")

        assert generated.success is False
        assert generated.code == "SECURITY_ERROR"
        assert "renderer" not in generated.error
        assert card.success is False
        assert scanned.valid is False
        assert "renderer" not in scanned.error


class TestRateLimitFlow:
    """Tests for request and login limiting through the facade."""

    def test_login_attempts(self, service):
        """Five attempts pass, the sixth is refused, a reset lets the next through."""
        for _ in range(5):
            assert service.consume_login_attempt("user@example.com").success is True

        refused = service.consume_login_attempt("user@example.com")
        assert refused.success is False
        assert refused.code == "RATE_LIMITED"
        assert refused.retry_after_seconds > 0
        assert refused.error == "Too many failed login attempts. Please try again in 15 minutes."

        service.reset_login_attempts("user@example.com")
        assert service.consume_login_attempt("user@example.com").success is True

    def test_request_limit(self, config, store, mailer, clock):
        """Should refuse requests over the configured limit."""
        service = SecurityService(
            SecurityConfig(rate_limit_max_requests=2, rate_limit_window_ms=60_000),
            store, mailer, clock=clock,
        )

        assert service.rate_limit("1.2.3.4").remaining == 1
        assert service.rate_limit("1.2.3.4").remaining == 0

        refused = service.rate_limit("1.2.3.4")
        assert refused.success is False
        assert refused.retry_after_seconds == 60
        assert refused.error == "Too many requests. Please try again in 60 seconds."


class TestPolicyFlow:
    """Tests for password policy and the MFA gate through the facade."""

    def test_password_and_gate(self, service):
        """Should validate passwords and gate sensitive actions."""
        assert service.validate_password("longenough").is_valid is True
        assert service.requires_mfa("withdrawal") is True
        assert service.requires_mfa("browse") is False
