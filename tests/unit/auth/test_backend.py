"""Unit tests for the authentication backend."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from flowgrid_auth.core.auth.backend import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    check_password_strength,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_backup_codes,
    hash_backup_code,
    hash_password,
    hash_token,
    normalize_backup_code,
    require_strong_password,
    verify_backup_code,
    verify_password,
)
from flowgrid_auth.core.errors import UnauthorizedError, ValidationError


class TestPasswordHashing:
    """Tests for bcrypt password hashing."""

    def test_hash_is_not_plaintext(self):
        hashed = hash_password("Str0ng!Passw0rd")

        assert hashed != "Str0ng!Passw0rd"
        assert hashed.startswith("$2")

    def test_verify_roundtrip(self):
        hashed = hash_password("Str0ng!Passw0rd")

        assert verify_password("Str0ng!Passw0rd", hashed) is True
        assert verify_password("str0ng!passw0rd", hashed) is False

    def test_same_password_hashes_differently(self):
        assert hash_password("Str0ng!Passw0rd") != hash_password("Str0ng!Passw0rd")


class TestPasswordStrength:
    """Tests for the password-strength policy."""

    @pytest.mark.parametrize(
        "password",
        ["Tr1cky#Horse", "Abcdef1!", "correct-Horse-battery-9"],
    )
    def test_accepts_strong_passwords(self, password):
        assert check_password_strength(password).valid is True

    def test_rejects_short_password(self):
        result = check_password_strength("Ab1!")

        assert result.valid is False
        assert "Password must be at least 8 characters" in result.feedback

    def test_rejects_single_class_password(self):
        result = check_password_strength("abcdefghij")

        assert result.valid is False
        assert "Add at least one uppercase letter" in result.feedback
        assert "Add at least one number" in result.feedback

    def test_common_pattern_costs_two_points(self):
        plain = check_password_strength("Xyzzyxyz#2024")
        common = check_password_strength("Password#2024")

        assert common.score == plain.score - 2
        assert "Avoid common patterns and words" in common.feedback

    def test_score_never_negative(self):
        assert check_password_strength("admin").score == 0

    def test_require_strong_password_raises_with_feedback(self):
        with pytest.raises(ValidationError) as exc_info:
            require_strong_password("weak")

        assert exc_info.value.error_code == "weak_password"
        assert exc_info.value.details["feedback"]

    def test_require_strong_password_accepts(self):
        require_strong_password("Tr1cky#Horse")


class TestTokens:
    """Tests for JWT creation and decoding."""

    def test_access_token_claims(self):
        user_id, tenant_id = uuid4(), uuid4()

        token = create_access_token(user_id, tenant_id, "a@example.com", "admin")
        data = decode_token(token)

        assert data.user_id == user_id
        assert data.tenant_id == tenant_id
        assert data.email == "a@example.com"
        assert data.role == "admin"
        assert data.type == ACCESS_TOKEN
        assert data.jti

    def test_access_token_lifetime(self):
        token = create_access_token(uuid4(), uuid4(), "a@example.com", "user")

        data = decode_token(token)

        remaining = data.exp - datetime.now(UTC)
        assert timedelta(minutes=14) < remaining <= timedelta(minutes=15)

    def test_refresh_token_lifetime(self):
        token = create_refresh_token(uuid4(), uuid4(), "a@example.com", "user")

        data = decode_token(token, expected_type=REFRESH_TOKEN)

        remaining = data.exp - datetime.now(UTC)
        assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)

    def test_tokens_are_unique(self):
        user_id, tenant_id = uuid4(), uuid4()

        first = create_access_token(user_id, tenant_id, "a@example.com", "user")
        second = create_access_token(user_id, tenant_id, "a@example.com", "user")

        assert first != second

    def test_refresh_token_rejected_as_access(self):
        token = create_refresh_token(uuid4(), uuid4(), "a@example.com", "user")

        with pytest.raises(UnauthorizedError) as exc_info:
            decode_token(token)

        assert exc_info.value.error_code == "invalid_token_type"

    def test_access_token_rejected_as_refresh(self):
        token = create_access_token(uuid4(), uuid4(), "a@example.com", "user")

        with pytest.raises(UnauthorizedError) as exc_info:
            decode_token(token, expected_type=REFRESH_TOKEN)

        assert exc_info.value.error_code == "invalid_token_type"

    def test_any_type_accepted_without_expectation(self):
        token = create_refresh_token(uuid4(), uuid4(), "a@example.com", "user")

        assert decode_token(token, expected_type=None).type == REFRESH_TOKEN

    def test_expired_token(self):
        token = create_access_token(
            uuid4(), uuid4(), "a@example.com", "user", expires_delta=timedelta(seconds=-1)
        )

        with pytest.raises(UnauthorizedError) as exc_info:
            decode_token(token)

        assert exc_info.value.error_code == "token_expired"
        assert exc_info.value.message == "Invalid or expired token"

    def test_malformed_token(self):
        with pytest.raises(UnauthorizedError) as exc_info:
            decode_token("not.a.jwt")

        assert exc_info.value.error_code == "invalid_token"

    def test_tampered_token(self):
        token = create_access_token(uuid4(), uuid4(), "a@example.com", "user")
        header, payload, signature = token.split(".")
        tampered = f"{header}.{payload}.{signature[::-1]}"

        with pytest.raises(UnauthorizedError):
            decode_token(tampered)

    def test_hash_token_is_sha256_hex(self):
        digest = hash_token("some-token")

        assert len(digest) == 64
        assert digest == hash_token("some-token")
        assert digest != hash_token("other-token")


class TestBackupCodes:
    """Tests for MFA backup code helpers."""

    def test_generate_backup_codes(self):
        codes = generate_backup_codes(10)

        assert len(codes) == 10
        assert len(set(codes)) == 10
        for code in codes:
            assert len(code) == 8
            int(code, 16)
            assert code == code.upper()

    @pytest.mark.parametrize(
        ("typed", "expected"),
        [
            ("abcd1234", "ABCD1234"),
            ("ABCD-1234", "ABCD1234"),
            (" abcd 1234 ", "ABCD1234"),
        ],
    )
    def test_normalize_backup_code(self, typed, expected):
        assert normalize_backup_code(typed) == expected

    def test_verify_backup_code_ignores_formatting(self):
        hashed = hash_backup_code("ABCD1234")

        assert verify_backup_code("abcd-1234", hashed) is True
        assert verify_backup_code("ABCD1235", hashed) is False
