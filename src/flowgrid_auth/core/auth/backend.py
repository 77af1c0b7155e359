"""Authentication backend for hashing, JWT handling and password policy.

This module provides core authentication utilities including:
- Password and backup-code hashing with bcrypt
- Access/refresh JWT creation and verification
- SHA-256 hashing of tokens for storage
- The password-strength policy
"""

import hashlib
import re
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from flowgrid_auth.config import settings
from flowgrid_auth.core.auth.schemas import TokenData
from flowgrid_auth.core.constants import (
    BACKUP_CODE_BYTES,
    MIN_PASSWORD_LENGTH,
    MIN_PASSWORD_SCORE,
    STRONG_PASSWORD_LENGTH,
    TOKEN_JTI_LENGTH,
)
from flowgrid_auth.core.errors import UnauthorizedError, ValidationError


ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

backup_code_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.backup_code_bcrypt_rounds,
)


# ============================================================
# Password Utilities
# ============================================================


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hash of the password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Bcrypt hash to verify against

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify_password() -> None:
    """Spend the same time as a real verify when there is no hash to check."""
    pwd_context.dummy_verify()


# Password complexity rules: (regex pattern, human-readable name)
PASSWORD_COMPLEXITY_RULES: list[tuple[str, str]] = [
    (r"[A-Z]", "uppercase letter"),
    (r"[a-z]", "lowercase letter"),
    (r"\d", "number"),
    (r"[!@#$%^&*(),.?\":{}|<>\[\]\\;'`~_+\-=/]", "special character"),
]

COMMON_PASSWORD_PATTERN = re.compile(
    r"123456|password|qwerty|abc123|letmein|welcome|admin|login",
    re.IGNORECASE,
)


@dataclass
class PasswordStrength:
    """Outcome of the password-strength policy."""

    valid: bool
    score: int
    feedback: list[str] = field(default_factory=list)


def check_password_strength(password: str) -> PasswordStrength:
    """Score a password against the strength policy.

    One point for reaching the minimum length and another for the strong
    length, one point per complexity rule, minus two for common patterns.
    A password is acceptable at the minimum length with a score of 3.

    Args:
        password: The candidate password

    Returns:
        PasswordStrength with the score and human-readable feedback
    """
    score = 0
    feedback: list[str] = []

    if len(password) >= MIN_PASSWORD_LENGTH:
        score += 1
    else:
        feedback.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if len(password) >= STRONG_PASSWORD_LENGTH:
        score += 1

    for pattern, name in PASSWORD_COMPLEXITY_RULES:
        if re.search(pattern, password):
            score += 1
        else:
            feedback.append(f"Add at least one {name}")

    if COMMON_PASSWORD_PATTERN.search(password):
        score -= 2
        feedback.append("Avoid common patterns and words")

    return PasswordStrength(
        valid=len(password) >= MIN_PASSWORD_LENGTH and score >= MIN_PASSWORD_SCORE,
        score=max(0, score),
        feedback=feedback,
    )


def require_strong_password(password: str) -> None:
    """Reject a new password that fails the strength policy.

    Raises:
        ValidationError: With the policy feedback in ``details``
    """
    strength = check_password_strength(password)
    if not strength.valid:
        raise ValidationError(
            "Password does not meet requirements",
            error_code="weak_password",
            details={"feedback": strength.feedback},
        )


# ============================================================
# MFA Backup Codes
# ============================================================


def generate_backup_codes(count: int) -> list[str]:
    """Generate single-use backup codes of 8 upper-case hex characters."""
    return [secrets.token_hex(BACKUP_CODE_BYTES).upper() for _ in range(count)]


def normalize_backup_code(code: str) -> str:
    """Strip separators and case differences users type into backup codes."""
    return code.strip().replace("-", "").replace(" ", "").upper()


def hash_backup_code(code: str) -> str:
    """Hash a backup code for storage."""
    return backup_code_context.hash(normalize_backup_code(code))


def verify_backup_code(code: str, hashed_code: str) -> bool:
    """Check a presented backup code against one stored hash."""
    return backup_code_context.verify(normalize_backup_code(code), hashed_code)


# ============================================================
# JWT Token Utilities
# ============================================================


def _create_token(
    token_type: str,
    user_id: UUID,
    tenant_id: UUID,
    email: str,
    role: str,
    expires_delta: timedelta,
) -> str:
    now = datetime.now(UTC)
    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "tenant_id": str(tenant_id),
        "role": role,
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
        "jti": secrets.token_urlsafe(TOKEN_JTI_LENGTH),
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(
    user_id: UUID,
    tenant_id: UUID,
    email: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a short-lived JWT access token.

    Args:
        user_id: The user's UUID
        tenant_id: The tenant's UUID
        email: The user's email
        role: The user's role
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT access token
    """
    return _create_token(
        ACCESS_TOKEN,
        user_id,
        tenant_id,
        email,
        role,
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(
    user_id: UUID,
    tenant_id: UUID,
    email: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a long-lived JWT refresh token.

    The token is returned to the caller once; only ``hash_token`` of it
    is ever stored.

    Args:
        user_id: The user's UUID
        tenant_id: The tenant's UUID
        email: The user's email
        role: The user's role
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT refresh token
    """
    return _create_token(
        REFRESH_TOKEN,
        user_id,
        tenant_id,
        email,
        role,
        expires_delta or timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str, expected_type: str | None = ACCESS_TOKEN) -> TokenData:
    """Decode and validate a JWT token.

    Expired and malformed tokens raise with different error codes so they
    can be told apart in logs; both carry the same client-facing message.

    Args:
        token: The JWT token to decode
        expected_type: Required ``type`` claim, or None to accept either class

    Returns:
        Decoded token data

    Raises:
        UnauthorizedError: If the token is expired, malformed or of the wrong type
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        token_data = TokenData(
            user_id=UUID(payload["sub"]),
            tenant_id=UUID(payload["tenant_id"]),
            email=payload["email"],
            role=payload["role"],
            type=payload["type"],
            exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
            jti=payload.get("jti"),
        )
    except ExpiredSignatureError as exc:
        raise UnauthorizedError(
            "Invalid or expired token",
            error_code="token_expired",
        ) from exc
    except (JWTError, KeyError, TypeError, ValueError) as exc:
        raise UnauthorizedError(
            "Invalid or expired token",
            error_code="invalid_token",
        ) from exc

    if expected_type and token_data.type != expected_type:
        raise UnauthorizedError(
            "Invalid token type",
            error_code="invalid_token_type",
        )

    return token_data


def hash_token(token: str) -> str:
    """Hash a token for storage and O(1) lookup.

    Args:
        token: The token to hash

    Returns:
        SHA-256 hex digest of the token
    """
    return hashlib.sha256(token.encode()).hexdigest()


def generate_secure_token(nbytes: int) -> str:
    """Generate a URL-safe random token for invite and reset links."""
    return secrets.token_urlsafe(nbytes)


def get_token_expiration(days: int | None = None) -> datetime:
    """Get the expiration datetime for a refresh token.

    Args:
        days: Number of days until expiration

    Returns:
        Expiration datetime
    """
    if days is None:
        days = settings.refresh_token_expire_days
    return datetime.now(UTC) + timedelta(days=days)
