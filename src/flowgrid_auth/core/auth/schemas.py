"""Schemas for login, token and session endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from flowgrid_auth.core.constants import MAX_PASSWORD_LENGTH
from flowgrid_auth.core.schemas import APIModel


class TokenData(BaseModel):
    """Data extracted from a JWT token.

    Attributes:
        user_id: The user's UUID
        tenant_id: The tenant's UUID
        email: The user's email at issuance
        role: The user's role at issuance
        type: Token class (access or refresh)
        exp: Token expiration time
        jti: Unique token identifier
    """

    user_id: UUID
    tenant_id: UUID
    email: str
    role: str
    type: str
    exp: datetime
    jti: str | None = None


class TokenPair(BaseModel):
    """A freshly minted access/refresh token pair.

    Attributes:
        access_token: Short-lived JWT for API access
        refresh_token: Long-lived JWT exchanged for new access tokens
        token_type: Always "bearer"
        expires_in: Access token lifetime in seconds
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


# ============================================================
# Requests
# ============================================================


class LoginRequest(APIModel):
    """Credential login, optionally with an MFA code."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)
    mfa_code: str | None = Field(None, max_length=32)
    tenant: str | None = Field(
        None, description="Tenant slug, needed when the email exists in several tenants"
    )


class RefreshRequest(APIModel):
    """Refresh token supplied in the body when the cookie is unavailable."""

    refresh_token: str | None = None


class LogoutRequest(APIModel):
    """Logout options."""

    refresh_token: str | None = None
    revoke_all: bool = False


class VerifyRequest(APIModel):
    """Access token supplied in the body instead of the Authorization header."""

    token: str | None = None


# ============================================================
# Responses
# ============================================================


class UserSummary(APIModel):
    """User block returned with issued sessions."""

    id: UUID
    email: str
    name: str
    role: str
    mfa_enabled: bool


class TenantSummary(APIModel):
    """Tenant block returned with issued sessions."""

    id: UUID
    name: str
    slug: str


class LoginResponse(APIModel):
    """Login outcome.

    Either a full session (tokens, user, tenant) or, when MFA is enabled
    and no code was sent, ``mfaRequired: true`` with no tokens.
    """

    mfa_required: bool = False
    message: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    token_type: str | None = None
    expires_in: int | None = None
    user: UserSummary | None = None
    tenant: TenantSummary | None = None


class AccessTokenResponse(APIModel):
    """New access token minted from a refresh token."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class VerifiedUser(APIModel):
    """Identity asserted by a valid access token."""

    id: UUID
    email: str
    tenant_id: UUID
    role: str
    mfa_enabled: bool


class VerifyResponse(APIModel):
    """Out-of-band access token validation result."""

    valid: bool
    user: VerifiedUser


class MeResponse(APIModel):
    """Current user profile."""

    id: UUID
    email: str
    name: str
    role: str
    mfa_enabled: bool
    email_verified: bool
    last_login_at: datetime | None = None
    created_at: datetime
    tenant: TenantSummary
