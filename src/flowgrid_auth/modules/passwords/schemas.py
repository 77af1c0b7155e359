"""Pydantic schemas for password endpoints."""

from pydantic import EmailStr, Field

from flowgrid_auth.core.constants import MAX_PASSWORD_LENGTH
from flowgrid_auth.core.schemas import APIModel


class ForgotPasswordRequest(APIModel):
    """Ask for a reset link."""

    email: EmailStr
    tenant: str | None = Field(
        None, description="Tenant slug, needed when the email exists in several tenants"
    )


class ResetPasswordRequest(APIModel):
    """Complete a reset with the emailed token."""

    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)


class ChangePasswordRequest(APIModel):
    """Change the password while logged in."""

    current_password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)
    new_password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)
