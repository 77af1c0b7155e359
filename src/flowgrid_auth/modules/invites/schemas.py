"""Pydantic schemas for invite endpoints."""

from datetime import datetime

from pydantic import EmailStr, Field

from flowgrid_auth.core.constants import MAX_NAME_LENGTH, MAX_PASSWORD_LENGTH
from flowgrid_auth.core.schemas import APIModel
from flowgrid_auth.modules.users.models import UserRole


class InviteSendRequest(APIModel):
    """Invite someone into the caller's tenant."""

    email: EmailStr
    role: UserRole = UserRole.USER


class InviteSendResponse(APIModel):
    """Acknowledgement of a sent invite."""

    message: str = "Invitation sent successfully"
    email: str
    expires_at: datetime


class InviteValidateResponse(APIModel):
    """Details of a still-valid invite."""

    valid: bool = True
    email: str
    role: str
    tenant_name: str
    expires_at: datetime


class InviteAcceptRequest(APIModel):
    """Accept an invite by choosing a name and a password."""

    token: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)
