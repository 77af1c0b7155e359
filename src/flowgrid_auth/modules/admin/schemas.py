"""Pydantic schemas for administration endpoints."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from flowgrid_auth.core.constants import MAX_REASON_LENGTH
from flowgrid_auth.core.schemas import APIModel, Pagination


class AdminUserResponse(APIModel):
    """A user as seen by a tenant administrator."""

    id: UUID
    email: str
    name: str
    role: str
    is_active: bool
    mfa_enabled: bool
    email_verified: bool
    last_login_at: datetime | None = None
    created_at: datetime


class UserListResponse(APIModel):
    """Page of users."""

    users: list[AdminUserResponse]
    pagination: Pagination


class DisableUserRequest(APIModel):
    """Optional reason recorded with a disable."""

    reason: str | None = Field(None, max_length=MAX_REASON_LENGTH)


class AuditEventResponse(APIModel):
    """One audit entry."""

    id: UUID
    user_id: UUID | None = None
    user_email: str | None = None
    action: str
    status: str
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    details: dict[str, Any] | None = None
    created_at: datetime


class AuditListResponse(APIModel):
    """Page of audit entries."""

    events: list[AuditEventResponse]
    pagination: Pagination
