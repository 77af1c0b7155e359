"""Administration API routes.

All endpoints require the admin role and act on the admin's own tenant.
"""

import math
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from flowgrid_auth.core.audit import Client
from flowgrid_auth.core.auth.dependencies import CurrentAdmin
from flowgrid_auth.core.constants import (
    DEFAULT_AUDIT_PAGE_SIZE,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
)
from flowgrid_auth.core.schemas import MessageResponse, Pagination
from flowgrid_auth.modules.admin.schemas import (
    AdminUserResponse,
    AuditEventResponse,
    AuditListResponse,
    DisableUserRequest,
    UserListResponse,
)
from flowgrid_auth.modules.admin.services import AdminSvc
from flowgrid_auth.modules.users.models import UserRole


router = APIRouter(prefix="/admin", tags=["admin"])


def _pagination(total: int, page: int, limit: int) -> Pagination:
    return Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit))


@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List tenant users",
    description="Paginated users of the admin's tenant with search and filters.",
)
async def list_users(
    admin: CurrentAdmin,
    service: AdminSvc,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
    search: Annotated[str | None, Query(max_length=255)] = None,
    role: UserRole | None = None,
    active: bool | None = None,
) -> UserListResponse:
    """List users with optional filters."""
    users, total = await service.list_users(
        admin,
        page=page,
        page_size=limit,
        search=search,
        role=str(role) if role else None,
        is_active=active,
    )
    return UserListResponse(
        users=[AdminUserResponse.model_validate(user) for user in users],
        pagination=_pagination(total, page, limit),
    )


@router.post(
    "/users/{user_id}/disable",
    response_model=MessageResponse,
    summary="Disable a user",
    description="Deactivates the user and signs out all of their sessions.",
)
async def disable_user(
    user_id: UUID,
    admin: CurrentAdmin,
    service: AdminSvc,
    client: Client,
    data: DisableUserRequest | None = None,
) -> MessageResponse:
    """Deactivate a user."""
    await service.disable_user(admin, user_id, client, reason=data.reason if data else None)
    return MessageResponse(message="User disabled successfully")


@router.post(
    "/users/{user_id}/enable",
    response_model=MessageResponse,
    summary="Enable a user",
)
async def enable_user(
    user_id: UUID,
    admin: CurrentAdmin,
    service: AdminSvc,
    client: Client,
) -> MessageResponse:
    """Reactivate a user."""
    await service.enable_user(admin, user_id, client)
    return MessageResponse(message="User enabled successfully")


@router.post(
    "/users/{user_id}/reset-mfa",
    response_model=MessageResponse,
    summary="Reset a user's MFA",
    description="Clears the user's MFA secret and backup codes and alerts the user by email.",
)
async def reset_user_mfa(
    user_id: UUID,
    admin: CurrentAdmin,
    service: AdminSvc,
    client: Client,
) -> MessageResponse:
    """Clear MFA for a user."""
    await service.reset_mfa(admin, user_id, client)
    return MessageResponse(message="User MFA reset successfully")


@router.get(
    "/audit",
    response_model=AuditListResponse,
    summary="Query the audit log",
    description="Paginated audit entries of the admin's tenant, newest first.",
)
async def list_audit(
    admin: CurrentAdmin,
    service: AdminSvc,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_AUDIT_PAGE_SIZE,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
    action: str | None = None,
    status: str | None = None,
    start_date: Annotated[datetime | None, Query(alias="startDate")] = None,
    end_date: Annotated[datetime | None, Query(alias="endDate")] = None,
) -> AuditListResponse:
    """List audit entries with optional filters."""
    events, total = await service.list_audit(
        admin,
        page=page,
        page_size=limit,
        user_id=user_id,
        action=action,
        status=status,
        start=start_date,
        end=end_date,
    )
    return AuditListResponse(
        events=[
            AuditEventResponse(
                id=entry.id,
                user_id=entry.user_id,
                user_email=email,
                action=entry.action,
                status=entry.status,
                ip_address=entry.ip_address,
                user_agent=entry.user_agent,
                request_id=entry.request_id,
                details=entry.details,
                created_at=entry.created_at,
            )
            for entry, email in events
        ],
        pagination=_pagination(total, page, limit),
    )
