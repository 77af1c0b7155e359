"""Invite API routes."""

from fastapi import APIRouter, Depends, Response, status

from flowgrid_auth.core.audit import Client
from flowgrid_auth.core.auth.dependencies import CurrentAdmin
from flowgrid_auth.core.auth.routes import session_response, set_refresh_cookie
from flowgrid_auth.core.auth.schemas import LoginResponse
from flowgrid_auth.core.rate_limit import invite_rate_limit
from flowgrid_auth.core.utils.time import ensure_utc
from flowgrid_auth.modules.invites.schemas import (
    InviteAcceptRequest,
    InviteSendRequest,
    InviteSendResponse,
    InviteValidateResponse,
)
from flowgrid_auth.modules.invites.services import InviteSvc


router = APIRouter(prefix="/invite", tags=["invites"])


@router.post(
    "/send",
    response_model=InviteSendResponse,
    dependencies=[Depends(invite_rate_limit)],
    summary="Invite a user",
    description="Admins invite an email address into their tenant with a role.",
)
async def send_invite(
    data: InviteSendRequest,
    admin: CurrentAdmin,
    service: InviteSvc,
    client: Client,
) -> InviteSendResponse:
    """Create and email an invite."""
    invite = await service.send(admin, data.email, data.role, client)
    return InviteSendResponse(email=invite.email, expires_at=ensure_utc(invite.expires_at))


@router.get(
    "/validate/{token}",
    response_model=InviteValidateResponse,
    summary="Check an invite",
    description="Returns the invite's email, role and tenant if it can still be accepted.",
)
async def validate_invite(
    token: str,
    service: InviteSvc,
) -> InviteValidateResponse:
    """Describe a pending invite."""
    preview = await service.preview(token)
    return InviteValidateResponse(
        email=preview.email,
        role=preview.role,
        tenant_name=preview.tenant_name,
        expires_at=preview.expires_at,
    )


@router.post(
    "/accept",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Accept an invite",
    description="Creates the account and returns a session; no separate login is needed.",
)
async def accept_invite(
    data: InviteAcceptRequest,
    service: InviteSvc,
    client: Client,
    response: Response,
) -> LoginResponse:
    """Create the invited account."""
    session = await service.accept(data.token, data.name, data.password, client)
    set_refresh_cookie(response, session.tokens.refresh_token)
    return session_response(session, message="Account created successfully")
