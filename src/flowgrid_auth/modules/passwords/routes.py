"""Password reset and change routes."""

from fastapi import APIRouter, BackgroundTasks, Depends

from flowgrid_auth.core.audit import Client
from flowgrid_auth.core.auth.dependencies import CurrentUser
from flowgrid_auth.core.rate_limit import password_rate_limit
from flowgrid_auth.core.schemas import MessageResponse
from flowgrid_auth.modules.passwords.schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from flowgrid_auth.modules.passwords.services import FORGOT_PASSWORD_MESSAGE, PasswordSvc


router = APIRouter(prefix="/password", tags=["passwords"])


@router.post(
    "/forgot",
    response_model=MessageResponse,
    dependencies=[Depends(password_rate_limit)],
    summary="Request a password reset",
    description="Always answers the same way, whether or not the email has an account.",
)
async def forgot_password(
    data: ForgotPasswordRequest,
    service: PasswordSvc,
    client: Client,
    background_tasks: BackgroundTasks,
) -> MessageResponse:
    """Email a reset link if the account exists."""
    await service.request_reset(data.email, client, background_tasks, tenant_slug=data.tenant)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post(
    "/reset",
    response_model=MessageResponse,
    dependencies=[Depends(password_rate_limit)],
    summary="Reset the password",
    description="Consumes the reset token and signs out every session. Does not log in.",
)
async def reset_password(
    data: ResetPasswordRequest,
    service: PasswordSvc,
    client: Client,
) -> MessageResponse:
    """Set a new password from a reset token."""
    await service.reset(data.token, data.password, client)
    return MessageResponse(
        message="Password reset successfully. Please log in with your new password."
    )


@router.post(
    "/change",
    response_model=MessageResponse,
    summary="Change the password",
    description="Requires the current password and signs out every session.",
)
async def change_password(
    data: ChangePasswordRequest,
    current_user: CurrentUser,
    service: PasswordSvc,
    client: Client,
) -> MessageResponse:
    """Change the password of the current user."""
    await service.change(current_user, data.current_password, data.new_password, client)
    return MessageResponse(message="Password changed successfully")
