"""MFA API routes.

Provides endpoints for:
- Authenticator enrollment and confirmation
- Disabling MFA
- Regenerating backup codes
"""

from fastapi import APIRouter, Depends

from flowgrid_auth.core.audit import Client
from flowgrid_auth.core.auth.dependencies import CurrentUser
from flowgrid_auth.core.rate_limit import mfa_rate_limit
from flowgrid_auth.core.schemas import MessageResponse
from flowgrid_auth.modules.mfa.schemas import (
    BackupCodesResponse,
    MFACodeRequest,
    MFADisableRequest,
    MFASetupResponse,
)
from flowgrid_auth.modules.mfa.services import MFASvc


router = APIRouter(prefix="/mfa", tags=["mfa"], dependencies=[Depends(mfa_rate_limit)])


@router.post(
    "/setup",
    response_model=MFASetupResponse,
    summary="Start MFA enrollment",
    description="Generates a new TOTP secret. MFA is not enforced until it is verified.",
)
async def setup_mfa(
    current_user: CurrentUser,
    service: MFASvc,
    client: Client,
) -> MFASetupResponse:
    """Generate a TOTP secret and its QR code."""
    setup = await service.setup(current_user, client)
    return MFASetupResponse(
        secret=setup.secret,
        otpauth_url=setup.otpauth_url,
        qr_code=setup.qr_code,
    )


@router.post(
    "/verify",
    response_model=BackupCodesResponse,
    summary="Enable MFA",
    description="Confirms the authenticator with a current code and returns backup codes once.",
)
async def verify_mfa(
    data: MFACodeRequest,
    current_user: CurrentUser,
    service: MFASvc,
    client: Client,
) -> BackupCodesResponse:
    """Enable MFA after a correct code."""
    codes = await service.enable(current_user, data.code, client)
    return BackupCodesResponse(message="MFA enabled successfully", backup_codes=codes)


@router.post(
    "/disable",
    response_model=MessageResponse,
    summary="Disable MFA",
    description="Requires the current password and a current MFA code.",
)
async def disable_mfa(
    data: MFADisableRequest,
    current_user: CurrentUser,
    service: MFASvc,
    client: Client,
) -> MessageResponse:
    """Turn MFA off."""
    await service.disable(current_user, data.password, data.code, client)
    return MessageResponse(message="MFA disabled successfully")


@router.post(
    "/backup-codes",
    response_model=BackupCodesResponse,
    summary="Regenerate backup codes",
    description="Invalidates all previous backup codes and returns a new set once.",
)
async def regenerate_backup_codes(
    data: MFACodeRequest,
    current_user: CurrentUser,
    service: MFASvc,
    client: Client,
) -> BackupCodesResponse:
    """Replace the backup codes."""
    codes = await service.regenerate_backup_codes(current_user, data.code, client)
    return BackupCodesResponse(message="Backup codes regenerated", backup_codes=codes)
