"""Pydantic schemas for MFA endpoints."""

from pydantic import Field

from flowgrid_auth.core.constants import MAX_PASSWORD_LENGTH
from flowgrid_auth.core.schemas import APIModel


class MFACodeRequest(APIModel):
    """A current code from the user's authenticator app."""

    code: str = Field(..., min_length=6, max_length=10)


class MFADisableRequest(APIModel):
    """Disabling MFA needs both factors again."""

    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)
    code: str = Field(..., min_length=6, max_length=10)


class MFASetupResponse(APIModel):
    """Enrollment material for the authenticator app."""

    secret: str
    otpauth_url: str
    qr_code: str
    message: str = "Scan the QR code with your authenticator app, then verify with a code"


class BackupCodesResponse(APIModel):
    """Cleartext backup codes, returned exactly once."""

    message: str
    backup_codes: list[str]
    warning: str = "Save these backup codes in a secure place. They will not be shown again."
