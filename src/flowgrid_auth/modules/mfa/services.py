"""MFA enrollment, verification and reset.

State per user: no secret (unenrolled), an unverified secret (setup done),
or a verified secret with ``User.mfa_enabled`` set and backup codes stored
as bcrypt hashes.
"""

import base64
import io
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated

import pyotp
import qrcode
from fastapi import Depends
from qrcode.image.svg import SvgPathImage

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.config import settings
from flowgrid_auth.core.audit import AuditAction, AuditLogger, AuditStatus, ClientInfo
from flowgrid_auth.core.auth.backend import (
    generate_backup_codes,
    hash_backup_code,
    normalize_backup_code,
    verify_backup_code,
    verify_password,
)
from flowgrid_auth.core.constants import BACKUP_CODE_BYTES, TOTP_VALID_WINDOW
from flowgrid_auth.core.errors import BadRequestError, UnauthorizedError
from flowgrid_auth.core.notifications import Notifier
from flowgrid_auth.core.utils.time import utcnow
from flowgrid_auth.modules.mfa.repos import MFARepository
from flowgrid_auth.modules.users.repos import UserRepository


if TYPE_CHECKING:
    from flowgrid_auth.modules.users.models import User


TOTP_METHOD = "totp"
BACKUP_CODE_METHOD = "backup_code"


@dataclass
class MFASetup:
    """Material shown to the user while enrolling an authenticator."""

    secret: str
    otpauth_url: str
    qr_code: str


def verify_totp(secret: str, code: str) -> bool:
    """Check a 6-digit code against the current or an adjacent time step."""
    clean_code = code.strip().replace(" ", "")
    if len(clean_code) != 6 or not clean_code.isdigit():
        return False
    return pyotp.TOTP(secret).verify(clean_code, valid_window=TOTP_VALID_WINDOW)


def render_qr_code(uri: str) -> str:
    """Render a provisioning URI as an SVG data URL."""
    image = qrcode.make(uri, image_factory=SvgPathImage)
    buffer = io.BytesIO()
    image.save(buffer)
    return f"data:image/svg+xml;base64,{base64.b64encode(buffer.getvalue()).decode()}"


class MFAService:
    """Service for the MFA state machine."""

    def __init__(self, db: DBSession, audit: AuditLogger, notifier: Notifier) -> None:
        self.db = db
        self.audit = audit
        self.notifier = notifier
        self.mfa_repo = MFARepository(db)
        self.user_repo = UserRepository(db)

    async def verify_login_code(self, user: "User", code: str) -> str | None:
        """Verify the second factor presented at login.

        A TOTP code is tried first, then the stored backup codes. A matching
        backup code is deleted before it is accepted.

        Args:
            user: The user completing login
            code: TOTP or backup code as typed

        Returns:
            The method used (``totp`` or ``backup_code``), or None if rejected
        """
        secret = await self.mfa_repo.get_secret(user.id)
        if secret is not None and verify_totp(secret.secret, code):
            return TOTP_METHOD

        candidate = normalize_backup_code(code)
        if len(candidate) != BACKUP_CODE_BYTES * 2:
            return None

        for stored in await self.mfa_repo.list_backup_codes(user.id):
            if verify_backup_code(candidate, stored.code_hash):
                if await self.mfa_repo.consume_backup_code(stored.id):
                    return BACKUP_CODE_METHOD
                return None
        return None

    async def setup(self, user: "User", client: ClientInfo) -> MFASetup:
        """Generate a fresh unverified secret for the user.

        MFA is not required at login until ``enable`` succeeds.

        Raises:
            BadRequestError: If MFA is already enabled
        """
        if user.mfa_enabled:
            await self._reject(AuditAction.MFA_SETUP, user, client, "mfa_already_enabled")
            raise BadRequestError("MFA is already enabled", error_code="mfa_already_enabled")

        secret = pyotp.random_base32()
        await self.mfa_repo.upsert_secret(user.id, secret)

        otpauth_url = pyotp.TOTP(secret).provisioning_uri(
            name=user.email,
            issuer_name=settings.mfa_issuer,
        )

        await self.audit.record(
            AuditAction.MFA_SETUP,
            AuditStatus.SUCCESS,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
        )

        return MFASetup(secret=secret, otpauth_url=otpauth_url, qr_code=render_qr_code(otpauth_url))

    async def enable(self, user: "User", code: str, client: ClientInfo) -> list[str]:
        """Confirm the authenticator and switch MFA on.

        Args:
            user: The enrolling user
            code: Current TOTP code from the authenticator
            client: Caller context for the audit entry

        Returns:
            Cleartext backup codes, shown exactly once

        Raises:
            BadRequestError: If setup was not started or MFA is already on
            UnauthorizedError: If the code is wrong
        """
        if user.mfa_enabled:
            await self._reject(AuditAction.MFA_ENABLE, user, client, "mfa_already_enabled")
            raise BadRequestError("MFA is already enabled", error_code="mfa_already_enabled")

        secret = await self.mfa_repo.get_secret(user.id)
        if secret is None:
            await self._reject(AuditAction.MFA_ENABLE, user, client, "mfa_not_initiated")
            raise BadRequestError(
                "MFA setup not initiated. Call /mfa/setup first.",
                error_code="mfa_not_initiated",
            )

        if not verify_totp(secret.secret, code):
            await self._reject(AuditAction.MFA_ENABLE, user, client, "invalid_code")
            raise UnauthorizedError("Invalid MFA code", error_code="invalid_mfa_code")

        now = utcnow()
        secret.verified_at = now
        user.mfa_enabled = True
        codes = await self._issue_backup_codes(user)
        await self.user_repo.update(user)

        await self.audit.record(
            AuditAction.MFA_ENABLE,
            AuditStatus.SUCCESS,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
            details={"backup_codes_issued": len(codes)},
        )
        await self.notifier.send_mfa_enabled(user.email, user.name)
        return codes

    async def disable(
        self,
        user: "User",
        password: str,
        code: str,
        client: ClientInfo,
    ) -> None:
        """Switch MFA off after re-checking password and a current code.

        Raises:
            BadRequestError: If MFA is not enabled
            UnauthorizedError: If the password or the code is wrong
        """
        if not user.mfa_enabled:
            await self._reject(AuditAction.MFA_DISABLE, user, client, "mfa_not_enabled")
            raise BadRequestError("MFA is not enabled", error_code="mfa_not_enabled")

        if not verify_password(password, user.password_hash):
            await self._reject(AuditAction.MFA_DISABLE, user, client, "invalid_password")
            raise UnauthorizedError("Invalid password", error_code="invalid_password")

        secret = await self.mfa_repo.get_secret(user.id)
        if secret is None or not verify_totp(secret.secret, code):
            await self._reject(AuditAction.MFA_DISABLE, user, client, "invalid_code")
            raise UnauthorizedError("Invalid MFA code", error_code="invalid_mfa_code")

        await self._clear(user)
        await self.audit.record(
            AuditAction.MFA_DISABLE,
            AuditStatus.SUCCESS,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
        )
        await self.notifier.send_security_alert(
            user.email,
            user.name,
            "Two-factor authentication disabled",
            "Two-factor authentication was turned off for your account.",
        )

    async def regenerate_backup_codes(
        self,
        user: "User",
        code: str,
        client: ClientInfo,
    ) -> list[str]:
        """Replace all backup codes after checking a current TOTP code.

        Returns:
            The new cleartext backup codes

        Raises:
            BadRequestError: If MFA is not enabled
            UnauthorizedError: If the code is wrong
        """
        if not user.mfa_enabled:
            await self._reject(
                AuditAction.MFA_BACKUP_CODES_REGENERATED, user, client, "mfa_not_enabled"
            )
            raise BadRequestError("MFA is not enabled", error_code="mfa_not_enabled")

        secret = await self.mfa_repo.get_secret(user.id)
        if secret is None or not verify_totp(secret.secret, code):
            await self._reject(
                AuditAction.MFA_BACKUP_CODES_REGENERATED, user, client, "invalid_code"
            )
            raise UnauthorizedError("Invalid MFA code", error_code="invalid_mfa_code")

        codes = await self._issue_backup_codes(user)
        await self.audit.record(
            AuditAction.MFA_BACKUP_CODES_REGENERATED,
            AuditStatus.SUCCESS,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
            details={"backup_codes_issued": len(codes)},
        )
        return codes

    async def reset_for_user(self, admin: "User", target: "User", client: ClientInfo) -> None:
        """Clear another user's MFA state without their credentials.

        The target is alerted and the audit entry names the administrator.
        """
        await self._clear(target)
        await self.audit.record(
            AuditAction.ADMIN_MFA_RESET,
            AuditStatus.SUCCESS,
            client=client,
            user_id=admin.id,
            tenant_id=admin.tenant_id,
            details={"target_user_id": target.id, "target_email": target.email},
        )
        await self.notifier.send_security_alert(
            target.email,
            target.name,
            "Two-factor authentication reset",
            "An administrator reset two-factor authentication on your account. "
            "You can enroll again from your account settings.",
        )

    async def _issue_backup_codes(self, user: "User") -> list[str]:
        codes = generate_backup_codes(settings.mfa_backup_code_count)
        await self.mfa_repo.replace_backup_codes(
            user.id,
            [hash_backup_code(code) for code in codes],
            utcnow(),
        )
        return codes

    async def _clear(self, user: "User") -> None:
        await self.mfa_repo.delete_all(user.id)
        user.mfa_enabled = False
        await self.user_repo.update(user)

    async def _reject(
        self,
        action: AuditAction,
        user: "User",
        client: ClientInfo,
        reason: str,
    ) -> None:
        await self.audit.record(
            action,
            AuditStatus.FAILURE,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
            details={"reason": reason},
        )
        await self.db.commit()


# Type alias for dependency injection
MFASvc = Annotated[MFAService, Depends(MFAService)]
