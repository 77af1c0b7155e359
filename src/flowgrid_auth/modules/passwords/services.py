"""Password reset and change.

Both paths revoke every outstanding refresh token of the user, so
sessions opened before the change have to log in again. Reset never logs
the caller in.
"""

from datetime import timedelta
from typing import Annotated

from fastapi import BackgroundTasks, Depends

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.config import settings
from flowgrid_auth.core.audit import AuditAction, AuditLogger, AuditStatus, ClientInfo
from flowgrid_auth.core.auth.backend import (
    generate_secure_token,
    hash_password,
    hash_token,
    require_strong_password,
    verify_password,
)
from flowgrid_auth.core.constants import RESET_TOKEN_BYTES
from flowgrid_auth.core.errors import NotFoundError, UnauthorizedError, ValidationError
from flowgrid_auth.core.notifications import Notifier
from flowgrid_auth.core.utils.time import utcnow
from flowgrid_auth.modules.passwords.models import PasswordResetToken
from flowgrid_auth.modules.passwords.repos import PasswordResetRepository
from flowgrid_auth.modules.users.models import User
from flowgrid_auth.modules.users.repos import RefreshTokenRepository, UserRepository


FORGOT_PASSWORD_MESSAGE = (
    "If an account exists with this email, you will receive a password reset link"
)


class PasswordService:
    """Service for the password reset flow and authenticated changes."""

    def __init__(self, db: DBSession, audit: AuditLogger, notifier: Notifier) -> None:
        self.db = db
        self.audit = audit
        self.notifier = notifier
        self.reset_repo = PasswordResetRepository(db)
        self.user_repo = UserRepository(db)
        self.token_repo = RefreshTokenRepository(db)

    async def request_reset(
        self,
        email: str,
        client: ClientInfo,
        background_tasks: BackgroundTasks,
        tenant_slug: str | None = None,
    ) -> None:
        """Issue a reset token and email it, if the email names one active account.

        The caller always gets the same answer, whether or not an account
        matched. The email goes out after the response so its latency does
        not reveal a match.

        Args:
            email: Email typed by the caller
            client: Caller IP and user agent
            background_tasks: Runs the email delivery after the response
            tenant_slug: Tenant to reset in, for emails used in several tenants
        """
        candidates = [
            user
            for user in await self.user_repo.find_by_email(email, tenant_slug)
            if user.is_active
        ]
        if len(candidates) != 1:
            await self.audit.record(
                AuditAction.PASSWORD_RESET_REQUEST,
                AuditStatus.FAILURE,
                client=client,
                details={
                    "email": email.lower(),
                    "reason": "user_not_found" if not candidates else "ambiguous_tenant",
                },
            )
            return

        user = candidates[0]
        await self.reset_repo.invalidate_outstanding(user.id)

        token = generate_secure_token(RESET_TOKEN_BYTES)
        await self.reset_repo.create(
            PasswordResetToken(
                user_id=user.id,
                token_hash=hash_token(token),
                expires_at=utcnow() + timedelta(minutes=settings.password_reset_expire_minutes),
                ip_address=client.ip_address,
            )
        )

        background_tasks.add_task(self.notifier.send_password_reset, user.email, user.name, token)
        await self.audit.record(
            AuditAction.PASSWORD_RESET_REQUEST,
            AuditStatus.SUCCESS,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
        )

    async def reset(self, token: str, password: str, client: ClientInfo) -> None:
        """Set a new password from a reset token.

        Args:
            token: Reset token from the email link
            password: New password, checked against the strength policy
            client: Caller IP and user agent

        Raises:
            ValidationError: If the password is too weak
            NotFoundError: If the token is unknown, used or expired, or its
                account has been disabled
        """
        try:
            require_strong_password(password)
        except ValidationError:
            await self._fail(AuditAction.PASSWORD_RESET, client, {"reason": "weak_password"})
            raise

        reset_token = await self.reset_repo.get_valid_by_hash(hash_token(token))
        user = await self.user_repo.get_by_id(reset_token.user_id) if reset_token else None
        if reset_token is not None and user is not None and not user.is_active:
            await self._fail(
                AuditAction.PASSWORD_RESET,
                client,
                {"reason": "account_disabled"},
                user=user,
                status=AuditStatus.BLOCKED,
            )
            raise NotFoundError("Invalid or expired reset token", error_code="invalid_reset_token")

        if (
            reset_token is None
            or user is None
            or not await self.reset_repo.mark_used(reset_token.id)
        ):
            await self._fail(AuditAction.PASSWORD_RESET, client, {"reason": "invalid_reset_token"})
            raise NotFoundError("Invalid or expired reset token", error_code="invalid_reset_token")

        revoked = await self._set_password(user, password, "password_reset")

        await self.audit.record(
            AuditAction.PASSWORD_RESET,
            AuditStatus.SUCCESS,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
            details={"sessions_revoked": revoked},
        )
        await self.notifier.send_security_alert(
            user.email,
            user.name,
            "Password reset",
            f"Your password was reset from {client.ip_address or 'an unknown address'}.",
        )

    async def change(
        self,
        user: User,
        current_password: str,
        new_password: str,
        client: ClientInfo,
    ) -> None:
        """Change the password of a logged-in user.

        Raises:
            ValidationError: If the new password is too weak
            UnauthorizedError: If the current password is wrong
        """
        try:
            require_strong_password(new_password)
        except ValidationError:
            await self._fail(
                AuditAction.PASSWORD_CHANGE, client, {"reason": "weak_password"}, user=user
            )
            raise

        if not verify_password(current_password, user.password_hash):
            await self._fail(
                AuditAction.PASSWORD_CHANGE,
                client,
                {"reason": "invalid_current_password"},
                user=user,
            )
            raise UnauthorizedError(
                "Current password is incorrect",
                error_code="invalid_current_password",
            )

        revoked = await self._set_password(user, new_password, "password_change")

        await self.audit.record(
            AuditAction.PASSWORD_CHANGE,
            AuditStatus.SUCCESS,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
            details={"sessions_revoked": revoked},
        )
        await self.notifier.send_security_alert(
            user.email,
            user.name,
            "Password changed",
            "Your password was changed. Other sessions have been signed out.",
        )

    async def _set_password(self, user: User, password: str, reason: str) -> int:
        user.password_hash = hash_password(password)
        user.password_changed_at = utcnow()
        await self.user_repo.update(user)
        return await self.token_repo.revoke_all_for_user(user.id, reason)

    async def _fail(
        self,
        action: AuditAction,
        client: ClientInfo,
        details: dict[str, object],
        *,
        user: User | None = None,
        status: AuditStatus = AuditStatus.FAILURE,
    ) -> None:
        await self.audit.record(
            action,
            status,
            client=client,
            user_id=user.id if user else None,
            tenant_id=user.tenant_id if user else None,
            details=details,
        )
        await self.db.commit()


# Type alias for dependency injection
PasswordSvc = Annotated[PasswordService, Depends(PasswordService)]
