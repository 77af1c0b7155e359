"""Invite-based onboarding.

An invite is scoped to (email, tenant, role) and consumed exactly once.
Accepting it creates an already-verified user and issues a session
directly, without a separate login.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Annotated, NoReturn
from uuid import UUID

from fastapi import Depends
from sqlalchemy.exc import IntegrityError

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.config import settings
from flowgrid_auth.core.audit import AuditAction, AuditLogger, AuditStatus, ClientInfo
from flowgrid_auth.core.auth.backend import (
    generate_secure_token,
    hash_password,
    hash_token,
    require_strong_password,
)
from flowgrid_auth.core.auth.service import AuthService, IssuedSession
from flowgrid_auth.core.constants import INVITE_TOKEN_BYTES
from flowgrid_auth.core.errors import ConflictError, NotFoundError, ValidationError
from flowgrid_auth.core.notifications import Notifier
from flowgrid_auth.core.utils.time import ensure_utc, utcnow
from flowgrid_auth.modules.invites.models import InviteToken
from flowgrid_auth.modules.invites.repos import InviteRepository
from flowgrid_auth.modules.tenants.models import Tenant
from flowgrid_auth.modules.tenants.repos import TenantRepository
from flowgrid_auth.modules.users.models import User, UserRole
from flowgrid_auth.modules.users.repos import UserRepository


@dataclass
class InvitePreview:
    """What an invitee sees before accepting."""

    email: str
    role: str
    tenant_name: str
    expires_at: datetime


class InviteService:
    """Service for sending, validating and accepting invites."""

    def __init__(self, db: DBSession, audit: AuditLogger, notifier: Notifier) -> None:
        self.db = db
        self.audit = audit
        self.notifier = notifier
        self.invite_repo = InviteRepository(db)
        self.user_repo = UserRepository(db)
        self.tenant_repo = TenantRepository(db)
        self.auth = AuthService(db, audit, notifier)

    async def send(
        self,
        inviter: User,
        email: str,
        role: UserRole,
        client: ClientInfo,
    ) -> InviteToken:
        """Create an invite in the inviter's tenant and email it.

        Args:
            inviter: The admin sending the invite
            email: Address to invite
            role: Role the new account receives
            client: Caller IP and user agent

        Returns:
            The stored invite

        Raises:
            ConflictError: If the user exists or an invite is already pending
        """
        email = email.lower()
        tenant_id = inviter.tenant_id
        inviter_id = inviter.id

        if await self.user_repo.get_by_email(email, tenant_id):
            await self._reject(
                client,
                {"reason": "user_exists", "invited_email": email},
                action=AuditAction.INVITE_SENT,
                user_id=inviter_id,
                tenant_id=tenant_id,
            )
            raise ConflictError("User with this email already exists", error_code="user_exists")

        if await self.invite_repo.get_pending(email, tenant_id):
            await self._reject_pending(client, email, inviter_id, tenant_id)

        await self.invite_repo.retire_expired(email, tenant_id)

        token = generate_secure_token(INVITE_TOKEN_BYTES)
        try:
            invite = await self.invite_repo.create(
                InviteToken(
                    tenant_id=tenant_id,
                    token_hash=hash_token(token),
                    email=email,
                    role=str(role),
                    invited_by=inviter_id,
                    expires_at=utcnow() + timedelta(hours=settings.invite_token_expire_hours),
                )
            )
        except IntegrityError:
            # A concurrent send for the same address won the pending slot
            await self.db.rollback()
            await self._reject_pending(client, email, inviter_id, tenant_id)

        tenant = await self.tenant_repo.get_by_id(tenant_id)
        await self.notifier.send_invite(
            email,
            inviter.name or "An admin",
            tenant.name if tenant else "your organization",
            invite.role,
            token,
            invite.expires_at,
        )

        await self.audit.record(
            AuditAction.INVITE_SENT,
            AuditStatus.SUCCESS,
            client=client,
            user_id=inviter.id,
            tenant_id=tenant_id,
            details={"invited_email": email, "role": invite.role},
        )
        return invite

    async def preview(self, token: str) -> InvitePreview:
        """Describe a still-valid invite.

        Raises:
            NotFoundError: If the invite is unknown, used or expired
        """
        try:
            invite, tenant = await self._get_valid(token)
        except NotFoundError as exc:
            exc.details["valid"] = False
            raise
        return InvitePreview(
            email=invite.email,
            role=invite.role,
            tenant_name=tenant.name,
            expires_at=ensure_utc(invite.expires_at),
        )

    async def accept(
        self,
        token: str,
        name: str,
        password: str,
        client: ClientInfo,
    ) -> IssuedSession:
        """Consume an invite, create the account and issue a session.

        Args:
            token: Invite token from the email link
            name: Display name of the new user
            password: Chosen password, checked against the strength policy
            client: Caller IP and user agent

        Returns:
            A session for the new user

        Raises:
            ValidationError: If the password is too weak
            NotFoundError: If the invite is unknown, used or expired
            ConflictError: If an account already exists for the email
        """
        try:
            require_strong_password(password)
        except ValidationError:
            await self._reject(client, {"reason": "weak_password"})
            raise

        try:
            invite, tenant = await self._get_valid(token)
        except NotFoundError:
            await self._reject(client, {"reason": "invalid_invite"})
            raise

        if await self.user_repo.get_by_email(invite.email, invite.tenant_id):
            await self._reject(
                client,
                {"reason": "user_exists", "email": invite.email},
                tenant_id=invite.tenant_id,
            )
            raise ConflictError("Account already exists for this email", error_code="user_exists")

        if not await self.invite_repo.mark_used(invite.id):
            await self._reject(
                client, {"reason": "invite_already_used"}, tenant_id=invite.tenant_id
            )
            raise NotFoundError("Invalid or expired invitation", error_code="invalid_invite")

        now = utcnow()
        user = await self.user_repo.create(
            User(
                tenant_id=invite.tenant_id,
                email=invite.email,
                password_hash=hash_password(password),
                name=name,
                role=invite.role,
                email_verified=True,
                password_changed_at=now,
            )
        )

        session = await self.auth.issue_session(user, client)

        await self.audit.record(
            AuditAction.ACCOUNT_CREATED,
            AuditStatus.SUCCESS,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
            details={"invited_by": invite.invited_by, "role": user.role},
        )
        await self.notifier.send_welcome(user.email, user.name, tenant.name)
        return session

    async def _get_valid(self, token: str) -> tuple[InviteToken, Tenant]:
        invite = await self.invite_repo.get_valid_by_hash(hash_token(token))
        tenant = await self.tenant_repo.get_by_id(invite.tenant_id) if invite else None
        if invite is None or tenant is None:
            raise NotFoundError("Invalid or expired invitation", error_code="invalid_invite")
        return invite, tenant

    async def _reject(
        self,
        client: ClientInfo,
        details: dict[str, object],
        *,
        action: AuditAction = AuditAction.ACCOUNT_CREATED,
        user_id: UUID | None = None,
        tenant_id: UUID | None = None,
    ) -> None:
        await self.audit.record(
            action,
            AuditStatus.FAILURE,
            client=client,
            user_id=user_id,
            tenant_id=tenant_id,
            details=details,
        )
        await self.db.commit()

    async def _reject_pending(
        self,
        client: ClientInfo,
        email: str,
        inviter_id: UUID,
        tenant_id: UUID,
    ) -> NoReturn:
        await self._reject(
            client,
            {"reason": "invite_pending", "invited_email": email},
            action=AuditAction.INVITE_SENT,
            user_id=inviter_id,
            tenant_id=tenant_id,
        )
        raise ConflictError(
            "Pending invitation already exists for this email",
            error_code="invite_pending",
        )


# Type alias for dependency injection
InviteSvc = Annotated[InviteService, Depends(InviteService)]
