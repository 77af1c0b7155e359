"""Tenant administration: user management and audit queries.

Every operation is scoped to the administrator's own tenant; a user ID
from another tenant is reported as not found.
"""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import Depends

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.core.audit import (
    AuditAction,
    AuditLogger,
    AuditLogRepository,
    AuditStatus,
    AuthAuditLog,
    ClientInfo,
)
from flowgrid_auth.core.errors import BadRequestError, NotFoundError
from flowgrid_auth.core.notifications import Notifier
from flowgrid_auth.modules.mfa.services import MFAService
from flowgrid_auth.modules.users.models import User
from flowgrid_auth.modules.users.repos import RefreshTokenRepository, UserRepository


class AdminService:
    """Service for tenant administrators."""

    def __init__(self, db: DBSession, audit: AuditLogger, notifier: Notifier) -> None:
        self.db = db
        self.audit = audit
        self.user_repo = UserRepository(db)
        self.token_repo = RefreshTokenRepository(db)
        self.audit_repo = AuditLogRepository(db)
        self.mfa = MFAService(db, audit, notifier)

    async def list_users(
        self,
        admin: User,
        page: int,
        page_size: int,
        search: str | None = None,
        role: str | None = None,
        is_active: bool | None = None,
    ) -> tuple[list[User], int]:
        """List users of the admin's tenant.

        Returns:
            Tuple of (users, total count)
        """
        return await self.user_repo.list_by_tenant(
            admin.tenant_id,
            page=page,
            page_size=page_size,
            search=search,
            role=role,
            is_active=is_active,
        )

    async def disable_user(
        self,
        admin: User,
        user_id: UUID,
        client: ClientInfo,
        reason: str | None = None,
    ) -> User:
        """Deactivate a user and revoke all of their refresh tokens.

        Raises:
            BadRequestError: If the admin targets their own account
            NotFoundError: If the user is not in the admin's tenant
        """
        if user_id == admin.id:
            raise BadRequestError(
                "Cannot disable your own account", error_code="cannot_disable_self"
            )

        target = await self._get_target(admin, user_id)
        target.is_active = False
        await self.user_repo.update(target)
        revoked = await self.token_repo.revoke_all_for_user(target.id, "account_disabled")

        await self.audit.record(
            AuditAction.USER_DISABLED,
            AuditStatus.SUCCESS,
            client=client,
            user_id=admin.id,
            tenant_id=admin.tenant_id,
            details={"target_user_id": target.id, "reason": reason, "sessions_revoked": revoked},
        )
        return target

    async def enable_user(self, admin: User, user_id: UUID, client: ClientInfo) -> User:
        """Reactivate a user.

        Raises:
            NotFoundError: If the user is not in the admin's tenant
        """
        target = await self._get_target(admin, user_id)
        target.is_active = True
        await self.user_repo.update(target)

        await self.audit.record(
            AuditAction.USER_ENABLED,
            AuditStatus.SUCCESS,
            client=client,
            user_id=admin.id,
            tenant_id=admin.tenant_id,
            details={"target_user_id": target.id},
        )
        return target

    async def reset_mfa(self, admin: User, user_id: UUID, client: ClientInfo) -> User:
        """Clear a user's MFA state on the admin's authority.

        Raises:
            NotFoundError: If the user is not in the admin's tenant
        """
        target = await self._get_target(admin, user_id)
        await self.mfa.reset_for_user(admin, target, client)
        return target

    async def list_audit(
        self,
        admin: User,
        page: int,
        page_size: int,
        user_id: UUID | None = None,
        action: str | None = None,
        status: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple[list[tuple[AuthAuditLog, str | None]], int]:
        """Query the audit log of the admin's tenant, newest first.

        Returns:
            Tuple of ((entry, user email) pairs, total count)
        """
        entries, total = await self.audit_repo.list_for_tenant(
            admin.tenant_id,
            user_id=user_id,
            action=action,
            status=status,
            start=start,
            end=end,
            page=page,
            page_size=page_size,
        )
        emails = await self.user_repo.emails_by_id(
            list({entry.user_id for entry in entries if entry.user_id})
        )
        return [(entry, emails.get(entry.user_id)) for entry in entries], total

    async def _get_target(self, admin: User, user_id: UUID) -> User:
        target = await self.user_repo.get_by_id(user_id, tenant_id=admin.tenant_id)
        if target is None:
            raise NotFoundError("User not found", resource="user", resource_id=str(user_id))
        return target


# Type alias for dependency injection
AdminSvc = Annotated[AdminService, Depends(AdminService)]
