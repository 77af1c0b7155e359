"""Read access to the audit log."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import func, select

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.core.audit.models import AuthAuditLog


class AuditLogRepository:
    """Tenant-scoped queries over audit entries."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def list_for_tenant(
        self,
        tenant_id: UUID,
        *,
        user_id: UUID | None = None,
        action: str | None = None,
        status: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[AuthAuditLog], int]:
        """List audit entries of a tenant, newest first.

        Args:
            tenant_id: The tenant's UUID
            user_id: Only entries about this user
            action: Only entries with this action
            status: Only entries with this outcome
            start: Only entries at or after this time
            end: Only entries at or before this time
            page: Page number (1-indexed)
            page_size: Number of items per page

        Returns:
            Tuple of (entries, total count)
        """
        conditions = [AuthAuditLog.tenant_id == tenant_id]
        if user_id:
            conditions.append(AuthAuditLog.user_id == user_id)
        if action:
            conditions.append(AuthAuditLog.action == action)
        if status:
            conditions.append(AuthAuditLog.status == status)
        if start:
            conditions.append(AuthAuditLog.created_at >= start)
        if end:
            conditions.append(AuthAuditLog.created_at <= end)

        count_stmt = select(func.count()).select_from(AuthAuditLog).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            select(AuthAuditLog)
            .where(*conditions)
            .order_by(AuthAuditLog.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total


AuditLogRepo = Annotated[AuditLogRepository, Depends(AuditLogRepository)]
