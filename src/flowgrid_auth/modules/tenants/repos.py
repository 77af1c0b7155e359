"""Tenant repository."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.modules.tenants.models import Tenant


class TenantRepository:
    """Repository for Tenant lookups."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def get_by_id(self, tenant_id: UUID) -> Tenant | None:
        """Get a tenant by ID."""
        return await self.session.get(Tenant, tenant_id)


TenantRepo = Annotated[TenantRepository, Depends(TenantRepository)]
