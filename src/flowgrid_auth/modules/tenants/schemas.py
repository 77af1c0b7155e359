"""Pydantic schemas for tenant endpoints."""

from datetime import datetime
from uuid import UUID

from flowgrid_auth.core.schemas import APIModel


class TenantResponse(APIModel):
    """Profile of the caller's tenant."""

    id: UUID
    name: str
    slug: str
    tier: str
    created_at: datetime
