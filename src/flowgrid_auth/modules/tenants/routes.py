"""Tenant API routes."""

from fastapi import APIRouter

from flowgrid_auth.core.auth.dependencies import CurrentUser
from flowgrid_auth.core.errors import NotFoundError
from flowgrid_auth.modules.tenants.repos import TenantRepo
from flowgrid_auth.modules.tenants.schemas import TenantResponse


router = APIRouter(prefix="/tenant", tags=["tenants"])


@router.get(
    "",
    response_model=TenantResponse,
    summary="Get current tenant",
    description="Returns the tenant of the authenticated user.",
)
async def get_tenant(
    current_user: CurrentUser,
    tenants: TenantRepo,
) -> TenantResponse:
    """Get the caller's tenant."""
    tenant = await tenants.get_by_id(current_user.tenant_id)
    if tenant is None:
        raise NotFoundError(
            "Tenant not found",
            resource="tenant",
            resource_id=str(current_user.tenant_id),
        )
    return TenantResponse.model_validate(tenant)
