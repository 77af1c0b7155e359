"""FastAPI dependencies for authentication.

This module provides FastAPI dependency injection functions for:
- Extracting and validating access tokens
- Getting the current authenticated user
- Requiring the admin role
"""

from typing import TYPE_CHECKING, Annotated, Any
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.core.auth.backend import ACCESS_TOKEN, decode_token
from flowgrid_auth.core.auth.schemas import TokenData
from flowgrid_auth.core.errors import ForbiddenError, UnauthorizedError


if TYPE_CHECKING:
    from flowgrid_auth.modules.users.models import User


# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_token_data(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> TokenData:
    """Extract and validate an access token from the Authorization header.

    Args:
        credentials: Bearer token credentials from the request

    Returns:
        Decoded token data

    Raises:
        UnauthorizedError: If the token is missing, invalid, expired or a refresh token
    """
    if not credentials:
        raise UnauthorizedError(
            "Missing authentication token",
            error_code="missing_token",
        )

    return decode_token(credentials.credentials, expected_type=ACCESS_TOKEN)


async def get_current_user(
    token_data: Annotated[TokenData, Depends(get_token_data)],
    db: DBSession,
) -> "User":
    """Get the currently authenticated user.

    A signed, unexpired token is not enough: the user must still exist in
    the token's tenant and be active.

    Args:
        token_data: Validated token data
        db: Database session

    Returns:
        The authenticated user

    Raises:
        UnauthorizedError: If the user no longer exists or is inactive
    """
    from flowgrid_auth.modules.users.repos import UserRepository  # noqa: PLC0415

    user = await UserRepository(db).get_by_id(token_data.user_id, tenant_id=token_data.tenant_id)

    if not user or not user.is_active:
        raise UnauthorizedError(
            "User not found or inactive",
            error_code="user_inactive",
        )

    return user


async def get_current_admin(
    user: Annotated[Any, Depends(get_current_user)],
) -> "User":
    """Get the current user, ensuring they hold the admin role.

    Raises:
        ForbiddenError: If the user is not an admin
    """
    if user.role != "admin":
        raise ForbiddenError(
            "Admin access required",
            error_code="admin_required",
        )
    return user


async def get_tenant_id(
    token_data: Annotated[TokenData, Depends(get_token_data)],
) -> UUID:
    """Get the current tenant ID from the token."""
    return token_data.tenant_id


# Type aliases for cleaner dependency injection
# Use Any for User type to avoid circular imports at runtime
CurrentUser = Annotated[Any, Depends(get_current_user)]
CurrentAdmin = Annotated[Any, Depends(get_current_admin)]
TenantId = Annotated[UUID, Depends(get_tenant_id)]
