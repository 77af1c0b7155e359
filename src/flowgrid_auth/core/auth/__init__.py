"""Authentication module for JWT, password and session handling."""

from flowgrid_auth.core.auth.backend import (
    check_password_strength,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    hash_token,
    verify_password,
)
from flowgrid_auth.core.auth.dependencies import (
    CurrentAdmin,
    CurrentUser,
    TenantId,
    get_current_admin,
    get_current_user,
    get_tenant_id,
)
from flowgrid_auth.core.auth.middleware import RequestIdMiddleware, TenantContextMiddleware
from flowgrid_auth.core.auth.schemas import TokenData, TokenPair


__all__ = [
    # Dependencies
    "CurrentAdmin",
    "CurrentUser",
    # Middleware
    "RequestIdMiddleware",
    "TenantContextMiddleware",
    "TenantId",
    # Schemas
    "TokenData",
    "TokenPair",
    # Password utilities
    "check_password_strength",
    # Token utilities
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "get_current_admin",
    "get_current_user",
    "get_tenant_id",
    "hash_password",
    "hash_token",
    "verify_password",
]
