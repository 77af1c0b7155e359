"""Authentication API routes.

Provides endpoints for:
- Login (with the MFA-required intermediate step)
- Logout and token refresh
- Out-of-band access token verification
- The current user's profile
"""

from typing import Annotated

from fastapi import APIRouter, Cookie, Depends, Response
from fastapi.security import HTTPAuthorizationCredentials

from flowgrid_auth.config import settings
from flowgrid_auth.core.audit import Client
from flowgrid_auth.core.auth.dependencies import CurrentUser, bearer_scheme
from flowgrid_auth.core.auth.schemas import (
    AccessTokenResponse,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MeResponse,
    RefreshRequest,
    TenantSummary,
    UserSummary,
    VerifiedUser,
    VerifyRequest,
    VerifyResponse,
)
from flowgrid_auth.core.auth.service import AuthSvc, IssuedSession
from flowgrid_auth.core.constants import REFRESH_COOKIE_NAME
from flowgrid_auth.core.errors import BadRequestError
from flowgrid_auth.core.rate_limit import login_rate_limit
from flowgrid_auth.core.schemas import MessageResponse
from flowgrid_auth.modules.tenants.repos import TenantRepo


router = APIRouter(tags=["auth"])

RefreshCookie = Annotated[str | None, Cookie(alias=REFRESH_COOKIE_NAME)]


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    """Deliver the refresh token as an HTTP-only, same-site-strict cookie."""
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def clear_refresh_cookie(response: Response) -> None:
    """Remove the refresh token cookie."""
    response.delete_cookie(
        key=REFRESH_COOKIE_NAME,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def session_response(session: IssuedSession, message: str | None = None) -> LoginResponse:
    """Build the response body for a freshly issued session."""
    return LoginResponse(
        message=message,
        access_token=session.tokens.access_token,
        refresh_token=session.tokens.refresh_token,
        token_type=session.tokens.token_type,
        expires_in=session.tokens.expires_in,
        user=UserSummary.model_validate(session.user),
        tenant=TenantSummary.model_validate(session.tenant),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(login_rate_limit)],
    summary="Login with email and password",
    description=(
        "Authenticate with email and password. When MFA is enabled and no code is "
        "sent, responds with mfaRequired and no tokens."
    ),
)
async def login(
    data: LoginRequest,
    service: AuthSvc,
    client: Client,
    response: Response,
) -> LoginResponse:
    """Login with email, password and optional MFA code."""
    result = await service.login(
        email=data.email,
        password=data.password,
        client=client,
        mfa_code=data.mfa_code,
        tenant_slug=data.tenant,
    )

    if result.session is None:
        return LoginResponse(mfa_required=True, message="MFA code required")

    set_refresh_cookie(response, result.session.tokens.refresh_token)
    return session_response(result.session)


@router.post(
    "/refresh",
    response_model=AccessTokenResponse,
    summary="Refresh access token",
    description="Exchange a refresh token (cookie or body) for a new access token.",
)
async def refresh_token(
    service: AuthSvc,
    client: Client,
    refresh_cookie: RefreshCookie = None,
    data: RefreshRequest | None = None,
) -> AccessTokenResponse:
    """Mint a new access token."""
    token = refresh_cookie or (data.refresh_token if data else None)
    if not token:
        raise BadRequestError("Refresh token required", error_code="missing_refresh_token")

    access_token, expires_in = await service.refresh(token, client)
    return AccessTokenResponse(access_token=access_token, expires_in=expires_in)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Revoke the current refresh token, or every session with revokeAll.",
)
async def logout(
    current_user: CurrentUser,
    service: AuthSvc,
    client: Client,
    response: Response,
    refresh_cookie: RefreshCookie = None,
    data: LogoutRequest | None = None,
) -> MessageResponse:
    """Logout by revoking refresh tokens."""
    data = data or LogoutRequest()
    await service.logout(
        current_user,
        client,
        refresh_token=refresh_cookie or data.refresh_token,
        revoke_all=data.revoke_all,
    )
    clear_refresh_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/verify",
    response_model=VerifyResponse,
    summary="Verify an access token",
    description="Validate a token from the Authorization header or the request body.",
)
async def verify_token(
    service: AuthSvc,
    client: Client,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    data: VerifyRequest | None = None,
) -> VerifyResponse:
    """Check a token on behalf of another service."""
    token = credentials.credentials if credentials else (data.token if data else None)
    if not token:
        raise BadRequestError(
            "Token is required",
            error_code="missing_token",
            details={"valid": False},
        )

    token_data, user = await service.verify(token, client)
    return VerifyResponse(
        valid=True,
        user=VerifiedUser(
            id=token_data.user_id,
            email=token_data.email,
            tenant_id=token_data.tenant_id,
            role=token_data.role,
            mfa_enabled=user.mfa_enabled,
        ),
    )


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current user",
    description="Returns the currently authenticated user's profile.",
)
async def get_me(
    current_user: CurrentUser,
    tenants: TenantRepo,
) -> MeResponse:
    """Get current user profile."""
    tenant = await tenants.get_by_id(current_user.tenant_id)
    return MeResponse(
        id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        role=current_user.role,
        mfa_enabled=current_user.mfa_enabled,
        email_verified=current_user.email_verified,
        last_login_at=current_user.last_login_at,
        created_at=current_user.created_at,
        tenant=TenantSummary.model_validate(tenant),
    )
