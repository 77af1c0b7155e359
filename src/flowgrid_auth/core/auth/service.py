"""Authentication service for login, token refresh and session management.

Login has three outcomes: a full session, an "MFA required" intermediate
result that carries no tokens, or an ``UnauthorizedError``. Every branch
writes exactly one audit entry. Failure branches commit that entry (and the
failed-login counter) before raising, because the request's unit of work is
rolled back on exceptions.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.config import settings
from flowgrid_auth.core.audit import AuditAction, AuditLogger, AuditStatus, ClientInfo
from flowgrid_auth.core.auth.backend import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    dummy_verify_password,
    get_token_expiration,
    hash_token,
    verify_password,
)
from flowgrid_auth.core.auth.schemas import TokenData, TokenPair
from flowgrid_auth.core.errors import UnauthorizedError
from flowgrid_auth.core.notifications import Notifier
from flowgrid_auth.core.utils.time import ensure_utc, utcnow
from flowgrid_auth.modules.mfa.services import MFAService
from flowgrid_auth.modules.tenants.models import Tenant
from flowgrid_auth.modules.tenants.repos import TenantRepository
from flowgrid_auth.modules.users.models import RefreshToken, User
from flowgrid_auth.modules.users.repos import RefreshTokenRepository, UserRepository


log = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass
class IssuedSession:
    """Tokens minted for a user together with the identity they assert."""

    user: User
    tenant: Tenant
    tokens: TokenPair


@dataclass
class LoginResult:
    """Outcome of a login that did not fail.

    ``session`` is None exactly when ``mfa_required`` is True.
    """

    mfa_required: bool
    session: IssuedSession | None = None


class AuthService:
    """Service for authentication operations.

    Handles login, token refresh, logout and token verification.
    """

    def __init__(self, db: DBSession, audit: AuditLogger, notifier: Notifier) -> None:
        self.db = db
        self.audit = audit
        self.user_repo = UserRepository(db)
        self.token_repo = RefreshTokenRepository(db)
        self.tenant_repo = TenantRepository(db)
        self.mfa = MFAService(db, audit, notifier)

    async def login(
        self,
        email: str,
        password: str,
        client: ClientInfo,
        mfa_code: str | None = None,
        tenant_slug: str | None = None,
    ) -> LoginResult:
        """Authenticate a user with email, password and optionally an MFA code.

        Args:
            email: Email typed by the caller
            password: Plain text password
            client: Caller IP and user agent
            mfa_code: TOTP or backup code, when MFA is enabled
            tenant_slug: Tenant to log into, needed for emails used in several tenants

        Returns:
            LoginResult with a session, or with ``mfa_required`` set

        Raises:
            UnauthorizedError: For unknown email, wrong password, disabled or
                locked account, or a wrong MFA code
        """
        candidates = await self.user_repo.find_by_email(email, tenant_slug)
        if len(candidates) != 1:
            # Same cost and response as a wrong password
            dummy_verify_password()
            reason = "user_not_found" if not candidates else "ambiguous_tenant"
            await self._fail(
                AuditAction.LOGIN_ATTEMPT,
                AuditStatus.FAILURE,
                client,
                details={"email": email.lower(), "reason": reason},
            )
            raise UnauthorizedError(INVALID_CREDENTIALS, error_code="invalid_credentials")

        user = candidates[0]

        if not user.is_active:
            await self._fail(
                AuditAction.LOGIN_ATTEMPT,
                AuditStatus.BLOCKED,
                client,
                user=user,
                details={"reason": "account_disabled"},
            )
            raise UnauthorizedError("Account is disabled", error_code="account_disabled")

        now = utcnow()
        locked_until = ensure_utc(user.locked_until)
        if locked_until and locked_until > now:
            await self._fail(
                AuditAction.LOGIN_ATTEMPT,
                AuditStatus.BLOCKED,
                client,
                user=user,
                details={"reason": "account_locked", "locked_until": locked_until},
            )
            raise UnauthorizedError(
                "Account is temporarily locked. Please try again later.",
                error_code="account_locked",
            )

        if not verify_password(password, user.password_hash):
            attempts, locked_until = await self.user_repo.register_failed_login(
                user,
                threshold=settings.lockout_threshold,
                lock_until=now + timedelta(minutes=settings.lockout_minutes),
            )
            details: dict[str, object] = {"reason": "invalid_password", "attempts": attempts}
            if locked_until and locked_until > now:
                details["locked_until"] = locked_until
                log.warning("account_locked", user_id=str(user.id), attempts=attempts)
            await self._fail(
                AuditAction.LOGIN_ATTEMPT,
                AuditStatus.FAILURE,
                client,
                user=user,
                details=details,
            )
            raise UnauthorizedError(INVALID_CREDENTIALS, error_code="invalid_credentials")

        mfa_method: str | None = None
        if user.mfa_enabled:
            if not mfa_code:
                await self.audit.record(
                    AuditAction.MFA_CHALLENGE,
                    AuditStatus.SUCCESS,
                    client=client,
                    user_id=user.id,
                    tenant_id=user.tenant_id,
                )
                return LoginResult(mfa_required=True)

            mfa_method = await self.mfa.verify_login_code(user, mfa_code)
            if mfa_method is None:
                await self._fail(AuditAction.MFA_VERIFY, AuditStatus.FAILURE, client, user=user)
                raise UnauthorizedError("Invalid MFA code", error_code="invalid_mfa_code")

        await self.user_repo.record_successful_login(user)
        session = await self.issue_session(user, client)

        await self.audit.record(
            AuditAction.LOGIN,
            AuditStatus.SUCCESS,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
            details={"mfa_method": mfa_method} if mfa_method else None,
        )
        return LoginResult(mfa_required=False, session=session)

    async def issue_session(self, user: User, client: ClientInfo) -> IssuedSession:
        """Mint an access/refresh pair and record the refresh token hash.

        Args:
            user: The authenticated user
            client: Caller context stored with the refresh record

        Returns:
            The issued session
        """
        access_token = create_access_token(user.id, user.tenant_id, user.email, user.role)
        refresh_token = create_refresh_token(user.id, user.tenant_id, user.email, user.role)

        await self.token_repo.create(
            RefreshToken(
                user_id=user.id,
                token_hash=hash_token(refresh_token),
                expires_at=get_token_expiration(),
                ip_address=client.ip_address,
                device_info={"user_agent": client.user_agent},
            )
        )

        tenant = await self.tenant_repo.get_by_id(user.tenant_id)
        if tenant is None:
            raise UnauthorizedError("User not found or inactive", error_code="user_inactive")

        return IssuedSession(
            user=user,
            tenant=tenant,
            tokens=TokenPair(
                access_token=access_token,
                refresh_token=refresh_token,
                expires_in=settings.access_token_expire_minutes * 60,
            ),
        )

    async def refresh(self, refresh_token: str, client: ClientInfo) -> tuple[str, int]:
        """Mint a new access token from a refresh token.

        The refresh token is not rotated; it stays valid until it expires
        or is revoked.

        Args:
            refresh_token: The refresh JWT presented by the caller
            client: Caller IP and user agent

        Returns:
            Tuple of (access token, lifetime in seconds)

        Raises:
            UnauthorizedError: If the token is invalid, revoked, expired or
                belongs to an inactive user
        """
        try:
            token_data = decode_token(refresh_token, expected_type=REFRESH_TOKEN)
        except UnauthorizedError as exc:
            log.info("refresh_token_rejected", reason=exc.error_code)
            await self._fail(
                AuditAction.TOKEN_REFRESH,
                AuditStatus.FAILURE,
                client,
                details={"reason": exc.error_code},
            )
            raise UnauthorizedError(
                "Invalid refresh token",
                error_code="invalid_refresh_token",
            ) from exc

        stored = await self.token_repo.get_active_by_hash(hash_token(refresh_token))
        if stored is None or stored.user_id != token_data.user_id:
            await self._fail(
                AuditAction.TOKEN_REFRESH,
                AuditStatus.FAILURE,
                client,
                details={"reason": "revoked_or_unknown"},
                user_id=token_data.user_id,
                tenant_id=token_data.tenant_id,
            )
            raise UnauthorizedError(
                "Refresh token expired or revoked",
                error_code="refresh_token_revoked",
            )

        user = await self.user_repo.get_by_id(stored.user_id, tenant_id=token_data.tenant_id)
        if user is None or not user.is_active:
            await self._fail(
                AuditAction.TOKEN_REFRESH,
                AuditStatus.BLOCKED,
                client,
                details={"reason": "user_inactive"},
                user_id=token_data.user_id,
                tenant_id=token_data.tenant_id,
            )
            raise UnauthorizedError("User account is disabled", error_code="user_inactive")

        access_token = create_access_token(user.id, user.tenant_id, user.email, user.role)
        await self.audit.record(
            AuditAction.TOKEN_REFRESH,
            AuditStatus.SUCCESS,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
        )
        return access_token, settings.access_token_expire_minutes * 60

    async def logout(
        self,
        user: User,
        client: ClientInfo,
        refresh_token: str | None = None,
        revoke_all: bool = False,
    ) -> int:
        """Revoke the presented refresh token, or all of the user's tokens.

        Args:
            user: The authenticated user
            client: Caller IP and user agent
            refresh_token: Token of the current session, if known
            revoke_all: Sign out of every session

        Returns:
            Number of refresh tokens revoked
        """
        revoked = 0
        if refresh_token and await self.token_repo.revoke_by_hash(
            hash_token(refresh_token), user.id, "logout"
        ):
            revoked += 1
        if revoke_all:
            revoked += await self.token_repo.revoke_all_for_user(user.id, "logout_all")

        await self.audit.record(
            AuditAction.LOGOUT,
            AuditStatus.SUCCESS,
            client=client,
            user_id=user.id,
            tenant_id=user.tenant_id,
            details={"revoke_all": revoke_all, "revoked": revoked},
        )
        return revoked

    async def verify(self, token: str, client: ClientInfo) -> tuple[TokenData, User]:
        """Validate an access token on behalf of another service.

        Rejections are audited; accepted tokens are not, since callers
        verify on every request they serve.

        Args:
            token: The access JWT
            client: Caller IP and user agent

        Returns:
            Tuple of (decoded claims, live user)

        Raises:
            UnauthorizedError: With ``valid: false`` in the details
        """
        try:
            token_data = decode_token(token, expected_type=ACCESS_TOKEN)
        except UnauthorizedError as exc:
            await self._fail(
                AuditAction.TOKEN_VERIFY,
                AuditStatus.FAILURE,
                client,
                details={"reason": exc.error_code},
            )
            raise UnauthorizedError(
                "Token expired" if exc.error_code == "token_expired" else "Invalid token",
                error_code=exc.error_code,
                details={"valid": False},
            ) from exc

        user = await self.user_repo.get_by_id(token_data.user_id, tenant_id=token_data.tenant_id)
        if user is None or not user.is_active:
            await self._fail(
                AuditAction.TOKEN_VERIFY,
                AuditStatus.BLOCKED,
                client,
                details={"reason": "user_inactive"},
                user_id=token_data.user_id,
                tenant_id=token_data.tenant_id,
            )
            raise UnauthorizedError(
                "User not found or inactive",
                error_code="user_inactive",
                details={"valid": False},
            )
        return token_data, user

    async def _fail(
        self,
        action: AuditAction,
        status: AuditStatus,
        client: ClientInfo,
        *,
        user: User | None = None,
        user_id: UUID | None = None,
        tenant_id: UUID | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        await self.audit.record(
            action,
            status,
            client=client,
            user_id=user.id if user else user_id,
            tenant_id=user.tenant_id if user else tenant_id,
            details=details,
        )
        await self.db.commit()


# Type alias for dependency injection
AuthSvc = Annotated[AuthService, Depends(AuthService)]
