"""User and refresh-token repositories.

``UserRepository`` is the only writer of password hashes and lockout
counters. ``RefreshTokenRepository`` is the refresh-token ledger.
"""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import case, func, literal, or_, select, update
from sqlalchemy.orm.attributes import set_committed_value

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.core.utils.time import ensure_utc, utcnow
from flowgrid_auth.modules.tenants.models import Tenant
from flowgrid_auth.modules.users.models import RefreshToken, User


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, user: User) -> User:
        """Create a new user.

        Args:
            user: User instance to create

        Returns:
            The created user with ID populated
        """
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def get_by_id(self, user_id: UUID, tenant_id: UUID | None = None) -> User | None:
        """Get a user by ID.

        Args:
            user_id: The user's UUID
            tenant_id: Optional tenant ID for scoping

        Returns:
            User if found, None otherwise
        """
        stmt = select(User).where(User.id == user_id)
        if tenant_id:
            stmt = stmt.where(User.tenant_id == tenant_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str, tenant_id: UUID) -> User | None:
        """Get a user by email within a tenant.

        Args:
            email: The user's email (any case)
            tenant_id: The tenant's UUID

        Returns:
            User if found, None otherwise
        """
        stmt = select(User).where(
            User.email == email.lower(),
            User.tenant_id == tenant_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str, tenant_slug: str | None = None) -> list[User]:
        """Find the accounts an email could refer to at login.

        Args:
            email: The email typed by the caller (any case)
            tenant_slug: Restrict the search to this tenant

        Returns:
            Matching users, possibly from several tenants
        """
        stmt = select(User).where(User.email == email.lower())
        if tenant_slug:
            stmt = stmt.join(Tenant, Tenant.id == User.tenant_id).where(
                Tenant.slug == tenant_slug.lower()
            )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def register_failed_login(
        self,
        user: User,
        threshold: int,
        lock_until: datetime,
    ) -> tuple[int, datetime | None]:
        """Count a failed password check in a single UPDATE statement.

        The counter is incremented in SQL and ``locked_until`` is set in the
        same statement once the incremented value reaches ``threshold``, so
        concurrent failures cannot skip the lockout.

        Args:
            user: The user who failed to authenticate
            threshold: Attempts that trigger a lockout
            lock_until: Lockout expiry to apply when the threshold is reached

        Returns:
            Tuple of (attempt count, lockout expiry or None)
        """
        attempts = User.failed_login_attempts + 1
        stmt = (
            update(User)
            .where(User.id == user.id)
            .values(
                failed_login_attempts=attempts,
                locked_until=case(
                    (attempts >= threshold, literal(lock_until, User.locked_until.type)),
                    else_=User.locked_until,
                ),
            )
            .returning(User.failed_login_attempts, User.locked_until)
            .execution_options(synchronize_session=False)
        )
        row = (await self.session.execute(stmt)).one()
        locked_until = ensure_utc(row.locked_until)

        set_committed_value(user, "failed_login_attempts", row.failed_login_attempts)
        set_committed_value(user, "locked_until", locked_until)
        return row.failed_login_attempts, locked_until

    async def record_successful_login(self, user: User) -> None:
        """Clear the lockout state and stamp the login time."""
        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login_at = utcnow()
        await self.session.flush()

    async def list_by_tenant(
        self,
        tenant_id: UUID,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
        role: str | None = None,
        is_active: bool | None = None,
    ) -> tuple[list[User], int]:
        """List users for a tenant with filters and pagination.

        Args:
            tenant_id: The tenant's UUID
            page: Page number (1-indexed)
            page_size: Number of items per page
            search: Case-insensitive match on email or name
            role: Only users with this role
            is_active: Only active or only disabled users

        Returns:
            Tuple of (users list, total count)
        """
        conditions = [User.tenant_id == tenant_id]
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(
                or_(func.lower(User.email).like(pattern), func.lower(User.name).like(pattern))
            )
        if role:
            conditions.append(User.role == role)
        if is_active is not None:
            conditions.append(User.is_active == is_active)

        count_stmt = select(func.count()).select_from(User).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def emails_by_id(self, user_ids: list[UUID]) -> dict[UUID, str]:
        """Map user IDs to emails for display next to audit entries."""
        if not user_ids:
            return {}
        result = await self.session.execute(
            select(User.id, User.email).where(User.id.in_(user_ids))
        )
        return {row.id: row.email for row in result}

    async def update(self, user: User) -> User:
        """Flush pending changes to a user.

        Args:
            user: User instance with updated fields

        Returns:
            The updated user
        """
        await self.session.flush()
        return user


class RefreshTokenRepository:
    """The refresh-token ledger.

    Tokens are looked up by SHA-256 hash; the cleartext never reaches
    the database.
    """

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, token: RefreshToken) -> RefreshToken:
        """Persist a newly issued refresh token record.

        Args:
            token: RefreshToken instance to create

        Returns:
            The created token
        """
        self.session.add(token)
        await self.session.flush()
        return token

    async def get_active_by_hash(self, token_hash: str) -> RefreshToken | None:
        """Get a refresh token that is neither revoked nor expired.

        Args:
            token_hash: SHA-256 hash of the token

        Returns:
            RefreshToken if usable, None otherwise
        """
        stmt = select(RefreshToken).where(
            RefreshToken.token_hash == token_hash,
            RefreshToken.revoked == False,  # noqa: E712
            RefreshToken.expires_at > utcnow(),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def revoke_by_hash(self, token_hash: str, user_id: UUID, reason: str) -> bool:
        """Revoke one of a user's refresh tokens.

        Args:
            token_hash: SHA-256 hash of the token
            user_id: Owner the token must belong to
            reason: Revocation reason to record

        Returns:
            True if a live token was revoked
        """
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == token_hash,
                RefreshToken.user_id == user_id,
                RefreshToken.revoked == False,  # noqa: E712
            )
            .values(revoked=True, revoked_at=utcnow(), revoked_reason=reason)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def revoke_all_for_user(self, user_id: UUID, reason: str) -> int:
        """Revoke every outstanding refresh token of a user.

        Args:
            user_id: The user's UUID
            reason: Revocation reason to record

        Returns:
            Number of tokens revoked
        """
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked == False,  # noqa: E712
            )
            .values(revoked=True, revoked_at=utcnow(), revoked_reason=reason)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount


# Type aliases for dependency injection
UserRepo = Annotated[UserRepository, Depends(UserRepository)]
RefreshTokenRepo = Annotated[RefreshTokenRepository, Depends(RefreshTokenRepository)]
