"""Password reset token repository."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select, update

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.core.utils.time import utcnow
from flowgrid_auth.modules.passwords.models import PasswordResetToken


class PasswordResetRepository:
    """Repository for PasswordResetToken database operations."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, token: PasswordResetToken) -> PasswordResetToken:
        """Persist a new reset token."""
        self.session.add(token)
        await self.session.flush()
        return token

    async def invalidate_outstanding(self, user_id: UUID) -> int:
        """Mark every unused reset token of a user as used.

        Returns:
            Number of tokens invalidated
        """
        stmt = (
            update(PasswordResetToken)
            .where(
                PasswordResetToken.user_id == user_id,
                PasswordResetToken.used == False,  # noqa: E712
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_valid_by_hash(self, token_hash: str) -> PasswordResetToken | None:
        """Get a reset token that is unused and unexpired."""
        stmt = select(PasswordResetToken).where(
            PasswordResetToken.token_hash == token_hash,
            PasswordResetToken.used == False,  # noqa: E712
            PasswordResetToken.expires_at > utcnow(),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_used(self, token_id: UUID) -> bool:
        """Consume a reset token.

        Returns:
            True if this call consumed it, False if it was already used
        """
        stmt = (
            update(PasswordResetToken)
            .where(PasswordResetToken.id == token_id, PasswordResetToken.used == False)  # noqa: E712
            .values(used=True, used_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1


PasswordResetRepo = Annotated[PasswordResetRepository, Depends(PasswordResetRepository)]
