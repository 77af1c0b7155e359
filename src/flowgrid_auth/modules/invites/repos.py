"""Invite token repository."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select, update

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.core.utils.time import utcnow
from flowgrid_auth.modules.invites.models import InviteToken


class InviteRepository:
    """Repository for InviteToken database operations."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, invite: InviteToken) -> InviteToken:
        """Persist a new invite."""
        self.session.add(invite)
        await self.session.flush()
        return invite

    async def get_pending(self, email: str, tenant_id: UUID) -> InviteToken | None:
        """Get an unused, unexpired invite for an email within a tenant."""
        stmt = select(InviteToken).where(
            InviteToken.email == email.lower(),
            InviteToken.tenant_id == tenant_id,
            InviteToken.used == False,  # noqa: E712
            InviteToken.expires_at > utcnow(),
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def retire_expired(self, email: str, tenant_id: UUID) -> int:
        """Mark lapsed, never-accepted invites for an address as used.

        Frees the single pending slot per (tenant, email) so a new invite
        can be issued once the previous one has expired.

        Returns:
            Number of invites retired
        """
        stmt = (
            update(InviteToken)
            .where(
                InviteToken.email == email.lower(),
                InviteToken.tenant_id == tenant_id,
                InviteToken.used == False,  # noqa: E712
                InviteToken.expires_at <= utcnow(),
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_valid_by_hash(self, token_hash: str) -> InviteToken | None:
        """Get an invite that can still be accepted.

        Args:
            token_hash: SHA-256 hash of the emailed token

        Returns:
            InviteToken if unused and unexpired, None otherwise
        """
        stmt = select(InviteToken).where(
            InviteToken.token_hash == token_hash,
            InviteToken.used == False,  # noqa: E712
            InviteToken.expires_at > utcnow(),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_used(self, invite_id: UUID) -> bool:
        """Consume an invite.

        Returns:
            True if this call consumed it, False if it was already used
        """
        stmt = (
            update(InviteToken)
            .where(InviteToken.id == invite_id, InviteToken.used == False)  # noqa: E712
            .values(used=True, used_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1


InviteRepo = Annotated[InviteRepository, Depends(InviteRepository)]
