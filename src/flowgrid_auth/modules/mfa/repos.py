"""MFA secret and backup-code repository."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import delete, select

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.modules.mfa.models import MFABackupCode, MFASecret


class MFARepository:
    """Repository for MFA state of users."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def get_secret(self, user_id: UUID) -> MFASecret | None:
        """Get the TOTP secret of a user, verified or not."""
        result = await self.session.execute(select(MFASecret).where(MFASecret.user_id == user_id))
        return result.scalar_one_or_none()

    async def upsert_secret(self, user_id: UUID, secret: str) -> MFASecret:
        """Store a new unverified secret, replacing any previous one.

        Args:
            user_id: The user's UUID
            secret: Base32 TOTP secret

        Returns:
            The stored secret record
        """
        record = await self.get_secret(user_id)
        if record is None:
            record = MFASecret(user_id=user_id, secret=secret)
            self.session.add(record)
        else:
            record.secret = secret
            record.verified_at = None
        await self.session.flush()
        return record

    async def delete_all(self, user_id: UUID) -> None:
        """Delete the secret and every backup code of a user."""
        await self.session.execute(delete(MFABackupCode).where(MFABackupCode.user_id == user_id))
        await self.session.execute(delete(MFASecret).where(MFASecret.user_id == user_id))
        await self.session.flush()

    async def replace_backup_codes(
        self,
        user_id: UUID,
        code_hashes: list[str],
        generated_at: datetime,
    ) -> None:
        """Swap the stored backup codes for a new set.

        Args:
            user_id: The user's UUID
            code_hashes: Hashes of the new codes
            generated_at: Issue time recorded on the secret
        """
        await self.session.execute(delete(MFABackupCode).where(MFABackupCode.user_id == user_id))
        self.session.add_all(
            [MFABackupCode(user_id=user_id, code_hash=code_hash) for code_hash in code_hashes]
        )
        record = await self.get_secret(user_id)
        if record is not None:
            record.backup_codes_generated_at = generated_at
        await self.session.flush()

    async def list_backup_codes(self, user_id: UUID) -> list[MFABackupCode]:
        """List the unused backup codes of a user."""
        result = await self.session.execute(
            select(MFABackupCode).where(MFABackupCode.user_id == user_id)
        )
        return list(result.scalars().all())

    async def consume_backup_code(self, code_id: UUID) -> bool:
        """Delete a backup code, reporting whether this call removed it.

        Two requests racing on the same code both reach the DELETE; only
        the one that actually removes the row wins.
        """
        result = await self.session.execute(
            delete(MFABackupCode)
            .where(MFABackupCode.id == code_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


MFARepo = Annotated[MFARepository, Depends(MFARepository)]
