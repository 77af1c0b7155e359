"""MFA secret and backup-code database models."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from flowgrid_auth.core.constants import MAX_TOTP_SECRET_LENGTH
from flowgrid_auth.core.database.base import Base, TimestampMixin, UUIDMixin


class MFASecret(Base, UUIDMixin, TimestampMixin):
    """Shared TOTP secret, one per user.

    Created unverified at setup and promoted when the first correct code
    arrives. Deleted, with the backup codes, when MFA is disabled.

    Attributes:
        user_id: Owner of the secret
        secret: Base32 TOTP secret
        verified_at: When the first correct code was presented
        backup_codes_generated_at: When the current backup codes were issued
    """

    __tablename__ = "mfa_secrets"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    secret: Mapped[str] = mapped_column(
        String(MAX_TOTP_SECRET_LENGTH),
        nullable=False,
    )
    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    backup_codes_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<MFASecret(user_id={self.user_id}, verified={self.verified_at is not None})>"


class MFABackupCode(Base, UUIDMixin):
    """Hash of one single-use backup code.

    A row is deleted when its code is consumed.
    """

    __tablename__ = "mfa_backup_codes"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
