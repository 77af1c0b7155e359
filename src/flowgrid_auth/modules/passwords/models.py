"""Password reset token database model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from flowgrid_auth.core.constants import MAX_IPV6_LENGTH, SHA256_HEX_LENGTH
from flowgrid_auth.core.database.base import Base, UUIDMixin


class PasswordResetToken(Base, UUIDMixin):
    """Single-use, time-boxed password reset token.

    Attributes:
        user_id: Account the token resets
        token_hash: SHA-256 hash of the emailed token
        expires_at: Token is void after this time
        ip_address: Address that requested the reset
        used: Whether the token has been consumed or superseded
        used_at: When that happened
    """

    __tablename__ = "password_reset_tokens"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(
        String(SHA256_HEX_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(MAX_IPV6_LENGTH),
        nullable=True,
    )
    used: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
