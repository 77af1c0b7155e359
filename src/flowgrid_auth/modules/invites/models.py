"""Invite token database model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from flowgrid_auth.core.constants import (
    MAX_EMAIL_LENGTH,
    MAX_ROLE_LENGTH,
    SHA256_HEX_LENGTH,
)
from flowgrid_auth.core.database.base import Base, TenantMixin, UUIDMixin


class InviteToken(Base, UUIDMixin, TenantMixin):
    """Single-use invitation to join a tenant with a given role.

    Attributes:
        token_hash: SHA-256 hash of the emailed token
        email: Invited address, lower-cased
        role: Role the new account receives
        invited_by: Admin who sent the invite
        expires_at: Invite is void after this time
        used: Whether the invite has been accepted
        used_at: When it was accepted
    """

    __tablename__ = "invite_tokens"
    __table_args__ = (
        # At most one unaccepted invite per address in a tenant
        Index(
            "uq_invite_tokens_pending_email",
            "tenant_id",
            "email",
            unique=True,
            postgresql_where=text("used = false"),
            sqlite_where=text("used = 0"),
        ),
    )

    token_hash: Mapped[str] = mapped_column(
        String(SHA256_HEX_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    email: Mapped[str] = mapped_column(
        String(MAX_EMAIL_LENGTH),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(
        String(MAX_ROLE_LENGTH),
        nullable=False,
    )
    invited_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
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

    def __repr__(self) -> str:
        return f"<InviteToken(id={self.id}, email={self.email}, used={self.used})>"
