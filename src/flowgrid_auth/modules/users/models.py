"""User and refresh-token database models."""

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flowgrid_auth.core.constants import (
    MAX_EMAIL_LENGTH,
    MAX_IPV6_LENGTH,
    MAX_NAME_LENGTH,
    MAX_REASON_LENGTH,
    MAX_ROLE_LENGTH,
    SHA256_HEX_LENGTH,
)
from flowgrid_auth.core.database.base import (
    Base,
    JSONType,
    TenantMixin,
    TimestampMixin,
    UUIDMixin,
)


if TYPE_CHECKING:
    from flowgrid_auth.modules.tenants.models import Tenant


class UserRole(StrEnum):
    """Roles a user can hold inside a tenant."""

    ADMIN = "admin"
    USER = "user"
    VIEWER = "viewer"


class User(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """An identity inside exactly one tenant.

    Users are never hard-deleted; ``is_active`` switches them off.

    Attributes:
        email: Lower-cased email, unique within the tenant
        password_hash: Bcrypt hash of the password
        name: Display name
        role: One of ``UserRole``
        is_active: Whether the user can log in
        email_verified: Set for accounts created from an invite
        mfa_enabled: Whether login requires a second factor
        failed_login_attempts: Consecutive failed password checks
        locked_until: Login is refused until this time
        last_login_at: Time of the last successful login
        password_changed_at: Time of the last password change or reset
    """

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),)

    email: Mapped[str] = mapped_column(
        String(MAX_EMAIL_LENGTH),
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(MAX_ROLE_LENGTH),
        nullable=False,
        default=UserRole.USER.value,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    mfa_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Lockout state
    failed_login_attempts: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    locked_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    password_changed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    tenant: Mapped["Tenant"] = relationship(
        "Tenant",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, tenant_id={self.tenant_id})>"


class RefreshToken(Base, UUIDMixin, TimestampMixin):
    """Ledger entry for an issued refresh token.

    Only the SHA-256 hash of the token is stored.

    Attributes:
        user_id: The user this token belongs to
        token_hash: SHA-256 hash of the refresh token
        expires_at: When the token expires
        revoked: Whether the token has been revoked
        revoked_at: When the token was revoked
        revoked_reason: Why it was revoked (logout, password_reset, ...)
        ip_address: The IP address that obtained the token
        device_info: Client metadata captured at issuance
    """

    __tablename__ = "refresh_tokens"

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
    revoked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    revoked_reason: Mapped[str | None] = mapped_column(
        String(MAX_REASON_LENGTH),
        nullable=True,
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(MAX_IPV6_LENGTH),
        nullable=True,
    )
    device_info: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, user_id={self.user_id}, revoked={self.revoked})>"
