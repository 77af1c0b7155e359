"""Tenant database model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from flowgrid_auth.core.constants import MAX_NAME_LENGTH, MAX_SLUG_LENGTH
from flowgrid_auth.core.database.base import Base, TimestampMixin, UUIDMixin


class Tenant(Base, UUIDMixin, TimestampMixin):
    """Isolation boundary for users, tokens and audit entries.

    Attributes:
        name: Display name of the organisation
        slug: Unique URL-safe identifier, also accepted at login
        tier: Subscription tier (free, pro, enterprise)
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    slug: Mapped[str] = mapped_column(
        String(MAX_SLUG_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    tier: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="free",
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug={self.slug})>"
