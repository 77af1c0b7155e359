"""Authentication audit log model.

Entries are append-only: the service inserts them and never updates
or deletes them.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from flowgrid_auth.core.constants import (
    MAX_AUDIT_ACTION_LENGTH,
    MAX_AUDIT_STATUS_LENGTH,
    MAX_IPV6_LENGTH,
)
from flowgrid_auth.core.database.base import Base, JSONType, UUIDMixin
from flowgrid_auth.core.utils.time import utcnow


class AuthAuditLog(Base, UUIDMixin):
    """One security decision taken by the authentication core.

    Attributes:
        tenant_id: Tenant of the actor (null when the identity is unknown)
        user_id: The user concerned (null for unknown emails)
        action: What was decided (login, mfa_verify, invite_sent, ...)
        status: success, failure or blocked
        ip_address: Client IP address
        user_agent: Client user agent string
        request_id: Correlation ID for request tracing
        details: Structured context, never secrets
        created_at: When the decision was taken
    """

    __tablename__ = "auth_audit_log"

    tenant_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action: Mapped[str] = mapped_column(
        String(MAX_AUDIT_ACTION_LENGTH),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(MAX_AUDIT_STATUS_LENGTH),
        nullable=False,
        index=True,
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(MAX_IPV6_LENGTH),
        nullable=True,
    )
    user_agent: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    request_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )
    details: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuthAuditLog(id={self.id}, action={self.action}, status={self.status})>"
