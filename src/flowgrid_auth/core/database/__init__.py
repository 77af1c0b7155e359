"""Database layer - session management, base models, and mixins."""

from flowgrid_auth.core.database.base import (
    Base,
    JSONType,
    TenantMixin,
    TimestampMixin,
    UUIDMixin,
)
from flowgrid_auth.core.database.session import (
    async_engine,
    async_session_factory,
    get_db,
)


__all__ = [
    "Base",
    "JSONType",
    "TenantMixin",
    "TimestampMixin",
    "UUIDMixin",
    "async_engine",
    "async_session_factory",
    "get_db",
]
