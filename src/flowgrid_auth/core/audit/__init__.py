"""Append-only audit trail of authentication decisions."""

from flowgrid_auth.core.audit.models import AuthAuditLog
from flowgrid_auth.core.audit.repos import AuditLogRepo, AuditLogRepository
from flowgrid_auth.core.audit.service import (
    AuditAction,
    AuditLogger,
    AuditStatus,
    AuthAuditLogger,
    Client,
    ClientInfo,
    get_client_info,
)


__all__ = [
    "AuditAction",
    "AuditLogRepo",
    "AuditLogRepository",
    "AuditLogger",
    "AuditStatus",
    "AuthAuditLog",
    "AuthAuditLogger",
    "Client",
    "ClientInfo",
    "get_client_info",
]
