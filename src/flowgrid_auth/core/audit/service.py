"""Audit logger for authentication decisions.

Every login, token, MFA, invite, password and admin decision goes through
``AuthAuditLogger.record``. The entry joins the request's unit of work,
so it is committed together with the state change it describes, and is
mirrored to structlog as an ``auth_event`` line.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated, Any
from uuid import UUID

import structlog
from fastapi import Depends, Request
from pydantic_core import to_jsonable_python

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.core.audit.models import AuthAuditLog
from flowgrid_auth.core.logging import get_client_ip


log = structlog.get_logger()


class AuditAction(StrEnum):
    """Actions recorded in the audit log."""

    LOGIN_ATTEMPT = "login_attempt"
    LOGIN = "login"
    MFA_CHALLENGE = "mfa_challenge"
    MFA_VERIFY = "mfa_verify"
    LOGOUT = "logout"
    TOKEN_REFRESH = "token_refresh"
    TOKEN_VERIFY = "token_verify"
    PASSWORD_CHANGE = "password_change"
    PASSWORD_RESET_REQUEST = "password_reset_request"
    PASSWORD_RESET = "password_reset"
    INVITE_SENT = "invite_sent"
    ACCOUNT_CREATED = "account_created"
    MFA_SETUP = "mfa_setup"
    MFA_ENABLE = "mfa_enable"
    MFA_DISABLE = "mfa_disable"
    MFA_BACKUP_CODES_REGENERATED = "mfa_backup_codes_regenerated"
    ADMIN_MFA_RESET = "admin_mfa_reset"
    USER_DISABLED = "user_disabled"
    USER_ENABLED = "user_enabled"


class AuditStatus(StrEnum):
    """Outcome of an audited decision."""

    SUCCESS = "success"
    FAILURE = "failure"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class ClientInfo:
    """Request-level facts attached to every audit entry."""

    ip_address: str | None = None
    user_agent: str | None = None


def get_client_info(request: Request) -> ClientInfo:
    """Collect the caller IP and user agent for audit entries."""
    return ClientInfo(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )


Client = Annotated[ClientInfo, Depends(get_client_info)]


class AuthAuditLogger:
    """Writes append-only audit entries for the current request."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def record(
        self,
        action: AuditAction,
        status: AuditStatus,
        *,
        client: ClientInfo | None = None,
        user_id: UUID | None = None,
        tenant_id: UUID | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuthAuditLog:
        """Record one security decision.

        Args:
            action: What was decided
            status: success, failure or blocked
            client: IP address and user agent of the caller
            user_id: User concerned, if known
            tenant_id: Tenant concerned, if known
            details: Structured context; must never contain secrets

        Returns:
            The pending audit entry
        """
        client = client or ClientInfo()
        payload = to_jsonable_python(details) if details else None
        request_id = structlog.contextvars.get_contextvars().get("request_id")

        log.info(
            "auth_event",
            action=str(action),
            status=str(status),
            user_id=str(user_id) if user_id else None,
            tenant_id=str(tenant_id) if tenant_id else None,
            ip_address=client.ip_address,
            details=payload,
        )

        entry = AuthAuditLog(
            tenant_id=tenant_id,
            user_id=user_id,
            action=str(action),
            status=str(status),
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            request_id=request_id,
            details=payload,
        )
        self.session.add(entry)
        return entry


# Type alias for dependency injection
AuditLogger = Annotated[AuthAuditLogger, Depends(AuthAuditLogger)]
