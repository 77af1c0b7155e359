"""Outbound email delivery over a Resend-compatible HTTP API.

Delivery is best-effort: a send that fails or exceeds the configured
timeout is logged and reported as ``False``, never raised, so the
security operation it accompanies still completes.
"""

import asyncio
from datetime import datetime
from typing import Annotated

import httpx
import structlog
from fastapi import Depends

from flowgrid_auth.config import settings
from flowgrid_auth.core.notifications import templates


log = structlog.get_logger()


def _redact_email(email: str) -> str:
    """Redact an email address for logging."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class NotificationDispatcher:
    """Renders account emails and hands them to the email API."""

    def __init__(
        self,
        api_url: str,
        api_key: str | None,
        sender: str,
        base_url: str,
        timeout: float,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        """Whether an API key is available for delivery."""
        return bool(self.api_key)

    def link(self, path: str, token: str | None = None) -> str:
        """Build an absolute link into the web app."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        return f"{url}?token={token}" if token else url

    async def send(self, to: str, subject: str, html: str) -> bool:
        """Deliver one email within the configured timeout.

        Args:
            to: Recipient address
            subject: Subject line
            html: Rendered HTML body

        Returns:
            True when the API accepted the message
        """
        if not self.is_configured:
            log.info("email_not_configured", to=_redact_email(to), subject=subject)
            return False

        try:
            await asyncio.wait_for(self._post(to, subject, html), timeout=self.timeout)
        except (httpx.HTTPError, TimeoutError) as exc:
            log.warning(
                "email_send_failed",
                to=_redact_email(to),
                subject=subject,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return False

        log.info("email_sent", to=_redact_email(to), subject=subject)
        return True

    async def _post(self, to: str, subject: str, html: str) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.sender,
                    "to": [to],
                    "subject": subject,
                    "html": html,
                },
            )
            response.raise_for_status()

    async def send_invite(
        self,
        to: str,
        inviter_name: str,
        tenant_name: str,
        role: str,
        token: str,
        expires_at: datetime,
    ) -> bool:
        """Send an invitation with its signup link."""
        subject, html = templates.render_invite(
            inviter_name,
            tenant_name,
            role,
            self.link("signup.html", token),
            expires_at,
        )
        return await self.send(to, subject, html)

    async def send_welcome(self, to: str, name: str, tenant_name: str) -> bool:
        """Send the welcome email for a new account."""
        subject, html = templates.render_welcome(name, tenant_name, self.link("login.html"))
        return await self.send(to, subject, html)

    async def send_password_reset(self, to: str, name: str, token: str) -> bool:
        """Send a password reset link."""
        subject, html = templates.render_password_reset(
            name,
            self.link("reset-password.html", token),
            settings.password_reset_expire_minutes,
        )
        return await self.send(to, subject, html)

    async def send_mfa_enabled(self, to: str, name: str) -> bool:
        """Confirm that MFA was switched on."""
        subject, html = templates.render_mfa_enabled(name)
        return await self.send(to, subject, html)

    async def send_security_alert(self, to: str, name: str, event: str, detail: str) -> bool:
        """Warn the user about a security-relevant change."""
        subject, html = templates.render_security_alert(name, event, detail)
        return await self.send(to, subject, html)


notifier = NotificationDispatcher(
    api_url=settings.email_api_url,
    api_key=settings.email_api_key,
    sender=settings.email_from,
    base_url=settings.app_base_url,
    timeout=settings.notification_timeout_seconds,
)


def get_notifier() -> NotificationDispatcher:
    """Return the shared notification dispatcher."""
    return notifier


Notifier = Annotated[NotificationDispatcher, Depends(get_notifier)]
