"""Email content for account and security notifications.

Each renderer returns ``(subject, html)``. User-controlled values are
escaped before they are placed into markup.
"""

from datetime import datetime
from html import escape


def _layout(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><body style=\"font-family: Arial, sans-serif; "
        "color: #1f2937; max-width: 600px; margin: 0 auto; padding: 24px;\">"
        f"<h1 style=\"color: #4f46e5;\">{escape(title)}</h1>"
        f"{body}"
        "<p style=\"color: #6b7280; font-size: 12px;\">Flowgrid</p>"
        "</body></html>"
    )


def _button(url: str, label: str) -> str:
    return (
        f"<p><a href=\"{escape(url, quote=True)}\" style=\"background: #4f46e5; color: #ffffff; "
        f"padding: 12px 24px; border-radius: 6px; text-decoration: none;\">{escape(label)}</a></p>"
    )


def render_invite(
    inviter_name: str,
    tenant_name: str,
    role: str,
    invite_url: str,
    expires_at: datetime,
) -> tuple[str, str]:
    """Invitation to join a tenant."""
    subject = f"You've been invited to join {tenant_name} on Flowgrid"
    body = (
        f"<p>{escape(inviter_name)} has invited you to join <strong>{escape(tenant_name)}</strong> "
        f"as <strong>{escape(role)}</strong>.</p>"
        f"{_button(invite_url, 'Accept invitation')}"
        f"<p>This invitation expires on {expires_at:%Y-%m-%d %H:%M} UTC.</p>"
    )
    return subject, _layout("You're invited", body)


def render_welcome(name: str, tenant_name: str, login_url: str) -> tuple[str, str]:
    """Welcome message after an invite is accepted."""
    subject = f"Welcome to {tenant_name} on Flowgrid"
    body = (
        f"<p>Hi {escape(name)},</p>"
        f"<p>Your account in <strong>{escape(tenant_name)}</strong> is ready.</p>"
        f"{_button(login_url, 'Sign in')}"
        "<p>We recommend enabling two-factor authentication from your account settings.</p>"
    )
    return subject, _layout("Welcome aboard", body)


def render_password_reset(name: str, reset_url: str, expires_minutes: int) -> tuple[str, str]:
    """Password reset link."""
    subject = "Reset your Flowgrid password"
    body = (
        f"<p>Hi {escape(name)},</p>"
        "<p>We received a request to reset your password.</p>"
        f"{_button(reset_url, 'Reset password')}"
        f"<p>This link expires in {expires_minutes} minutes. "
        "If you did not request a reset, you can ignore this email.</p>"
    )
    return subject, _layout("Password reset", body)


def render_mfa_enabled(name: str) -> tuple[str, str]:
    """Confirmation that two-factor authentication is on."""
    subject = "Two-factor authentication enabled"
    body = (
        f"<p>Hi {escape(name)},</p>"
        "<p>Two-factor authentication is now enabled on your Flowgrid account. "
        "Keep your backup codes somewhere safe.</p>"
        "<p>If this wasn't you, contact your administrator immediately.</p>"
    )
    return subject, _layout("2FA enabled", body)


def render_security_alert(name: str, event: str, detail: str) -> tuple[str, str]:
    """Alert about a security-relevant change to the account."""
    subject = f"Security alert: {event}"
    body = (
        f"<p>Hi {escape(name)},</p>"
        f"<p><strong>{escape(event)}</strong></p>"
        f"<p>{escape(detail)}</p>"
        "<p>If you did not make this change, contact your administrator immediately.</p>"
    )
    return subject, _layout("Security alert", body)
