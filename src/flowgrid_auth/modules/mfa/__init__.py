"""MFA module - TOTP enrollment and backup codes."""

from flowgrid_auth.modules.mfa.routes import router


__module_info__ = {
    "name": "mfa",
    "version": "1.0.0",
    "description": "TOTP multi-factor authentication",
    "dependencies": ["users"],
}

__all__ = ["router"]
