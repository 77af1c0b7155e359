"""Passwords module - reset flow and authenticated change."""

from flowgrid_auth.modules.passwords.routes import router


__module_info__ = {
    "name": "passwords",
    "version": "1.0.0",
    "description": "Password reset and change",
    "dependencies": ["users"],
}

__all__ = ["router"]
