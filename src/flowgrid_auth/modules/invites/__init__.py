"""Invites module - invite-based tenant onboarding."""

from flowgrid_auth.modules.invites.routes import router


__module_info__ = {
    "name": "invites",
    "version": "1.0.0",
    "description": "Single-use invites gating account creation",
    "dependencies": ["users", "tenants"],
}

__all__ = ["router"]
