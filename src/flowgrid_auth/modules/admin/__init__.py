"""Admin module - tenant user management and audit queries."""

from flowgrid_auth.modules.admin.routes import router


__module_info__ = {
    "name": "admin",
    "version": "1.0.0",
    "description": "Tenant administration",
    "dependencies": ["users", "mfa"],
}

__all__ = ["router"]
