"""Tenants module - the caller's organization."""

from flowgrid_auth.modules.tenants.routes import router


__module_info__ = {
    "name": "tenants",
    "version": "1.0.0",
    "description": "Current tenant lookup",
    "dependencies": ["users"],
}

__all__ = ["router"]
