"""OpenTelemetry tracing for the auth service."""

from flowgrid_auth.core.observability.tracing import setup_tracing, shutdown_tracing


__all__ = ["setup_tracing", "shutdown_tracing"]
