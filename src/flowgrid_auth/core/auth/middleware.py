"""Request-id and tenant context middleware.

This module provides middleware for:
- Request tracing with unique IDs
- Binding the caller's tenant and user to the log context
"""

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from flowgrid_auth.core.auth.backend import ACCESS_TOKEN, decode_token
from flowgrid_auth.core.errors import UnauthorizedError


if TYPE_CHECKING:
    from starlette.types import ASGIApp


logger = structlog.get_logger()


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Middleware that exposes the token's tenant to logging.

    Extracts tenant_id and user_id from a valid bearer token and adds them
    to request.state and the structlog context. Authorization is still
    decided by the route dependencies; an invalid token is ignored here.

    Attributes:
        exclude_paths: Paths that don't carry tenant context
    """

    def __init__(
        self,
        app: "ASGIApp",
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.exclude_paths = exclude_paths or [
            "/health",
            "/docs",
            "/redoc",
            "/openapi.json",
            "/api/auth/login",
            "/api/auth/refresh",
            "/api/auth/invite",
            "/api/auth/password/forgot",
            "/api/auth/password/reset",
        ]

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request and inject tenant context.

        Args:
            request: The incoming request
            call_next: The next middleware/handler

        Returns:
            The response from the handler
        """
        if any(request.url.path.startswith(path) for path in self.exclude_paths):
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1]
            try:
                token_data = decode_token(token, expected_type=ACCESS_TOKEN)
            except UnauthorizedError:
                token_data = None

            if token_data:
                request.state.tenant_id = token_data.tenant_id
                request.state.user_id = token_data.user_id

                structlog.contextvars.bind_contextvars(
                    tenant_id=str(token_data.tenant_id),
                    user_id=str(token_data.user_id),
                )

        return await call_next(request)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware that adds a unique request ID to each request.

    The request ID is added to:
    - request.state.request_id
    - Response header X-Request-ID
    - Structlog context, and from there every audit entry
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request and add request ID.

        Args:
            request: The incoming request
            call_next: The next middleware/handler

        Returns:
            The response with X-Request-ID header
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        request.state.request_id = request_id
        request.state.trace_id = request_id  # Alias for error handler

        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "tenant_id", "user_id")

        response.headers["X-Request-ID"] = request_id
        return response
