"""Domain exceptions for the authentication service.

These exceptions represent business-logic errors and are automatically
converted to RFC 7807 Problem Details responses by the exception handlers.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

    All domain exceptions should inherit from this class.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Additional error details, merged into the response body
        headers: Extra HTTP headers to send with the response
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        self.headers: dict[str, str] | None = None
        super().__init__(self.message)


class NotFoundError(AppException):
    """Raised when a requested resource is not found within the caller's tenant.

    Example:
        raise NotFoundError("User not found", resource="user", resource_id=str(user_id))
    """

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class ConflictError(AppException):
    """Raised when there's a conflict with existing data.

    Example:
        raise ConflictError("An invitation is already pending", error_code="invite_pending")
    """

    message = "Resource conflict"
    error_code = "conflict"
    status_code = 409


class ValidationError(AppException):
    """Raised when request data fails validation.

    Example:
        raise ValidationError(
            "Password does not meet requirements",
            error_code="weak_password",
            details={"feedback": ["Add a number"]},
        )
    """

    message = "Validation error"
    error_code = "validation_error"
    status_code = 400

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if errors:
            details["errors"] = errors
        super().__init__(message=message, details=details, **kwargs)


class UnauthorizedError(AppException):
    """Raised when authentication is required but not provided or invalid.

    Example:
        raise UnauthorizedError("Invalid email or password", error_code="invalid_credentials")
    """

    message = "Authentication required"
    error_code = "unauthorized"
    status_code = 401


class ForbiddenError(AppException):
    """Raised when the caller is authenticated but lacks the required role.

    Example:
        raise ForbiddenError("Admin access required", error_code="admin_required")
    """

    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class BadRequestError(AppException):
    """Raised for general client errors.

    Example:
        raise BadRequestError("MFA is already enabled", error_code="mfa_already_enabled")
    """

    message = "Bad request"
    error_code = "bad_request"
    status_code = 400


class RateLimitError(AppException):
    """Raised when a request-rate ceiling is exceeded.

    Sets ``Retry-After`` and the ``X-RateLimit-*`` headers on the response.

    Example:
        raise RateLimitError(retry_after=60, limit=20, reset_time=1700000000)
    """

    message = "Too many requests, please try again later"
    error_code = "rate_limit_exceeded"
    status_code = 429

    def __init__(
        self,
        message: str | None = None,
        retry_after: int | None = None,
        limit: int | None = None,
        reset_time: int | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if retry_after is not None:
            details["retryAfter"] = retry_after
        super().__init__(message=message, details=details, **kwargs)

        headers: dict[str, str] = {}
        if retry_after is not None:
            headers["Retry-After"] = str(retry_after)
        if limit is not None:
            headers["X-RateLimit-Limit"] = str(limit)
            headers["X-RateLimit-Remaining"] = "0"
        if reset_time is not None:
            headers["X-RateLimit-Reset"] = str(reset_time)
        self.headers = headers or None


class ServiceUnavailableError(AppException):
    """Raised when a required service is unavailable.

    Example:
        raise ServiceUnavailableError("Database connection failed")
    """

    message = "Service temporarily unavailable"
    error_code = "service_unavailable"
    status_code = 503
