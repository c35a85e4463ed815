"""
Custom Exception Classes for the Slacker API.

Every failure the service reports to a client is one of the exceptions below.
Each carries a stable `error_code`, the HTTP `status_code` it maps to, and an
optional `details` dictionary that is logged server-side but never sent to
clients.

Hierarchy:
- `SlackerAPIException`: root of the hierarchy.
- `ValidationError` (400): malformed wallet address, bad username, empty or
  oversized content, unsupported media.
- `AuthorizationError` (403): requester does not own the entity.
- `NotFoundError` (404): referenced user, post, comment or notification is
  missing.
- `ConflictError` (409): uniqueness violation that could not be absorbed.
- `UpstreamError` (500) / `UpstreamUnavailableError` (503): a third-party
  provider failed or timed out. Their client-facing message is generic.
- `DatabaseConnectionError` (500): the store could not be reached.

`to_error_response` renders any of them as the `{message, error}` JSON body.
"""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


class SlackerAPIException(Exception):
    """Base exception class for Slacker API"""

    status_code = 500
    default_error_code = "SLACKER_API_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(SlackerAPIException):
    """Raised when input validation fails"""

    status_code = 400
    default_error_code = "VALIDATION_ERROR"

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            reason,
            details={"field": field, "value": str(value)[:100], "reason": reason},
        )
        self.field = field


class NotFoundError(SlackerAPIException):
    """Raised when a referenced entity does not exist"""

    status_code = 404
    default_error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found",
            details={"resource": resource, "identifier": str(identifier)},
        )
        self.resource = resource


class AuthorizationError(SlackerAPIException):
    """Raised when the requester does not own the entity being changed"""

    status_code = 403
    default_error_code = "FORBIDDEN"

    def __init__(self, action: str, resource: str):
        super().__init__(
            f"Not authorized to {action} this {resource}",
            details={"action": action, "resource": resource},
        )


class ConflictError(SlackerAPIException):
    """Raised when a uniqueness constraint rejects a write"""

    status_code = 409
    default_error_code = "CONFLICT"

    def __init__(self, resource: str, reason: str):
        super().__init__(
            f"{resource} already exists",
            details={"resource": resource, "reason": reason},
        )


class UpstreamError(SlackerAPIException):
    """Raised when a third-party provider returns a failure or malformed body"""

    status_code = 500
    default_error_code = "UPSTREAM_ERROR"

    def __init__(self, service: str, reason: str, public_message: Optional[str] = None):
        super().__init__(
            public_message or f"Error communicating with {service}",
            details={"service": service, "reason": reason},
        )
        self.service = service
        self.reason = reason


class UpstreamUnavailableError(UpstreamError):
    """Raised when a third-party provider times out or cannot be reached"""

    status_code = 503
    default_error_code = "UPSTREAM_UNAVAILABLE"

    def __init__(self, service: str, reason: str, public_message: Optional[str] = None):
        super().__init__(
            service,
            reason,
            public_message or f"Service '{service}' is unavailable",
        )


class DatabaseConnectionError(SlackerAPIException):
    """Raised when database operations fail"""

    status_code = 500
    default_error_code = "DATABASE_ERROR"

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Database operation '{operation}' failed",
            details={"operation": operation, "reason": reason},
        )


def error_body(exc: SlackerAPIException) -> Dict[str, str]:
    return {"message": exc.message, "error": exc.error_code}


def to_error_response(exc: SlackerAPIException) -> JSONResponse:
    """Convert a SlackerAPIException to a JSON error response"""
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))
