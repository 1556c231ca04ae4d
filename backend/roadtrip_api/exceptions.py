"""
Road Trip Planner Backend — Custom Exception Hierarchy
=======================================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return `{message, error, request_id}` JSON bodies.
Who:   Raised by services, dependencies and middleware; caught by global handlers.

Exception Hierarchy:
    RoadTripError (base)
    ├── ValidationError          → 400 Bad Request
    ├── ConflictError            → 400 Bad Request (duplicate unique field)
    ├── AuthError                → 401 Unauthorized
    │   ├── TokenMissingError
    │   ├── TokenExpiredError
    │   └── TokenInvalidError
    ├── ForbiddenError           → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── UpstreamTimeoutError     → 408 Request Timeout
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── ConfigurationError       → 500 Internal Server Error
    ├── UpstreamServiceError     → 500 Internal Server Error
    ├── StorageError             → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class RoadTripError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(RoadTripError):
    """
    Raised when client input fails validation.

    When:    Missing fields, out-of-range lengths, bad formats, too many or
             oversized uploads.
    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(RoadTripError):
    """
    Raised when a write would violate a uniqueness rule.

    When:    Duplicate username/email, second review of the same trip.
    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "conflict"

    def __init__(
        self,
        message: str = "Resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthError(RoadTripError):
    """
    Raised when the caller is not authenticated.

    When:    Bad credentials, missing/expired/invalid token, deleted or
             deactivated account.
    HTTP:    401 Unauthorized
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Authorization denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class TokenMissingError(AuthError):
    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="No token provided, authorization denied", context=context)


class TokenExpiredError(AuthError):
    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Token expired, please login again", context=context)


class TokenInvalidError(AuthError):
    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid token, authorization denied", context=context)


class ForbiddenError(RoadTripError):
    """
    Raised when an authenticated caller tries to mutate a resource they do not own.

    HTTP:    403 Forbidden
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Not authorized to modify this resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(RoadTripError):
    """
    Raised when a requested resource does not exist.

    Accepts either a resource name (message is derived) or an explicit
    message for upstream lookups such as "Location not found".
    HTTP:    404 Not Found
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class UpstreamTimeoutError(RoadTripError):
    """
    Raised when a third-party provider does not answer within its timeout.

    HTTP:    408 Request Timeout
    """

    status_code = 408
    error_code = "upstream_timeout"

    def __init__(
        self,
        service: str = "Upstream",
        timeout: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["service"] = service
        if timeout is not None:
            ctx["timeout"] = timeout
        super().__init__(message=f"{service} service timeout", context=ctx)
        self.service = service


class UpstreamServiceError(RoadTripError):
    """
    Raised when a third-party provider fails for any reason other than a timeout.

    HTTP:    500 Internal Server Error
    """

    error_code = "upstream_error"

    def __init__(
        self,
        message: str = "Failed to fetch data from an external service",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["upstream_status"] = status_code
        super().__init__(message=message, context=ctx)
        self.upstream_status = status_code


class ConfigurationError(RoadTripError):
    """
    Raised when a required setting (API key, secret) is missing.

    HTTP:    500 Internal Server Error
    """

    error_code = "configuration_error"


class StorageError(RoadTripError):
    """
    Raised when storing or deleting an uploaded image fails.

    HTTP:    500 Internal Server Error
    """

    error_code = "storage_error"

    def __init__(
        self,
        message: str = "Error uploading images",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(RoadTripError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic. Query text and
        constraint names are logged server-side only.
    """

    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(RoadTripError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    Response includes:
        - retryAfter: Seconds until the current window resets
        - Retry-After header for HTTP-compliant clients
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message="Too many requests, please try again later.", context=ctx)
        self.retry_after = retry_after
