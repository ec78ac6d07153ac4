"""
ReWear Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the marketplace's failure modes.
How:   Each exception carries a machine-readable `error_code` tag, a
       user-facing message and an optional context dict. Global exception
       handlers (registered in main.py) turn them into tagged JSON responses
       with the matching HTTP status code.
Who:   Raised by stores, services and the auth layer; caught by global handlers.

Exception Hierarchy:
    ReWearError (base)
    ├── ValidationError            → 400 Bad Request
    ├── InsufficientBalanceError   → 400 Bad Request   (insufficient_points)
    ├── AuthenticationError        → 401 Unauthorized
    ├── ForbiddenError             → 403 Forbidden     (not_authorized, admin_required)
    │   └── SelfSwapForbiddenError → 403 Forbidden     (self_swap_forbidden)
    ├── NotFoundError              → 404 Not Found     (<resource>_not_found)
    ├── UnavailableError           → 409 Conflict      (item_unavailable)
    ├── InvalidStateError          → 409 Conflict      (invalid_state)
    ├── ConflictError              → 409 Conflict
    ├── RateLimitExceededError     → 429 Too Many Requests
    ├── FileStorageError           → 500 Internal Server Error
    └── DatabaseError              → 500 Internal Server Error

All domain errors are terminal for the request: nothing retries them.
"""

from typing import Any, Dict, Optional


class ReWearError(Exception):
    """
    Base exception for all ReWear application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info
        error_code:  Machine-readable tag returned as the `error` field
    """

    error_code = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.context = context or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)


class ValidationError(ReWearError):
    """
    Raised when client input fails a business validation rule.

    When:    Unsupported image type, oversized upload, malformed tags,
             swap request without an offered item or points.
    HTTP:    400 Bad Request
    """

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


class NotFoundError(ReWearError):
    """
    Raised when a requested user, item or swap request does not exist.

    The tag is derived from the resource: `item_not_found`, `swap_not_found`,
    `user_not_found`, `file_not_found`.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(
            message=message,
            context=ctx,
            error_code=f"{resource.replace(' ', '_')}_not_found",
        )
        self.resource = resource


class UnavailableError(ReWearError):
    """
    Raised when an item has already been taken by an accepted swap
    (or was withdrawn by its owner).

    HTTP:    409 Conflict
    """

    error_code = "item_unavailable"

    def __init__(
        self,
        item_id: Optional[str] = None,
        message: str = "Item is not available",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if item_id:
            ctx["item_id"] = item_id
        super().__init__(message=message, context=ctx)


class ForbiddenError(ReWearError):
    """
    Raised when the acting user is not allowed to perform the operation.

    When:    Deciding a swap on an item you do not own, editing another
             user's listing, calling an admin endpoint without the admin flag.
    HTTP:    403 Forbidden
    """

    error_code = "not_authorized"

    def __init__(
        self,
        message: str = "Not authorized",
        context: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message=message, context=context, error_code=error_code)


class SelfSwapForbiddenError(ForbiddenError):
    """Raised when a user requests a swap for their own listing."""

    error_code = "self_swap_forbidden"

    def __init__(self, item_id: Optional[str] = None):
        ctx = {"item_id": item_id} if item_id else {}
        super().__init__(message="Cannot request your own item", context=ctx)


class InsufficientBalanceError(ReWearError):
    """
    Raised when a points swap needs more points than the requester holds.

    Checked when the swap is proposed and again when it is accepted.
    HTTP:    400 Bad Request
    """

    error_code = "insufficient_points"

    def __init__(
        self,
        required: int,
        available: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"required": required, "available": available})
        super().__init__(message="Insufficient points", context=ctx)
        self.required = required
        self.available = available


class InvalidStateError(ReWearError):
    """
    Raised for a transition the swap lifecycle does not allow, or a request
    missing the fields its settlement mode needs.

    Example: accepting a swap that is already accepted.
    HTTP:    409 Conflict
    """

    error_code = "invalid_state"

    def __init__(
        self,
        message: str = "Operation not allowed in the current state",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConflictError(ReWearError):
    """Raised when a create would duplicate a unique record (e.g. email)."""

    error_code = "conflict"

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message=message, context=context, error_code=error_code)


class AuthenticationError(ReWearError):
    """
    Raised when the caller's identity cannot be established.

    Tags: authentication_required, invalid_token, invalid_credentials.
    HTTP:    401 Unauthorized
    """

    error_code = "authentication_required"

    def __init__(
        self,
        message: str = "Access token required",
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context, error_code=error_code)


class FileStorageError(ReWearError):
    """
    Raised when file system operations on listing images fail.

    HTTP:    500 Internal Server Error (generic message to client)
    """

    error_code = "server_error"

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ReWearError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; details are
    logged server-side only.
    HTTP:    500 Internal Server Error
    """

    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(ReWearError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests (with Retry-After header)
    """

    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
