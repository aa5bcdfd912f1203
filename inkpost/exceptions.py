"""
Inkpost Backend: Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions, one per error kind the API exposes.
Why:   Services raise these instead of HTTP errors so they stay framework-free;
       a single global handler (main.py) turns them into JSON responses.
How:   Each exception carries a machine-readable kind (`error`), an HTTP
       status code, a list of human-readable messages and an optional
       context dict that is logged but never returned to the client.

Exception Hierarchy:
    InkpostError (base)
    ├── BadRequestError         → 400 Bad Request
    ├── UnauthorizedError       → 401 Unauthorized
    ├── ForbiddenError          → 403 Forbidden
    ├── NotFoundError           → 404 Not Found
    ├── ConflictError           → 409 Conflict (slug or email in use)
    ├── RateLimitExceededError  → 429 Too Many Requests
    └── DatabaseError           → 500 Internal Server Error
"""

from typing import Any, Dict, List, Optional, Union


class InkpostError(Exception):
    """
    Base exception for all Inkpost application errors.

    Attributes:
        error:        Machine-readable kind (e.g. "conflict")
        status_code:  HTTP status the global handler responds with
        messages:     User-facing descriptions (safe to return in API response)
        context:      Additional debug info (logged but NOT returned to client)
    """

    error = "internal"
    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(
        self,
        messages: Union[str, List[str], None] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if messages is None:
            messages = [self.default_message]
        elif isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        self.context = context or {}
        super().__init__(", ".join(self.messages))

    @property
    def message(self) -> str:
        return ", ".join(self.messages)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error,
            "statusCode": self.status_code,
            "messages": self.messages,
        }


class BadRequestError(InkpostError):
    """
    Raised when client input is missing or unusable.

    Pydantic already rejects malformed bodies with 422; this covers business
    rules the schema cannot express (empty update, unsluggable title, limit
    out of range).
    """

    error = "bad_request"
    status_code = 400
    default_message = "Invalid request"

    def __init__(
        self,
        messages: Union[str, List[str], None] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(messages=messages, context=ctx)
        self.field = field


class UnauthorizedError(InkpostError):
    """
    Raised for bad credentials or a missing/invalid token.

    Login uses the same message for an unknown email and a wrong password so
    the response does not reveal which check failed.
    """

    error = "unauthorized"
    status_code = 401
    default_message = "Invalid credentials"


class ForbiddenError(InkpostError):
    """Authenticated, but not allowed (non-admin on an admin-gated route)."""

    error = "forbidden"
    status_code = 403
    default_message = "Admin privileges required"


class NotFoundError(InkpostError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that None into
    this exception so routes never check for it.
    """

    error = "not_found"
    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(messages=message, context=ctx)
        self.resource = resource


class ConflictError(InkpostError):
    """
    Raised when a write would break a uniqueness rule (slug or email).

    Raised both by the service pre-checks and when the database itself
    reports a unique violation, which is what settles concurrent writers.
    """

    error = "conflict"
    status_code = 409
    default_message = "Resource already exists"


class RateLimitExceededError(InkpostError):
    """Raised when a client exceeds the credential endpoint throttle."""

    error = "rate_limit_exceeded"
    status_code = 429

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many attempts. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(messages=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(InkpostError):
    """
    Raised when a database operation fails unexpectedly.

    Security Note:
        The message returned to the client is always generic. Driver errors,
        SQL text and constraint names go into `context` and the server log
        only.
    """

    error = "internal"
    status_code = 500
    default_message = "Database internal error"
