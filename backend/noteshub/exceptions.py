"""
NotesHub Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the API and the operational tools.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) turn the API
       exceptions into structured JSON responses; the CLI turns TunnelError
       into a non-zero exit status.

Exception Hierarchy:
    NotesHubError (base)
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    ├── FileStorageError         → 500 Internal Server Error
    ├── DatabaseError            → 500 Internal Server Error
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── TunnelError              → CLI exit status 1
"""

from typing import Any, Dict, Optional


class NotesHubError(Exception):
    """
    Base exception for all NotesHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NotesHubError):
    """
    Raised when client input fails a business rule the client can fix.

    When:    Unsupported file type, empty or oversized upload, blank flag
             reason, reviewing a note that is not flagged.
    HTTP:    400 Bad Request (schema-level errors stay FastAPI's 422).
    """

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


class NotFoundError(NotesHubError):
    """
    Raised when a requested resource does not exist.

    The stores return None for missing records; the service layer converts
    that into NotFoundError so routes stay free of lookup checks.
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
        super().__init__(message=message, context=ctx)


class FileStorageError(NotesHubError):
    """Raised when reading, writing or deleting an uploaded file fails."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(NotesHubError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the detail stays
    in the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(NotesHubError):
    """Raised when a client exceeds the per-IP request rate limit."""

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


class TunnelError(NotesHubError):
    """
    Raised when a tunnel provider cannot open (or loses) a public tunnel.

    When:    Provider binary missing, provider API refused the connection,
             tunnel closed unexpectedly.
    Effect:  Retried by the keep-running supervisor; otherwise the CLI
             exits with status 1.
    """

    def __init__(
        self,
        message: str = "Could not establish the tunnel",
        provider: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if provider:
            ctx["provider"] = provider
        super().__init__(message=message, context=ctx)
        self.provider = provider
