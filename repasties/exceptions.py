"""
Repasties — Custom Exception Hierarchy
=======================================

What:  Application-specific exceptions for the snippet store and highlighter.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) map them to
       HTTP responses; context is logged server-side only.
Who:   Raised by the ConnectionManager, SnippetStore and highlight strategies.

Exception Hierarchy:
    RepastiesError (base)
    ├── ValidationError        → 400 Bad Request (draft re-presented)
    ├── StoreConnectionError   → 503 Service Unavailable
    ├── PersistenceError       → 303 redirect to the index
    ├── RenderError            → wrapped into PersistenceError by the store
    └── BootstrapError         → fatal at start-up

A snippet lookup miss is not an exception: SnippetStore.get_by_id returns None.
"""

from typing import Any, Dict, Optional


class RepastiesError(Exception):
    """
    Base exception for all Repasties application errors.

    Attributes:
        message:  User-facing error description
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


class ValidationError(RepastiesError):
    """
    Raised when a submitted draft or query parameter is unusable.

    When:    Empty snippet body, non-positive list limit.
    HTTP:    400 Bad Request. The submitted draft travels back in the
             response so the client can re-present it unchanged.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class StoreConnectionError(RepastiesError):
    """
    Raised when a handle to the backing store cannot be acquired.

    HTTP:    503 Service Unavailable
    Context: the host/port (or SQLite path) that was attempted.
    """

    def __init__(
        self,
        message: str = "Database not available",
        address: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if address:
            ctx["address"] = address
        super().__init__(message=message, context=ctx)
        self.address = address


class PersistenceError(RepastiesError):
    """
    Raised when a snippet could not be written.

    When:    The insert reported a record count other than one, the store
             raised mid-write, or highlighting failed before the write.
    HTTP:    303 redirect to the index; the store response is logged.
    """

    def __init__(
        self,
        message: str = "The snippet could not be saved",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RenderError(RepastiesError):
    """
    Raised when syntax highlighting fails.

    When:    The local highlighter could not be launched or exited non-zero,
             or the remote service was unreachable or answered non-2xx.
    """

    def __init__(
        self,
        message: str = "Syntax highlighting failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class BootstrapError(RepastiesError):
    """Raised when the database or the snippets table cannot be created."""

    def __init__(
        self,
        message: str = "Cannot bootstrap the snippet database",
        address: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if address:
            ctx["address"] = address
        super().__init__(message=message, context=ctx)
        self.address = address
