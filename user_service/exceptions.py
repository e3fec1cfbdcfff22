"""
User Service — Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for the two failure classes the
       service knows about: startup failures and per-request persistence
       failures.
How:   Each exception carries a client-safe message and an optional
       context dict. Global handlers (registered in main.py) turn
       request-time errors into JSON responses; startup errors escape the
       lifespan and stop the process.

Exception Hierarchy:
    UserServiceError (base)
    ├── DatabaseError   → 500 Internal Server Error
    └── StartupError    → process exits (never reaches a client)
"""

from typing import Any, Dict, Optional


class UserServiceError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  Human-readable description (safe to return in API response)
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


class DatabaseError(UserServiceError):
    """
    Raised when a query or insert against the users table fails.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. The original
    SQLAlchemy error class is kept in `context` for the server log only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StartupError(UserServiceError):
    """
    Raised when the service cannot start.

    When:  Database unreachable, table creation failed, or the span
           exporter could not be built.
    """

    def __init__(
        self,
        message: str = "Service failed to start",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
