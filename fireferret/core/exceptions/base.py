"""
Base Exception Class

This module contains ONLY the base exception class that all other exceptions inherit from.
All specialized exceptions are in their respective themed modules.

Author: System Architect
Date: 2026-10-12
"""

from typing import Any


class FerretError(Exception):
    """
    Base exception for all FireFerret errors.

    All custom exceptions inherit from this class to enable:
    - Consistent error handling
    - Structured error logging
    - Rich context for debugging

    Attributes:
        message: Error message
        scope: Where the error was raised (e.g. "redis::lrange")
        details: Additional error details (dict)

    Example:
        raise CacheOperationError(
            "Redis LRANGE failed",
            scope="redis::lrange",
            details={"key": "ff:db::coll:query={}"}
        )
    """

    def __init__(
        self, message: str, scope: str | None = None, details: dict[str, Any] | None = None
    ):
        self.message = message
        self.scope = scope
        self.details = (details or {}).copy()  # Create a copy to prevent external modification
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for logging.

        Returns:
            Dict with error_type, message, scope, and details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "scope": self.scope,
            "details": self.details,
        }

    def with_suggestion(self, suggestion: str) -> "FerretError":
        """
        Add a suggestion to help callers fix the error.

        Returns:
            Self (for method chaining)
        """
        self.details["suggestion"] = suggestion
        return self

    def with_context(self, **context) -> "FerretError":
        """
        Add additional context to the error details.

        Returns:
            Self (for method chaining)
        """
        self.details.update(context)
        return self

    def __repr__(self) -> str:
        """
        Return detailed string representation for debugging.

        Example:
            >>> error = KeyParseError("Bad range", scope="wide_match", details={"key": "k"})
            >>> repr(error)
            "KeyParseError(message='Bad range', scope='wide_match', details={'key': 'k'})"
        """
        details_str = f", details={self.details}" if self.details else ""
        scope_str = f", scope='{self.scope}'" if self.scope else ""
        return f"{self.__class__.__name__}(message='{self.message}'{scope_str}{details_str})"

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        message: str | None = None,
        scope: str | None = None,
        **details
    ) -> "FerretError":
        """
        Create a FerretError from another exception.

        Useful for wrapping driver exceptions with additional context.

        Example:
            >>> try:
            ...     await client.lrange(key, 0, -1)
            ... except RedisError as e:
            ...     raise CacheOperationError.from_exception(e, scope="redis::lrange", key=key)
        """
        error_message = message or str(exc)
        error_details = {
            "original_error": exc.__class__.__name__,
            "original_message": str(exc),
            **details
        }
        return cls(error_message, scope=scope, details=error_details)


class ConfigurationError(FerretError):
    """Raised when configuration is invalid or missing."""
    pass


class StoreConnectionError(FerretError):
    """
    Raised when a store connection cannot be opened or closed.

    Fatal to the operation; surfaced to the caller.
    """
    pass


class StoreOperationError(FerretError):
    """
    Raised when a single store command fails.

    Not retried by this layer; retry policy belongs to the caller.
    """
    pass
