"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error results across the service layer
- Machine-readable error codes for client handling
- Detailed error information for debugging

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    ├── ConflictError - State conflicts (duplicates, concurrent modifications)
    └── ExternalServiceError - Third-party service failures

Usage:
    from core.exceptions import ExternalServiceError, ValidationError

    # Raise with message only
    raise ValidationError("Page size must be between 1 and 100")

    # Raise with error code and details
    raise ExternalServiceError(
        "Gateway unavailable",
        error_code="GATEWAY_ERROR",
        details={"status_code": 503},
    )

    # Convert to a ServiceResult at the service boundary
    try:
        ...
    except BaseApplicationError as e:
        return ServiceResult.failure(e.message, e.error_code)

Note:
    These exceptions are raised at adapter/store seams. Services translate
    them into ServiceResult failures before returning to callers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (raw bodies, identifiers, etc.)

    Example:
        try:
            refund = await store.get(refund_id)
        except BaseApplicationError as e:
            logger.warning(f"Refund lookup failed: {e.error_code}")
            return ServiceResult.failure(e.message, e.error_code)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for:
    - Malformed request parameters (page sizes, dates)
    - Payloads that fail structural decoding

    Example:
        raise ValidationError(
            "Page size must be between 1 and 100",
            details={"page_size": page_size},
        )
    """

    default_error_code: str = "VALIDATION_ERROR"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Duplicate entries (unique constraint violations)
    - Concurrent modification conflicts

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Payment gateway HTTP failures
    - Network timeouts
    - Secret manager lookups

    Note:
        Log the original error for debugging but don't expose
        internal details to clients in production.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
