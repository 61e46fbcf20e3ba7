"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for outcomes callers must render (not found,
      gateway rejected the call, invalid input)
    - Exceptions: Raised inside adapters and stores, converted to
      ServiceResult at the service boundary

Usage:
    from core.services import BaseService, ServiceResult

    class RefundQueryService(BaseService):
        async def get_refund(self, refund_id: str) -> ServiceResult[RefundDto]:
            refund = await self.store.get(refund_id)
            if refund is None:
                return ServiceResult.failure(
                    f"Refund not found: {refund_id}",
                    error_code="NOT_FOUND",
                )
            return ServiceResult.success(RefundDto.from_refund(refund))

    # At the caller
    result = await service.get_refund(refund_id)
    if not result:
        logger.info("%s: %s", result.error_code, result.error)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from typing import Any

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions
    crossing the service boundary.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Extra error context (e.g. the gateway's raw error body)

    Usage:
        # Success case
        return ServiceResult.success(summary)

        # Failure case
        return ServiceResult.failure("Invalid webhook signature", "WEBHOOK_SIGNATURE_INVALID")

        # Check result
        result = await service.handle_refund_webhook(signature, payload)
        if not result:
            logger.warning(result.error)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, Any] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, Any] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Extra error context

        Returns:
            ServiceResult with success=False and error details

        Example:
            return ServiceResult.failure(
                "Gateway rejected the refund",
                error_code="GATEWAY_ERROR",
                errors={"raw_body": exc.raw_body},
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own message, code and details;
        anything else falls back to str(exc) and the class name.

        Args:
            exc: The caught exception
            error_code: Optional error code override

        Returns:
            ServiceResult with error details from exception
        """
        from core.exceptions import BaseApplicationError

        if isinstance(exc, BaseApplicationError):
            return cls(
                success=False,
                error=exc.message,
                error_code=error_code or exc.error_code,
                errors=exc.details or None,
            )
        return cls(
            success=False,
            error=str(exc),
            error_code=error_code or exc.__class__.__name__.upper(),
        )

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Exception-to-result conversion

    Design Notes:
        - Collaborators are injected through __init__ so they can be faked
        - Use ServiceResult for outcomes the caller must handle
        - Let exceptions propagate inside the service, convert at the edge
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
        error_code: str | None = None,
    ) -> ServiceResult:
        """
        Convert exception to ServiceResult with logging.

        Args:
            exc: The caught exception
            context: Prefix for the message, e.g. "Failed to get refund"
            log_level: Logging level (default ERROR)
            error_code: Optional error code override

        Returns:
            ServiceResult with error details

        Example:
            try:
                refunds = await self.store.list_by_payment(payment_id)
            except Exception as e:
                return self.handle_exception(e, "Failed to get refunds")
        """
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().log(log_level, message, exc_info=True)
        result = ServiceResult.from_exception(exc, error_code)
        result.error = f"{context}: {result.error}" if context else result.error
        return result
