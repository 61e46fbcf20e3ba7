"""
Refund-specific exceptions raised at adapter and store seams.

Services catch these and translate them into ServiceResult failures;
nothing in this module crosses the public service boundary as an
exception.

Exception Hierarchy:
    RefundError (base for the refund domain)
    ├── GatewayError - Gateway rejected a call (inherits ExternalServiceError)
    │   ├── GatewayTimeoutError - Request exceeded the configured timeout
    │   ├── GatewayUnavailableError - Connection failure or 5xx response
    │   └── GatewayDecodeError - Response body could not be decoded
    ├── WebhookVerificationError - Signature missing or mismatched
    ├── SecretNotFoundError - Secret provider has no value for a name
    ├── LockAcquisitionError - Payment lock timeout (inherits ConflictError)
    └── RefundStoreError - Persistence failure
        └── DuplicateRefundError - Refund id already stored (inherits ConflictError)

Usage:
    from payments.exceptions import GatewayError

    try:
        gateway_refund = await client.create_refund(payment_id, amount, speed)
    except GatewayError as e:
        logger.error(f"Gateway refused refund: {e.message}")
        return ServiceResult.failure(e.message, e.error_code, {"raw_body": e.raw_body})
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError, ExternalServiceError

if TYPE_CHECKING:
    from typing import Any


class RefundError(BaseApplicationError):
    """Base exception for refund domain errors."""

    default_error_code: str = "REFUND_ERROR"


# =============================================================================
# Gateway Errors
# =============================================================================


class GatewayError(RefundError, ExternalServiceError):
    """
    The payment gateway rejected a request or returned an error.

    Attributes:
        raw_body: Response body as received, for diagnostics
        status_code: HTTP status code, if a response was received
        is_retryable: Whether a later identical call could succeed

    Example:
        raise GatewayError(
            "The requested refund amount is invalid (Field: amount)",
            raw_body=response.text,
            status_code=400,
        )
    """

    default_error_code: str = "GATEWAY_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        raw_body: str | None = None,
        status_code: int | None = None,
    ):
        self.raw_body = raw_body
        self.status_code = status_code
        details = dict(details or {})
        if raw_body is not None:
            details.setdefault("raw_body", raw_body)
        if status_code is not None:
            details.setdefault("status_code", status_code)
        super().__init__(message, error_code, details)


class GatewayTimeoutError(GatewayError):
    """Request did not complete within the configured timeout."""

    default_error_code: str = "GATEWAY_TIMEOUT"
    is_retryable: bool = True


class GatewayUnavailableError(GatewayError):
    """Gateway could not be reached or answered with a server error."""

    default_error_code: str = "GATEWAY_UNAVAILABLE"
    is_retryable: bool = True


class GatewayDecodeError(GatewayError):
    """Gateway answered 2xx but the body is not a valid refund payload."""

    default_error_code: str = "GATEWAY_DECODE_ERROR"


# =============================================================================
# Webhook & Secrets
# =============================================================================


class WebhookVerificationError(RefundError):
    """Webhook signature is missing or does not match the payload."""

    default_error_code: str = "WEBHOOK_SIGNATURE_INVALID"


class SecretNotFoundError(RefundError):
    """
    A named secret is not configured.

    Example:
        raise SecretNotFoundError(
            "Secret not configured: razorpay-webhook-secret",
            details={"name": "razorpay-webhook-secret"},
        )
    """

    default_error_code: str = "SECRET_NOT_FOUND"


# =============================================================================
# Concurrency
# =============================================================================


class LockAcquisitionError(RefundError, ConflictError):
    """
    A distributed lock could not be acquired.

    Another worker holds the lock and did not release it within the
    timeout period.

    Example:
        raise LockAcquisitionError(
            "Failed to acquire lock 'lock:refund:payment:pay_123' within 15.0s",
            details={"key": "lock:refund:payment:pay_123", "timeout": 15.0},
        )
    """

    default_error_code: str = "LOCK_TIMEOUT"


# =============================================================================
# Persistence
# =============================================================================


class RefundStoreError(RefundError):
    """Refund store failed to read or write."""

    default_error_code: str = "STORE_ERROR"


class DuplicateRefundError(RefundStoreError, ConflictError):
    """A refund with the same gateway refund id is already stored."""

    default_error_code: str = "DUPLICATE_REFUND"
