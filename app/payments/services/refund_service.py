"""
Refund service: initiating refunds and reading refund state.

This module provides the RefundService class which owns the critical
path for returning money to a customer:

1. Look up the payment and compute its remaining refundable balance
2. Resolve the refund amount (the whole remainder when none is given)
3. Call the gateway with the amount stated explicitly
4. Record the gateway's refund locally
5. Notify the user and cancel their subscription (best-effort)

Two result channels are kept apart. Business outcomes (payment not
found, nothing left to refund, amount too large) come back as a
successful ServiceResult wrapping RefundResponse(success=False).
Infrastructure failures (gateway, store, unexpected errors) come back
as a failed ServiceResult with an error code.

Usage:
    from payments.services import RefundService

    result = await service.initiate_refund(
        "admin@example.com",
        InitiateRefundRequest(payment_id="pay_123", amount=4000),
    )
    if not result.success:
        print(f"Refund errored: {result.error}")
    elif not result.data.success:
        print(f"Refund rejected: {result.data.message}")
    else:
        print(f"Refund created: {result.data.refund.refund_id}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings

from core.services import BaseService, ServiceResult
from payments.exceptions import (
    DuplicateRefundError,
    GatewayError,
    LockAcquisitionError,
    RefundStoreError,
)
from payments.locks import payment_refund_lock
from payments.mappers import refund_from_gateway
from payments.money import Money
from payments.services.bill_policy import allowed_bill_types
from payments.types import PaymentRefundSummary, RefundDto, RefundResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    from payments.adapters.gateway_client import GatewayClient
    from payments.locks import DistributedLock
    from payments.models import Payment, Refund
    from payments.protocols import PaymentLookup, RefundStore
    from payments.services.side_effects import CancellationOutcome, SideEffectDispatcher
    from payments.state_machines import BillType
    from payments.types import InitiateRefundRequest


# =============================================================================
# Helpers
# =============================================================================


def build_payment_summary(
    payment: Payment,
    refunds: list[Refund],
    total_refunded: Money,
) -> PaymentRefundSummary:
    """Summarize a payment's refunds; balances exclude FAILED refunds."""
    original = Money(payment.amount or 0, total_refunded.currency)
    remaining = original - total_refunded
    if remaining.minor < 0:
        remaining = Money.zero(original.currency)
    return PaymentRefundSummary(
        payment_id=payment.gateway_payment_id,
        original_amount=original.to_major(),
        total_refunded=total_refunded.to_major(),
        remaining_refundable=remaining.to_major(),
        refunds=[RefundDto.from_refund(refund) for refund in refunds],
        is_fully_refunded=original.is_positive and remaining.is_zero,
    )


def _initiated_message(outcome: CancellationOutcome) -> str:
    if not outcome.attempted:
        return "Refund initiated successfully"
    if outcome.succeeded:
        return "Refund initiated successfully and subscription cancelled"
    return (
        "Refund initiated successfully but subscription cancellation failed after "
        f"{outcome.attempts} attempts. Please cancel subscription manually. "
        f"Reason: {outcome.last_error}"
    )


# =============================================================================
# Refund Service
# =============================================================================


class RefundService(BaseService):
    """
    Initiates refunds and answers refund queries.

    Concurrency:
        The balance check, gateway call and insert for one payment run
        under a Redis DistributedLock keyed by payment id
        (payments.locks.payment_refund_lock), so two initiations for the
        same payment cannot both pass the balance check, whichever
        worker or event loop they run in.
    """

    def __init__(
        self,
        store: RefundStore,
        payments: PaymentLookup,
        gateway: GatewayClient,
        side_effects: SideEffectDispatcher,
        *,
        currency: str | None = None,
        lock_factory: Callable[[str], DistributedLock] = payment_refund_lock,
    ):
        self.store = store
        self.payments = payments
        self.gateway = gateway
        self.side_effects = side_effects
        self.currency = currency or settings.REFUND_DEFAULT_CURRENCY
        self.lock_factory = lock_factory

    # =========================================================================
    # Initiation
    # =========================================================================

    async def initiate_refund(
        self,
        admin_email: str,
        request: InitiateRefundRequest,
    ) -> ServiceResult[RefundResponse]:
        """
        Initiate a refund for a payment.

        Args:
            admin_email: Identity of the admin issuing the refund
            request: Payment id, optional amount (minor units), speed, reason, notes, receipt

        Returns:
            ServiceResult wrapping RefundResponse for business outcomes;
            failed ServiceResult (GATEWAY_ERROR, VALIDATION_ERROR,
            STORE_ERROR, INTERNAL_ERROR) for infrastructure failures
        """
        logger = self.get_logger()
        payment_id = request.payment_id
        log_context = {
            "payment_id": payment_id,
            "requested_amount": request.amount,
            "admin_email": admin_email,
        }
        logger.info("Initiating refund", extra=log_context)

        if request.amount is not None and (
            isinstance(request.amount, bool) or not isinstance(request.amount, int)
        ):
            return ServiceResult.failure(
                "Refund amount must be an integer number of minor units",
                error_code="VALIDATION_ERROR",
            )

        try:
            payment = await self.payments.get_by_gateway_id(payment_id)
            if payment is None:
                return ServiceResult.success(
                    RefundResponse(success=False, message=f"Payment not found: {payment_id}")
                )
            if payment.amount is None:
                return ServiceResult.success(
                    RefundResponse(success=False, message="Payment amount is not available")
                )

            async with self.lock_factory(payment_id):
                outcome = await self._create_refund(admin_email, request, payment)
            if isinstance(outcome, RefundResponse):
                return ServiceResult.success(outcome)
            if isinstance(outcome, ServiceResult):
                return outcome

            refund = outcome
            await self.side_effects.notify_refund_status(refund)
            cancellation = await self.side_effects.cancel_subscription(
                admin_email, refund.user_email
            )
            message = _initiated_message(cancellation)
            logger.info(
                f"Refund initiated: {refund.refund_id}",
                extra={
                    **log_context,
                    "refund_id": refund.refund_id,
                    "amount": refund.amount,
                    "subscription_cancelled": cancellation.succeeded,
                },
            )
            return ServiceResult.success(
                RefundResponse(success=True, message=message, refund=RefundDto.from_refund(refund))
            )

        except LockAcquisitionError as e:
            logger.warning(
                f"Refund initiation for {payment_id} is busy: {e.message}",
                extra={**log_context, "lock_key": e.details.get("key")},
            )
            return ServiceResult.failure(
                "Another refund for this payment is in progress, try again",
                error_code="LOCK_TIMEOUT",
            )
        except RefundStoreError as e:
            return self.handle_exception(e, "Failed to initiate refund", error_code="STORE_ERROR")
        except Exception as e:
            return self.handle_exception(e, "Failed to initiate refund", error_code="INTERNAL_ERROR")

    async def _create_refund(
        self,
        admin_email: str,
        request: InitiateRefundRequest,
        payment: Payment,
    ) -> Refund | RefundResponse | ServiceResult:
        """
        Balance check, gateway call and insert. Runs under the payment lock.

        Returns the stored Refund, a rejecting RefundResponse, or a
        failed ServiceResult for a gateway error.
        """
        logger = self.get_logger()
        payment_id = payment.gateway_payment_id

        paid = Money(payment.amount, self.currency)
        refunded = await self.store.total_refunded_for_payment(payment_id)
        remaining = paid - refunded

        if remaining.minor <= 0:
            return RefundResponse(
                success=False,
                message="This payment has already been fully refunded",
            )

        amount = Money(request.amount, self.currency) if request.amount is not None else remaining
        if amount.minor <= 0:
            return RefundResponse(success=False, message="Refund amount must be greater than zero")
        if amount > remaining:
            return RefundResponse(
                success=False,
                message=(
                    "Refund amount cannot exceed remaining refundable amount. "
                    f"Requested: {amount.to_major()}, Available: {remaining.to_major()}"
                ),
            )

        try:
            gateway_refund = await self.gateway.create_refund(
                payment_id,
                amount,
                request.speed,
                notes=request.notes,
                receipt=request.receipt,
            )
        except GatewayError as e:
            logger.error(
                f"Gateway refused refund for {payment_id}: {e.message}",
                extra={"payment_id": payment_id, "error_code": e.error_code},
            )
            return ServiceResult.failure(e.message, error_code="GATEWAY_ERROR", errors=e.details)

        refund = refund_from_gateway(
            gateway_refund,
            user_email=payment.user_email,
            user_id=payment.user_id,
            processed_by=admin_email,
            reason=request.reason,
            requested_speed=request.speed,
            receipt=request.receipt,
        )
        if refund.notes is None:
            refund.notes = request.notes

        try:
            return await self.store.create(refund)
        except DuplicateRefundError:
            # A webhook for this refund was recorded before us
            stored = await self.store.get(refund.refund_id)
            return stored or refund
        except RefundStoreError as e:
            logger.error(
                f"Refund {refund.refund_id} created at gateway but not stored: {e.message}",
                extra={"payment_id": payment_id, "refund_id": refund.refund_id},
            )
            return RefundResponse(
                success=False,
                message=f"Refund initiated but failed to store record: {e.message}",
            )

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_refund(self, refund_id: str) -> ServiceResult[RefundDto]:
        try:
            refund = await self.store.get(refund_id)
        except RefundStoreError as e:
            return self.handle_exception(e, "Failed to get refund", error_code="STORE_ERROR")

        if refund is None:
            return ServiceResult.failure(f"Refund not found: {refund_id}", error_code="NOT_FOUND")
        return ServiceResult.success(RefundDto.from_refund(refund))

    async def get_refunds_for_payment(self, payment_id: str) -> ServiceResult[PaymentRefundSummary]:
        """
        All refunds of a payment with its balances, read from the local store.
        """
        try:
            payment = await self.payments.get_by_gateway_id(payment_id)
            if payment is None:
                return ServiceResult.failure(
                    f"Payment not found: {payment_id}",
                    error_code="NOT_FOUND",
                )
            refunds = await self.store.list_by_payment(payment_id)
            total = await self.store.total_refunded_for_payment(payment_id)
        except RefundStoreError as e:
            return self.handle_exception(e, "Failed to get refunds", error_code="STORE_ERROR")

        return ServiceResult.success(build_payment_summary(payment, refunds, total))

    async def get_bill_types(self, payment_id: str) -> ServiceResult[list[BillType]]:
        try:
            payment = await self.payments.get_by_gateway_id(payment_id)
            if payment is None:
                return ServiceResult.failure(
                    f"Payment not found: {payment_id}",
                    error_code="NOT_FOUND",
                )
            refunds = await self.store.list_by_payment(payment_id)
        except RefundStoreError as e:
            return self.handle_exception(e, "Failed to get bill types", error_code="STORE_ERROR")

        paid = Money(payment.amount or 0, self.currency)
        return ServiceResult.success(allowed_bill_types(paid, refunds))
