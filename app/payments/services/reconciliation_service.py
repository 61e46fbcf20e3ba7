"""
Reconciliation of local refunds against the gateway's refund list.

This module provides the RefundReconciliationService, which pulls the
gateway's view of a payment's refunds and heals the local store:

    1. Refunds present at the gateway but missing locally are inserted
       (reason "auto-synced from gateway", processed_by "system")
    2. Known refunds whose gateway status moved on are transitioned
       through the same idempotent path webhooks use

When the gateway cannot be reached the last known local state is
returned instead of an error; stale data beats no data for an admin
looking at a payment.

Usage:
    from payments.services import RefundReconciliationService

    # On-demand resync for one payment
    result = await reconciliation.check_payment_refund_status("pay_123")

    # Periodic sweep of refunds stuck in PENDING
    result = await reconciliation.sync_pending_refunds(older_than=timedelta(hours=1))
    print(f"Updated {result.data.refunds_updated} refunds")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.utils import timezone

from core.services import BaseService, ServiceResult
from payments.exceptions import GatewayError, RefundStoreError
from payments.mappers import status_from_gateway
from payments.services.transitions import TransitionOutcome

if TYPE_CHECKING:
    from datetime import timedelta

    from payments.adapters.gateway_client import GatewayClient
    from payments.protocols import PaymentLookup, RefundStore
    from payments.services.refund_service import RefundService
    from payments.services.transitions import RefundTransitioner
    from payments.types import PaymentRefundSummary


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class SyncCounts:
    """What one gateway sync changed for a payment."""

    refunds_seen: int = 0
    refunds_created: int = 0
    refunds_updated: int = 0


@dataclass
class SweepResult:
    """
    Result of a pending-refund sweep.

    Attributes:
        payments_checked: Payments whose refunds were fetched from the gateway
        refunds_created: Missing refunds inserted
        refunds_updated: Known refunds whose status changed
        errors: Per-payment failures, as "payment_id: message"
    """

    payments_checked: int = 0
    refunds_created: int = 0
    refunds_updated: int = 0
    errors: list[str] = field(default_factory=list)


# =============================================================================
# Reconciliation Service
# =============================================================================


class RefundReconciliationService(BaseService):
    """Brings local refunds in line with the gateway by polling."""

    def __init__(
        self,
        store: RefundStore,
        payments: PaymentLookup,
        gateway: GatewayClient,
        transitioner: RefundTransitioner,
        refunds: RefundService,
    ):
        self.store = store
        self.payments = payments
        self.gateway = gateway
        self.transitioner = transitioner
        self.refunds = refunds

    async def check_payment_refund_status(
        self,
        payment_id: str,
    ) -> ServiceResult[PaymentRefundSummary]:
        """
        Resync a payment's refunds from the gateway and return its summary.

        The summary is always read back from the local store. A gateway
        failure is logged and the local summary is returned unchanged.

        Returns:
            ServiceResult with PaymentRefundSummary; NOT_FOUND when the
            payment is unknown, STORE_ERROR on persistence failure
        """
        logger = self.get_logger()
        try:
            payment = await self.payments.get_by_gateway_id(payment_id)
            if payment is None:
                return ServiceResult.failure(
                    f"Payment not found: {payment_id}",
                    error_code="NOT_FOUND",
                )
            await self._sync_from_gateway(payment_id)
        except GatewayError as e:
            logger.warning(
                f"Gateway refund list unavailable for {payment_id}, returning local data: {e.message}",
                extra={"payment_id": payment_id, "error_code": e.error_code},
            )
        except RefundStoreError as e:
            return self.handle_exception(e, "Failed to sync refunds", error_code="STORE_ERROR")
        except Exception as e:
            return self.handle_exception(e, "Failed to sync refunds", error_code="INTERNAL_ERROR")

        return await self.refunds.get_refunds_for_payment(payment_id)

    async def sync_pending_refunds(self, older_than: timedelta) -> ServiceResult[SweepResult]:
        """
        Resync every payment that has a refund PENDING for longer than `older_than`.

        One payment failing does not stop the sweep; failures are
        collected in SweepResult.errors.
        """
        logger = self.get_logger()
        cutoff = timezone.now() - older_than
        try:
            payment_ids = await self.store.payment_ids_with_pending_refunds(cutoff)
        except RefundStoreError as e:
            return self.handle_exception(e, "Failed to list pending refunds", error_code="STORE_ERROR")

        result = SweepResult()
        for payment_id in payment_ids:
            try:
                counts = await self._sync_from_gateway(payment_id)
            except (GatewayError, RefundStoreError) as e:
                logger.warning(
                    f"Pending refund sync failed for {payment_id}: {e.message}",
                    extra={"payment_id": payment_id, "error_code": e.error_code},
                )
                result.errors.append(f"{payment_id}: {e.message}")
                continue
            result.payments_checked += 1
            result.refunds_created += counts.refunds_created
            result.refunds_updated += counts.refunds_updated

        logger.info(
            "Pending refund sweep finished",
            extra={
                "payments_checked": result.payments_checked,
                "refunds_created": result.refunds_created,
                "refunds_updated": result.refunds_updated,
                "error_count": len(result.errors),
            },
        )
        return ServiceResult.success(result)

    async def _sync_from_gateway(self, payment_id: str) -> SyncCounts:
        """
        Apply the gateway's refund list for one payment.

        Raises:
            GatewayError: The list call failed
            RefundStoreError: A store read or write failed
        """
        gateway_refunds = await self.gateway.list_refunds(payment_id)
        counts = SyncCounts(refunds_seen=len(gateway_refunds))

        for gateway_refund in gateway_refunds:
            result = await self.transitioner.apply(
                gateway_refund.id,
                status_from_gateway(gateway_refund.status),
                gateway_refund=gateway_refund,
                source="poll",
            )
            if result.outcome is TransitionOutcome.CREATED:
                counts.refunds_created += 1
            elif result.changed:
                counts.refunds_updated += 1

        self.get_logger().info(
            f"Synced {counts.refunds_seen} gateway refunds for {payment_id}",
            extra={
                "payment_id": payment_id,
                "refunds_created": counts.refunds_created,
                "refunds_updated": counts.refunds_updated,
            },
        )
        return counts
