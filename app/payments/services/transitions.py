"""
Idempotent application of gateway-reported refund statuses.

Webhooks and polling both report "refund X is now in status S". This
module turns such a report into at most one stored transition and at
most one round of notifications, whatever the order or number of
deliveries.

Outcomes (current → reported):
    missing    → any        insert from gateway data (if the payment is known)
    S          → S          duplicate, no-op
    PENDING    → terminal   FSM transition, notify
    terminal   → PENDING    no FSM transition (TransitionNotAllowed), stale
    terminal   → other      FSM correction transition: apply, log anomaly, notify

The store write is conditional on the status the transition started
from, so two concurrent deliveries that both read PENDING cannot both
transition.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django_fsm import TransitionNotAllowed

from core.services import BaseService
from payments.exceptions import DuplicateRefundError
from payments.mappers import (
    AUTO_SYNC_REASON,
    SYSTEM_ACTOR,
    refund_from_gateway,
    speed_processed_from_gateway,
)
from payments.state_machines import TERMINAL_STATUSES

if TYPE_CHECKING:
    from payments.adapters.gateway_client import GatewayRefund
    from payments.models import Refund
    from payments.protocols import PaymentLookup, RefundStore
    from payments.services.side_effects import SideEffectDispatcher


class TransitionOutcome(enum.Enum):
    CREATED = "created"
    APPLIED = "applied"
    CORRECTED = "corrected"
    DUPLICATE = "duplicate"
    STALE = "stale"
    NOT_FOUND = "not_found"


@dataclass
class TransitionResult:
    outcome: TransitionOutcome
    refund: Refund | None = None
    previous_status: str | None = None

    @property
    def changed(self) -> bool:
        return self.outcome in (
            TransitionOutcome.CREATED,
            TransitionOutcome.APPLIED,
            TransitionOutcome.CORRECTED,
        )


class RefundTransitioner(BaseService):
    """
    Applies reported statuses to stored refunds.

    Raises RefundStoreError from the store; callers convert it.
    """

    def __init__(
        self,
        store: RefundStore,
        payments: PaymentLookup,
        side_effects: SideEffectDispatcher,
    ):
        self.store = store
        self.payments = payments
        self.side_effects = side_effects

    async def apply(
        self,
        refund_id: str,
        target: str,
        *,
        gateway_refund: GatewayRefund | None = None,
        source: str = "webhook",
    ) -> TransitionResult:
        """
        Apply `target` to the refund, creating it if it is unknown locally.

        Args:
            refund_id: Gateway refund ID
            target: Reported RefundStatus
            gateway_refund: Full gateway entity, needed to create a missing record
            source: "webhook" or "poll", for logs
        """
        logger = self.get_logger()
        log_context = {"refund_id": refund_id, "target_status": target, "source": source}

        current = await self.store.get(refund_id)
        if current is None:
            return await self._create_missing(refund_id, target, gateway_refund, source)

        if current.status == target:
            logger.info("Refund already in reported status, ignoring duplicate", extra=log_context)
            return TransitionResult(TransitionOutcome.DUPLICATE, current, current.status)

        available = current.transition_for(target)
        if available is None:
            return self._stale(current, target, log_context)

        is_correction = available.custom.get("correction", False)
        if is_correction:
            logger.warning(
                f"Gateway changed terminal refund status {current.status} -> {target}",
                extra={
                    **log_context,
                    "anomaly": "terminal_status_change",
                    "current_status": current.status,
                },
            )

        speed_processed = None
        if gateway_refund is not None:
            speed_processed = speed_processed_from_gateway(gateway_refund.speed_processed)

        previous_status = current.status
        try:
            changed = await self.store.update_status(
                refund_id,
                target,
                speed_processed=speed_processed,
            )
        except TransitionNotAllowed:
            # Stored status moved concurrently to one that cannot reach target
            return self._stale(current, target, log_context)
        if not changed:
            # Another delivery applied the same status between our read and write
            logger.info("Refund status already applied concurrently", extra=log_context)
            return TransitionResult(TransitionOutcome.DUPLICATE, current, previous_status)

        refund = await self.store.get(refund_id)
        logger.info(
            f"Refund status updated {previous_status} -> {target}",
            extra={**log_context, "previous_status": previous_status},
        )
        if target in TERMINAL_STATUSES and refund is not None:
            await self.side_effects.notify_refund_status(refund)

        outcome = TransitionOutcome.CORRECTED if is_correction else TransitionOutcome.APPLIED
        return TransitionResult(outcome, refund, previous_status)

    def _stale(self, current: Refund, target: str, log_context: dict) -> TransitionResult:
        self.get_logger().info(
            f"Ignoring stale {target} report for {current.status} refund",
            extra={**log_context, "current_status": current.status},
        )
        return TransitionResult(TransitionOutcome.STALE, current, current.status)

    async def _create_missing(
        self,
        refund_id: str,
        target: str,
        gateway_refund: GatewayRefund | None,
        source: str,
    ) -> TransitionResult:
        logger = self.get_logger()
        log_context = {"refund_id": refund_id, "target_status": target, "source": source}

        if gateway_refund is None:
            logger.warning("Refund not found locally and report has no full entity", extra=log_context)
            return TransitionResult(TransitionOutcome.NOT_FOUND)

        payment = await self.payments.get_by_gateway_id(gateway_refund.payment_id)
        if payment is None:
            logger.warning(
                "Refund not found locally and its payment is unknown",
                extra={**log_context, "payment_id": gateway_refund.payment_id},
            )
            return TransitionResult(TransitionOutcome.NOT_FOUND)

        refund = refund_from_gateway(
            gateway_refund,
            user_email=payment.user_email,
            user_id=payment.user_id,
            processed_by=SYSTEM_ACTOR,
            reason=AUTO_SYNC_REASON,
        )
        if refund.status != target:
            try:
                refund.transition_to(target)
            except TransitionNotAllowed:
                # A settled gateway refund is not recorded as PENDING
                logger.info(
                    f"Keeping gateway status {refund.status} over stale {target} report",
                    extra=log_context,
                )

        try:
            refund = await self.store.create(refund)
        except DuplicateRefundError:
            # Inserted concurrently (e.g. by the initiating request); treat as a transition
            logger.info("Refund inserted concurrently, re-applying status", extra=log_context)
            return await self.apply(refund_id, target, gateway_refund=gateway_refund, source=source)

        logger.info(
            "Created missing refund from gateway data",
            extra={**log_context, "payment_id": refund.payment_id},
        )
        if refund.status in TERMINAL_STATUSES:
            await self.side_effects.notify_refund_status(refund)
        return TransitionResult(TransitionOutcome.CREATED, refund, None)
