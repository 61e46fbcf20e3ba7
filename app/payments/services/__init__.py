"""
Refund engine services.

Services:
    RefundService: Initiate refunds, read refunds and payment summaries
    RefundReconciliationService: Resync refunds from the gateway
    RefundTransitioner: Idempotent status transitions (webhook and poll)
    SideEffectDispatcher: Notifications and subscription cancellation
    RefundMetricsService: History, dashboard metrics and CSV export
"""

from payments.services.bill_policy import allowed_bill_types
from payments.services.metrics_service import RefundMetricsService
from payments.services.reconciliation_service import (
    RefundReconciliationService,
    SweepResult,
)
from payments.services.refund_service import RefundService
from payments.services.side_effects import CancellationOutcome, SideEffectDispatcher
from payments.services.transitions import (
    RefundTransitioner,
    TransitionOutcome,
    TransitionResult,
)

__all__ = [
    "CancellationOutcome",
    "RefundMetricsService",
    "RefundReconciliationService",
    "RefundService",
    "RefundTransitioner",
    "SideEffectDispatcher",
    "SweepResult",
    "TransitionOutcome",
    "TransitionResult",
    "allowed_bill_types",
]
