"""
Data types passed across the refund engine's public boundary.

Refund records are stored in minor units; every DTO here carries
amounts in major units (Decimal) because DTOs are the presentation
boundary.

Types:
    InitiateRefundRequest: Input for initiating a refund
    RefundDto: Read-only view of a Refund
    RefundResponse: Business outcome of an initiate-refund call
    PaymentRefundSummary: Refunds and balances for one payment
    RefundHistory: One page of refund history
    MonthlyRefundData: Refunded amount and count for one calendar month
    RefundMetrics: Dashboard aggregate
    RefundExport: CSV export with its download filename
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from payments.state_machines import RefundSpeed

if TYPE_CHECKING:
    from datetime import datetime
    from decimal import Decimal

    from payments.models import Refund
    from payments.money import Money


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class InitiateRefundRequest:
    """
    Parameters for initiating a refund.

    Attributes:
        payment_id: Gateway payment ID to refund
        amount: Amount in minor units; None refunds the whole remaining balance
        speed: Requested refund speed
        reason: Why the refund is issued
        notes: Comment forwarded to the gateway
        receipt: Merchant receipt reference forwarded to the gateway
    """

    payment_id: str
    amount: int | None = None
    speed: str = RefundSpeed.OPTIMUM
    reason: str | None = None
    notes: str | None = None
    receipt: str | None = None


@dataclass
class RefundDto:
    """Read-only view of a stored refund, amounts in major units."""

    refund_id: str
    payment_id: str
    amount: Decimal
    currency: str
    status: str
    speed_requested: str
    speed_processed: str | None
    user_email: str
    processed_by: str
    reason: str | None
    notes: str | None
    receipt: str | None
    created_at: datetime
    processed_at: datetime | None = None
    failed_at: datetime | None = None

    @classmethod
    def from_refund(cls, refund: Refund) -> RefundDto:
        return cls(
            refund_id=refund.refund_id,
            payment_id=refund.payment_id,
            amount=refund.money.to_major(),
            currency=refund.currency,
            status=refund.status,
            speed_requested=refund.speed_requested,
            speed_processed=refund.speed_processed,
            user_email=refund.user_email,
            processed_by=refund.processed_by,
            reason=refund.reason,
            notes=refund.notes,
            receipt=refund.receipt,
            created_at=refund.created_at,
            processed_at=refund.processed_at,
            failed_at=refund.failed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["amount"] = str(self.amount)
        data["created_at"] = _iso(self.created_at)
        data["processed_at"] = _iso(self.processed_at)
        data["failed_at"] = _iso(self.failed_at)
        return data


@dataclass
class RefundResponse:
    """
    Business outcome of initiating a refund.

    success=False is a normal, renderable answer (payment not found,
    nothing left to refund, amount too large). Infrastructure failures
    never produce a RefundResponse; they surface as a failed ServiceResult.
    """

    success: bool
    message: str
    refund: RefundDto | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "refund": self.refund.to_dict() if self.refund else None,
        }


@dataclass
class PaymentRefundSummary:
    """Refund state of a single payment."""

    payment_id: str
    original_amount: Decimal
    total_refunded: Decimal
    remaining_refundable: Decimal
    refunds: list[RefundDto] = field(default_factory=list)
    is_fully_refunded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "original_amount": str(self.original_amount),
            "total_refunded": str(self.total_refunded),
            "remaining_refundable": str(self.remaining_refundable),
            "refunds": [refund.to_dict() for refund in self.refunds],
            "is_fully_refunded": self.is_fully_refunded,
        }


@dataclass
class RefundHistory:
    """One page of refunds, newest first."""

    refunds: list[RefundDto]
    pagination: dict[str, Any]


@dataclass
class MonthlyRefundData:
    """Processed refunds for one calendar month ("YYYY-MM")."""

    month: str
    amount: Money
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "amount": str(self.amount.to_major()),
            "count": self.count,
        }


@dataclass
class RefundMetrics:
    """Dashboard metrics. Amounts in major units."""

    total_refunds: Decimal
    monthly_refunds: Decimal
    refund_rate: float
    total_refund_count: int
    monthly_refund_count: int
    instant_refund_count: int
    normal_refund_count: int
    average_processing_time_hours: float
    monthly_refund_chart: list[MonthlyRefundData] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_refunds": str(self.total_refunds),
            "monthly_refunds": str(self.monthly_refunds),
            "refund_rate": self.refund_rate,
            "total_refund_count": self.total_refund_count,
            "monthly_refund_count": self.monthly_refund_count,
            "instant_refund_count": self.instant_refund_count,
            "normal_refund_count": self.normal_refund_count,
            "average_processing_time_hours": self.average_processing_time_hours,
            "monthly_refund_chart": [entry.to_dict() for entry in self.monthly_refund_chart],
        }


@dataclass
class RefundExport:
    filename: str
    content: str
