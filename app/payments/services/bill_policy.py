"""
Which bill documents can be issued for a payment.

Pure function of the payment amount and its refunds. Only PROCESSED
refunds count: money that has not actually gone back to the customer
does not change what the customer was billed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from payments.money import Money
from payments.state_machines import BillType, RefundStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from payments.models import Refund


def settled_refund_total(payment_amount: Money, refunds: Iterable[Refund]) -> Money:
    return Money(
        sum(refund.amount for refund in refunds if refund.status == RefundStatus.PROCESSED),
        payment_amount.currency,
    )


def allowed_bill_types(payment_amount: Money, refunds: Iterable[Refund]) -> list[BillType]:
    """
    Bill types available for a payment.

    - No settled refund: ORIGINAL_BILL
    - Partially refunded: all four types
    - Fully refunded: no NET_AMOUNT_BILL, since the net amount is zero
    """
    refunded = settled_refund_total(payment_amount, refunds)
    if refunded.is_zero:
        return [BillType.ORIGINAL_BILL]
    if refunded.minor >= payment_amount.minor:
        return [
            BillType.ORIGINAL_BILL,
            BillType.REFUND_ADJUSTMENT_BILL,
            BillType.REFUND_RECEIPT,
        ]
    return [
        BillType.ORIGINAL_BILL,
        BillType.REFUND_ADJUSTMENT_BILL,
        BillType.NET_AMOUNT_BILL,
        BillType.REFUND_RECEIPT,
    ]
