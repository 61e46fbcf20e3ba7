"""
State enums and transition rules for refunds.

These are Django TextChoices for database storage and admin integration.
Values are the upper-case names so they read the same in the database,
in CSV exports and in API payloads.

Refund State Machine:
    (absent) → PENDING | PROCESSED | FAILED   (record created from gateway data)
    PENDING → PROCESSED
    PENDING → FAILED
    PROCESSED ↔ FAILED                          (gateway correction, logged as anomaly)

Terminal states: PROCESSED, FAILED. A terminal refund never moves back
to PENDING; a late "created" event for it is ignored as stale. The
transitions themselves are django-fsm methods on payments.models.Refund.
"""

from __future__ import annotations

from django.db import models


class RefundStatus(models.TextChoices):
    """
    Canonical refund status.

    State Flow:
        PENDING → PROCESSED
        PENDING → FAILED
    """

    PENDING = "PENDING", "Pending"
    PROCESSED = "PROCESSED", "Processed"
    FAILED = "FAILED", "Failed"


class RefundSpeed(models.TextChoices):
    """
    Refund speed.

    OPTIMUM asks the gateway for an instant refund where the payment
    method allows it; NORMAL is the standard 5-7 day settlement.
    """

    OPTIMUM = "OPTIMUM", "Optimum"
    NORMAL = "NORMAL", "Normal"


class BillType(models.TextChoices):
    """Bill documents that can be produced for a payment."""

    ORIGINAL_BILL = "ORIGINAL_BILL", "Original Bill"
    REFUND_ADJUSTMENT_BILL = "REFUND_ADJUSTMENT_BILL", "Refund Adjustment Bill"
    NET_AMOUNT_BILL = "NET_AMOUNT_BILL", "Net Amount Bill"
    REFUND_RECEIPT = "REFUND_RECEIPT", "Refund Receipt"


TERMINAL_STATUSES = frozenset([RefundStatus.PROCESSED, RefundStatus.FAILED])
