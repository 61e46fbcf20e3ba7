"""
Payment domain models.

This module contains the refund-related models:
- Payment: Verified customer payment that refunds are issued against
- Refund: Local mirror of a gateway refund and its lifecycle
"""

from payments.models.payment import Payment, PaymentStatus
from payments.models.refund import Refund

__all__ = [
    "Payment",
    "PaymentStatus",
    "Refund",
]
