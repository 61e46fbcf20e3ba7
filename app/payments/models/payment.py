"""
Payment model for verified gateway payments.

Payments are written by the checkout flow after the gateway signature
is verified. The refund engine only reads them: to find the amount that
can be refunded, the user to notify, and total revenue for metrics.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel


class PaymentStatus(models.TextChoices):
    """Verification status of a payment."""

    VERIFIED = "verified", "Verified"
    FAILED = "failed", "Failed"


class Payment(BaseModel):
    """
    A captured, signature-verified customer payment.

    Fields:
        gateway_payment_id: Gateway payment ID (pay_xxx)
        order_id: Gateway order ID (order_xxx)
        user_email: Email of the paying user
        user_id: Application user ID, if known
        amount: Paid amount in minor units; None if the gateway never reported it
        currency: ISO 4217 currency code
        status: Verification status
    """

    # ==========================================================================
    # Gateway Identifiers
    # ==========================================================================

    gateway_payment_id = models.CharField(
        max_length=64,
        unique=True,
        help_text="Gateway payment ID (pay_xxx)",
    )

    order_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Gateway order ID (order_xxx)",
    )

    # ==========================================================================
    # Payer
    # ==========================================================================

    user_email = models.EmailField(
        db_index=True,
        help_text="Email of the paying user",
    )

    user_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Application user ID",
    )

    # ==========================================================================
    # Amount & Status
    # ==========================================================================

    amount = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Paid amount in smallest currency unit (paise)",
    )

    currency = models.CharField(
        max_length=3,
        default="INR",
        help_text="ISO 4217 currency code",
    )

    receipt = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Merchant receipt reference",
    )

    status = models.CharField(
        max_length=16,
        choices=PaymentStatus.choices,
        default=PaymentStatus.VERIFIED,
        db_index=True,
        help_text="Verification status",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"

    def __str__(self) -> str:
        amount_display = "n/a" if self.amount is None else f"{self.amount / 100:.2f}"
        return f"Payment({self.gateway_payment_id}, {self.status}, {amount_display} {self.currency})"
