"""
Refund model mirroring gateway refunds.

A Refund is created either when an admin initiates it through the
engine, or when reconciliation discovers a gateway refund that has no
local record. Status is an FSMField: it only changes through the
transition methods below. DjangoRefundStore persists a transition with
a conditional update on the previous status, so concurrent webhook
deliveries cannot both "win" the same transition.

Usage:
    from payments.models import Refund
    from payments.state_machines import RefundStatus

    pending = Refund.objects.filter(status=RefundStatus.PENDING)

    # State transitions using django-fsm
    refund.process()  # PENDING -> PROCESSED
    refund.transition_to(RefundStatus.FAILED)  # picks correct_to_failed
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, TransitionNotAllowed, transition

from core.models import BaseModel
from payments.money import Money
from payments.state_machines import TERMINAL_STATUSES, RefundSpeed, RefundStatus


class Refund(BaseModel):
    """
    Money returned to a customer against one payment.

    State Flow:
        PENDING -> PROCESSED
        PENDING -> FAILED
        PROCESSED <-> FAILED (gateway correction)

    Fields:
        refund_id: Gateway refund ID (rfnd_xxx)
        payment_id: Gateway payment ID the refund belongs to
        amount: Refund amount in smallest currency unit
        status: Current refund status
        speed_requested: Speed asked for at initiation
        speed_processed: Speed the gateway actually used, once known
        processed_by: Admin email, or "system" for reconciled records
        acquirer_data: Bank reference data (ARN/RRN) from the gateway

    Note:
        Several refunds can exist for one payment. The sum of
        non-failed refunds never exceeds the payment amount.
    """

    # ==========================================================================
    # Gateway Identifiers
    # ==========================================================================

    refund_id = models.CharField(
        max_length=64,
        unique=True,
        help_text="Gateway refund ID (rfnd_xxx)",
    )

    payment_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Gateway payment ID being refunded",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount = models.PositiveBigIntegerField(
        help_text="Refund amount in smallest currency unit (paise)",
    )

    currency = models.CharField(
        max_length=3,
        default="INR",
        help_text="ISO 4217 currency code",
    )

    # ==========================================================================
    # Status & Speed
    # ==========================================================================

    status = FSMField(
        max_length=16,
        choices=RefundStatus.choices,
        default=RefundStatus.PENDING,
        db_index=True,
        protected=True,
        help_text="Current refund status (managed by FSM)",
    )

    speed_requested = models.CharField(
        max_length=16,
        choices=RefundSpeed.choices,
        default=RefundSpeed.OPTIMUM,
        help_text="Speed requested at initiation",
    )

    speed_processed = models.CharField(
        max_length=16,
        choices=RefundSpeed.choices,
        null=True,
        blank=True,
        help_text="Speed the gateway used to settle the refund",
    )

    # ==========================================================================
    # Ownership & Context
    # ==========================================================================

    user_email = models.EmailField(
        db_index=True,
        help_text="Email of the user receiving the refund",
    )

    user_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Application user ID",
    )

    processed_by = models.CharField(
        max_length=255,
        help_text="Admin email that initiated the refund, or 'system'",
    )

    reason = models.TextField(
        null=True,
        blank=True,
        help_text="Reason for the refund",
    )

    notes = models.TextField(
        null=True,
        blank=True,
        help_text="Free-form comment sent to the gateway",
    )

    receipt = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Merchant receipt reference",
    )

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the refund reached PROCESSED",
    )

    failed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the refund reached FAILED",
    )

    # ==========================================================================
    # Gateway Metadata & Error Info
    # ==========================================================================

    acquirer_data = models.JSONField(
        null=True,
        blank=True,
        help_text="Acquirer references (arn, rrn) reported by the gateway",
    )

    batch_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Gateway settlement batch ID",
    )

    error_code = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Gateway error code if the refund failed",
    )

    error_description = models.TextField(
        null=True,
        blank=True,
        help_text="Gateway error description if the refund failed",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Refund"
        verbose_name_plural = "Refunds"
        indexes = [
            models.Index(fields=["payment_id", "status"], name="payments_re_payment_4c1f0a_idx"),
            models.Index(fields=["status", "created_at"], name="payments_re_status_8b2d7e_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="refund_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation with ID, status, and amount."""
        amount_display = f"{self.amount / 100:.2f} {self.currency.upper()}"
        return f"Refund({self.refund_id}, {self.status}, {amount_display})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=RefundStatus.PENDING,
        target=RefundStatus.PROCESSED,
    )
    def process(self, at=None):
        """
        Mark the refund as settled.

        Transition: PENDING -> PROCESSED
        """
        self.processed_at = at or timezone.now()

    @transition(
        field=status,
        source=RefundStatus.PENDING,
        target=RefundStatus.FAILED,
    )
    def fail(self, at=None, error_code=None, error_description=None):
        """
        Mark the refund as failed.

        Transition: PENDING -> FAILED
        """
        self.failed_at = at or timezone.now()
        self._record_error(error_code, error_description)

    @transition(
        field=status,
        source=RefundStatus.FAILED,
        target=RefundStatus.PROCESSED,
        custom={"correction": True},
    )
    def correct_to_processed(self, at=None):
        """
        Gateway reports a failed refund as settled after all.

        Transition: FAILED -> PROCESSED
        """
        self.processed_at = at or timezone.now()
        self.failed_at = None

    @transition(
        field=status,
        source=RefundStatus.PROCESSED,
        target=RefundStatus.FAILED,
        custom={"correction": True},
    )
    def correct_to_failed(self, at=None, error_code=None, error_description=None):
        """
        Gateway reports a settled refund as failed.

        Transition: PROCESSED -> FAILED
        """
        self.failed_at = at or timezone.now()
        self.processed_at = None
        self._record_error(error_code, error_description)

    def _record_error(self, error_code, error_description):
        if error_code is not None:
            self.error_code = error_code
        if error_description is not None:
            self.error_description = error_description

    def transition_for(self, target: str):
        """Return the available FSM transition into `target`, or None."""
        return next(
            (t for t in self.get_available_status_transitions() if t.target == target),
            None,
        )

    def transition_to(self, target: str, at=None, error_code=None, error_description=None):
        """
        Run whichever transition moves this refund into `target`.

        Returns:
            The django-fsm Transition that was applied

        Raises:
            TransitionNotAllowed: No transition leads from the current
                status to `target` (including target == current status)
        """
        available = self.transition_for(target)
        if available is None:
            raise TransitionNotAllowed(
                f"Refund {self.refund_id} cannot move from {self.status} to {target}",
                object=self,
            )
        method = getattr(self, available.name)
        if target == RefundStatus.FAILED:
            method(at=at, error_code=error_code, error_description=error_description)
        else:
            method(at=at)
        return available

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def money(self) -> Money:
        return Money(self.amount, self.currency)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def refund_type(self) -> str:
        """Speed actually used when known, otherwise the requested one."""
        return self.speed_processed or self.speed_requested
