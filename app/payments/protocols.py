"""
Collaborator interfaces consumed by the refund engine.

The engine depends only on these Protocols. Django-backed
implementations live in payments.stores and payments.collaborators;
tests substitute in-memory fakes from payments.tests.fakes.

Available Protocols:
    RefundStore: Refund persistence and aggregate queries
    PaymentLookup: Read-only access to verified payments
    UserLookup: Finds users (and their push token) by email
    NotificationSender: Push notification delivery
    RefundEmailSender: Refund status emails
    SubscriptionCanceller: Cancels a user's subscription after a refund
    SecretsProvider: Named secret lookup

Usage:
    from payments.protocols import RefundStore

    async def pending_count(store: RefundStore, payment_id: str) -> int:
        refunds = await store.list_by_payment(payment_id)
        return sum(1 for refund in refunds if refund.status == "PENDING")

Note:
    - Store methods raise RefundStoreError on infrastructure failure
    - @runtime_checkable allows isinstance() checks
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from core.services import ServiceResult
    from payments.models import Payment, Refund
    from payments.money import Money
    from payments.types import MonthlyRefundData


@runtime_checkable
class RefundStore(Protocol):
    """
    Persistence for refund records.

    Amounts are always minor units. Implementations must make
    update_status conditional so that two writers applying the same
    status produce exactly one change.
    """

    async def get(self, refund_id: str) -> Refund | None:
        ...

    async def create(self, refund: Refund) -> Refund:
        """
        Insert a new refund.

        Raises:
            DuplicateRefundError: refund_id already stored
            RefundStoreError: Any other persistence failure
        """
        ...

    async def update_status(
        self,
        refund_id: str,
        status: str,
        processed_at: datetime | None = None,
        error_code: str | None = None,
        error_description: str | None = None,
        speed_processed: str | None = None,
    ) -> bool:
        """
        Move a refund to `status` through its FSM transition.

        processed_at is stamped only when entering PROCESSED and
        failed_at only when entering FAILED; a correction between the
        terminal statuses clears the other timestamp.

        Returns:
            True if a row changed, False if the refund is missing or
            already had the status

        Raises:
            TransitionNotAllowed: The stored status cannot move to `status`
        """
        ...

    async def list_by_payment(self, payment_id: str) -> list[Refund]:
        ...

    async def total_refunded_for_payment(self, payment_id: str) -> Money:
        """Sum of non-failed refunds for the payment."""
        ...

    async def list_all(
        self,
        page: int,
        page_size: int,
        status: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple[list[Refund], int]:
        """Return one page (newest first) and the total matching count."""
        ...

    async def total_refunded_amount(self) -> Money:
        ...

    async def count_refunds(self, month: str | None = None) -> int:
        ...

    async def monthly_refunded_amount(self, month: str) -> Money:
        ...

    async def count_by_speed(self) -> tuple[int, int]:
        """Return (instant/optimum count, normal count) by processed speed."""
        ...

    async def average_processing_time_hours(self) -> float:
        ...

    async def monthly_trend(self, months_back: int) -> list[MonthlyRefundData]:
        ...

    async def list_created_between(self, start: datetime, end: datetime) -> list[Refund]:
        ...

    async def payment_ids_with_pending_refunds(self, created_before: datetime) -> list[str]:
        ...


@runtime_checkable
class PaymentLookup(Protocol):
    """Read-only access to verified payments."""

    async def get_by_gateway_id(self, payment_id: str) -> Payment | None:
        ...

    async def total_revenue(self) -> Money:
        ...


@runtime_checkable
class PushRecipient(Protocol):
    """The user fields the engine reads."""

    email: str
    fcm_token: str | None


@runtime_checkable
class UserLookup(Protocol):
    async def find_by_email(self, email: str) -> PushRecipient | None:
        ...


@runtime_checkable
class NotificationSender(Protocol):
    """
    Push notification delivery.

    Example:
        result = await sender.send(token, "Refund Completed", "Your refund ...")
        if not result.success:
            logger.warning(result.error)
    """

    async def send(self, token: str, title: str, body: str) -> ServiceResult[None]:
        ...


@runtime_checkable
class RefundEmailSender(Protocol):
    async def send_refund_notification(
        self,
        email: str,
        refund_id: str,
        amount: Money,
        status: str,
    ) -> ServiceResult[None]:
        ...


@runtime_checkable
class SubscriptionCanceller(Protocol):
    async def cancel_user_subscription(
        self,
        admin_email: str,
        target_user_email: str,
    ) -> ServiceResult[None]:
        ...


@runtime_checkable
class SecretsProvider(Protocol):
    def get_secret(self, name: str) -> str:
        """
        Return the secret value.

        Raises:
            SecretNotFoundError: If the secret is not configured
        """
        ...
