"""
Django ORM implementations of the refund engine's persistence interfaces.

DjangoRefundStore:
    Implements RefundStore on the Refund model using Django's async
    ORM API. Status changes run the Refund FSM transition in memory and
    persist it with a conditional update
    (UPDATE ... WHERE refund_id = %s AND status = <previous status>) so
    concurrent deliveries of the same event produce exactly one changed row.

DjangoPaymentLookup:
    Implements PaymentLookup on the Payment model.

Database errors are translated into RefundStoreError so the services
only have to handle the refund exception hierarchy.

Usage:
    from payments.stores import DjangoRefundStore

    store = DjangoRefundStore()
    changed = await store.update_status("rfnd_123", RefundStatus.PROCESSED)
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import DatabaseError, IntegrityError
from django.db.models import Sum
from django.utils import timezone

from payments.exceptions import DuplicateRefundError, RefundStoreError
from payments.models import Payment, PaymentStatus, Refund
from payments.money import Money
from payments.periods import month_bounds, month_key, trailing_months
from payments.state_machines import RefundSpeed, RefundStatus
from payments.types import MonthlyRefundData

if TYPE_CHECKING:
    from datetime import datetime

logger = logging.getLogger(__name__)


def translate_db_errors(func):
    """Re-raise DatabaseError from an async store method as RefundStoreError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except RefundStoreError:
            raise
        except DatabaseError as e:
            logger.error(f"Refund store operation {func.__name__} failed: {e}", exc_info=True)
            raise RefundStoreError(
                f"Database error during {func.__name__}: {e}",
                details={"operation": func.__name__},
            ) from e

    return wrapper


class DjangoRefundStore:
    """RefundStore backed by the Refund model."""

    def __init__(self, currency: str | None = None):
        self.currency = currency or settings.REFUND_DEFAULT_CURRENCY

    def _money(self, minor: int | None) -> Money:
        return Money(int(minor or 0), self.currency)

    # ==========================================================================
    # Reads & Writes
    # ==========================================================================

    @translate_db_errors
    async def get(self, refund_id: str) -> Refund | None:
        return await Refund.objects.filter(refund_id=refund_id).afirst()

    @translate_db_errors
    async def create(self, refund: Refund) -> Refund:
        try:
            await refund.asave(force_insert=True)
        except IntegrityError as e:
            if await Refund.objects.filter(refund_id=refund.refund_id).aexists():
                raise DuplicateRefundError(
                    f"Refund already stored: {refund.refund_id}",
                    details={"refund_id": refund.refund_id},
                ) from e
            raise
        logger.info(
            f"Stored refund {refund.refund_id}",
            extra={
                "refund_id": refund.refund_id,
                "payment_id": refund.payment_id,
                "status": refund.status,
                "amount": refund.amount,
            },
        )
        return refund

    @translate_db_errors
    async def update_status(
        self,
        refund_id: str,
        status: str,
        processed_at: datetime | None = None,
        error_code: str | None = None,
        error_description: str | None = None,
        speed_processed: str | None = None,
    ) -> bool:
        refund = await Refund.objects.filter(refund_id=refund_id).afirst()
        if refund is None or refund.status == status:
            return False

        previous_status = refund.status
        # processed_at is the time the terminal state was reached
        refund.transition_to(
            status,
            at=processed_at,
            error_code=error_code,
            error_description=error_description,
        )
        if speed_processed is not None:
            refund.speed_processed = speed_processed

        rows = await Refund.objects.filter(
            refund_id=refund_id,
            status=previous_status,
        ).aupdate(
            status=refund.status,
            processed_at=refund.processed_at,
            failed_at=refund.failed_at,
            error_code=refund.error_code,
            error_description=refund.error_description,
            speed_processed=refund.speed_processed,
            updated_at=timezone.now(),
        )
        return rows > 0

    @translate_db_errors
    async def list_by_payment(self, payment_id: str) -> list[Refund]:
        queryset = Refund.objects.filter(payment_id=payment_id).order_by("-created_at")
        return [refund async for refund in queryset]

    @translate_db_errors
    async def total_refunded_for_payment(self, payment_id: str) -> Money:
        result = await (
            Refund.objects.filter(payment_id=payment_id)
            .exclude(status=RefundStatus.FAILED)
            .aaggregate(total=Sum("amount"))
        )
        return self._money(result["total"])

    @translate_db_errors
    async def list_all(
        self,
        page: int,
        page_size: int,
        status: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple[list[Refund], int]:
        queryset = Refund.objects.all()
        if status:
            queryset = queryset.filter(status=status)
        if start:
            queryset = queryset.filter(created_at__gte=start)
        if end:
            queryset = queryset.filter(created_at__lt=end)

        total = await queryset.acount()
        offset = (page - 1) * page_size
        page_qs = queryset.order_by("-created_at", "-id")[offset : offset + page_size]
        return [refund async for refund in page_qs], total

    @translate_db_errors
    async def list_created_between(self, start: datetime, end: datetime) -> list[Refund]:
        queryset = Refund.objects.filter(created_at__gte=start, created_at__lt=end).order_by(
            "created_at"
        )
        return [refund async for refund in queryset]

    @translate_db_errors
    async def payment_ids_with_pending_refunds(self, created_before: datetime) -> list[str]:
        queryset = (
            Refund.objects.filter(status=RefundStatus.PENDING, created_at__lt=created_before)
            .order_by("payment_id")
            .values_list("payment_id", flat=True)
            .distinct()
        )
        return [payment_id async for payment_id in queryset]

    # ==========================================================================
    # Aggregates
    # ==========================================================================

    @translate_db_errors
    async def total_refunded_amount(self) -> Money:
        result = await Refund.objects.filter(status=RefundStatus.PROCESSED).aaggregate(
            total=Sum("amount")
        )
        return self._money(result["total"])

    @translate_db_errors
    async def count_refunds(self, month: str | None = None) -> int:
        queryset = Refund.objects.all()
        if month:
            start, end = month_bounds(month)
            queryset = queryset.filter(created_at__gte=start, created_at__lt=end)
        return await queryset.acount()

    @translate_db_errors
    async def monthly_refunded_amount(self, month: str) -> Money:
        start, end = month_bounds(month)
        result = await Refund.objects.filter(
            status=RefundStatus.PROCESSED,
            created_at__gte=start,
            created_at__lt=end,
        ).aaggregate(total=Sum("amount"))
        return self._money(result["total"])

    @translate_db_errors
    async def count_by_speed(self) -> tuple[int, int]:
        instant = await Refund.objects.filter(speed_processed=RefundSpeed.OPTIMUM).acount()
        normal = await Refund.objects.filter(speed_processed=RefundSpeed.NORMAL).acount()
        return instant, normal

    @translate_db_errors
    async def average_processing_time_hours(self) -> float:
        queryset = Refund.objects.filter(
            status=RefundStatus.PROCESSED,
            processed_at__isnull=False,
        ).values_list("created_at", "processed_at")

        total_hours = 0.0
        count = 0
        async for created_at, processed_at in queryset:
            total_hours += (processed_at - created_at).total_seconds() / 3600
            count += 1
        return total_hours / count if count else 0.0

    @translate_db_errors
    async def monthly_trend(self, months_back: int) -> list[MonthlyRefundData]:
        months = trailing_months(months_back)
        window_start, _ = month_bounds(months[0])
        buckets = {month: [0, 0] for month in months}

        queryset = Refund.objects.filter(
            status=RefundStatus.PROCESSED,
            created_at__gte=window_start,
        ).values_list("created_at", "amount")
        async for created_at, amount in queryset:
            key = month_key(timezone.localtime(created_at))
            if key in buckets:
                buckets[key][0] += amount
                buckets[key][1] += 1

        return [
            MonthlyRefundData(month=month, amount=self._money(amount), count=count)
            for month, (amount, count) in buckets.items()
        ]


class DjangoPaymentLookup:
    """PaymentLookup backed by the Payment model."""

    def __init__(self, currency: str | None = None):
        self.currency = currency or settings.REFUND_DEFAULT_CURRENCY

    @translate_db_errors
    async def get_by_gateway_id(self, payment_id: str) -> Payment | None:
        return await Payment.objects.filter(gateway_payment_id=payment_id).afirst()

    @translate_db_errors
    async def total_revenue(self) -> Money:
        result = await Payment.objects.filter(
            status=PaymentStatus.VERIFIED,
            amount__isnull=False,
        ).aaggregate(total=Sum("amount"))
        return Money(int(result["total"] or 0), self.currency)
