"""
Read-only refund reporting: history, dashboard metrics and CSV export.

Everything here is derived from the refund store and the payment
lookup; nothing is written. Amount totals count PROCESSED refunds only,
since pending or failed refunds have not moved money.

Usage:
    from payments.services import RefundMetricsService

    metrics = RefundMetricsService(store, payments)
    history = await metrics.get_refund_history(page=1, page_size=20, status="PENDING")
    dashboard = await metrics.get_refund_metrics()
    export = await metrics.export_refunds("2025-01-01", "2025-01-31")
"""

from __future__ import annotations

import csv
import io
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from core.exceptions import ValidationError
from core.helpers import calculate_pagination
from core.services import BaseService, ServiceResult
from payments.exceptions import RefundStoreError
from payments.periods import current_month
from payments.state_machines import RefundStatus
from payments.types import RefundDto, RefundExport, RefundHistory, RefundMetrics

if TYPE_CHECKING:
    from collections.abc import Iterable

    from payments.models import Refund
    from payments.protocols import PaymentLookup, RefundStore


MAX_PAGE_SIZE = 100
TREND_MONTHS = 12

CSV_COLUMNS = [
    "Refund ID",
    "Payment ID",
    "User Email",
    "Amount",
    "Currency",
    "Status",
    "Refund Type",
    "Reason",
    "Processed By",
    "Created Date",
    "Processed Date",
]


# =============================================================================
# Helpers
# =============================================================================


def parse_date_bound(value: date | datetime | str | None, *, end: bool = False) -> datetime | None:
    """
    Turn a date or ISO string into an aware datetime bound.

    Date-only values are whole days: as an end bound the result is the
    start of the following day, so ranges include the end date.

    Raises:
        ValidationError: If the value cannot be parsed
    """
    if value in (None, ""):
        return None

    if isinstance(value, datetime):
        parsed_datetime, parsed_date = value, None
    elif isinstance(value, date):
        parsed_datetime, parsed_date = None, value
    else:
        try:
            parsed_date = parse_date(value) if len(value) == 10 else None
            parsed_datetime = None if parsed_date else parse_datetime(value)
        except ValueError:
            parsed_date = parsed_datetime = None
        if parsed_date is None and parsed_datetime is None:
            raise ValidationError(f"Invalid date: {value}", details={"value": value})

    if parsed_date is not None:
        day = parsed_date + timedelta(days=1) if end else parsed_date
        return timezone.make_aware(datetime.combine(day, time.min))
    if timezone.is_naive(parsed_datetime):
        return timezone.make_aware(parsed_datetime)
    return parsed_datetime


def csv_filename(start_date: date | str, end_date: date | str) -> str:
    return f"refunds_{start_date}_to_{end_date}.csv"


def _sanitize_reason(reason: str | None) -> str:
    """Commas become semicolons and line breaks become spaces."""
    return (reason or "").replace(",", ";").replace("\r\n", " ").replace("\n", " ").replace("\r", " ")


def _csv_values(refund: Refund) -> list[str]:
    return [
        refund.refund_id,
        refund.payment_id,
        refund.user_email,
        str(refund.money.to_major()),
        refund.currency,
        refund.status,
        refund.refund_type,
        _sanitize_reason(refund.reason),
        refund.processed_by,
        refund.created_at.isoformat(),
        refund.processed_at.isoformat() if refund.processed_at else "",
    ]


def _csv_writer(output: io.StringIO):
    # Every field is quoted, so the reason column always is
    return csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")


def format_csv_row(refund: Refund) -> str:
    output = io.StringIO()
    _csv_writer(output).writerow(_csv_values(refund))
    return output.getvalue().rstrip("\n")


def render_refunds_csv(refunds: Iterable[Refund]) -> str:
    output = io.StringIO()
    writer = _csv_writer(output)
    writer.writerow(CSV_COLUMNS)
    for refund in refunds:
        writer.writerow(_csv_values(refund))
    return output.getvalue()


# =============================================================================
# Metrics Service
# =============================================================================


class RefundMetricsService(BaseService):
    """Refund history, dashboard aggregates and CSV export."""

    def __init__(self, store: RefundStore, payments: PaymentLookup):
        self.store = store
        self.payments = payments

    async def get_refund_history(
        self,
        page: int = 1,
        page_size: int = 20,
        status: str | None = None,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> ServiceResult[RefundHistory]:
        """
        One page of refunds, newest first.

        Returns:
            ServiceResult with RefundHistory; VALIDATION_ERROR for a bad
            page, page size, status or date
        """
        if page < 1:
            return ServiceResult.failure("Page must be at least 1", error_code="VALIDATION_ERROR")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            return ServiceResult.failure(
                f"Page size must be between 1 and {MAX_PAGE_SIZE}",
                error_code="VALIDATION_ERROR",
            )

        if status:
            status = status.upper()
            if status not in RefundStatus.values:
                return ServiceResult.failure(
                    f"Invalid refund status: {status}",
                    error_code="VALIDATION_ERROR",
                )

        try:
            start = parse_date_bound(start_date)
            end = parse_date_bound(end_date, end=True)
            refunds, total = await self.store.list_all(page, page_size, status, start, end)
        except ValidationError as e:
            return ServiceResult.from_exception(e)
        except RefundStoreError as e:
            return self.handle_exception(e, "Failed to get refund history", error_code="STORE_ERROR")

        pagination = calculate_pagination(total, page, page_size)
        return ServiceResult.success(
            RefundHistory(
                refunds=[RefundDto.from_refund(refund) for refund in refunds],
                pagination=pagination,
            )
        )

    async def get_refund_metrics(self) -> ServiceResult[RefundMetrics]:
        """Dashboard aggregate including a 12-month trend, oldest month first."""
        month = current_month()
        try:
            total_refunded = await self.store.total_refunded_amount()
            monthly_refunded = await self.store.monthly_refunded_amount(month)
            revenue = await self.payments.total_revenue()
            total_count = await self.store.count_refunds()
            monthly_count = await self.store.count_refunds(month)
            instant_count, normal_count = await self.store.count_by_speed()
            average_hours = await self.store.average_processing_time_hours()
            chart = await self.store.monthly_trend(TREND_MONTHS)
        except RefundStoreError as e:
            return self.handle_exception(e, "Failed to get refund metrics", error_code="STORE_ERROR")

        refund_rate = 0.0
        if revenue.minor > 0:
            refund_rate = round(total_refunded.minor / revenue.minor * 100, 2)

        return ServiceResult.success(
            RefundMetrics(
                total_refunds=total_refunded.to_major(),
                monthly_refunds=monthly_refunded.to_major(),
                refund_rate=refund_rate,
                total_refund_count=total_count,
                monthly_refund_count=monthly_count,
                instant_refund_count=instant_count,
                normal_refund_count=normal_count,
                average_processing_time_hours=round(average_hours, 2),
                monthly_refund_chart=chart,
            )
        )

    async def export_refunds(
        self,
        start_date: date | str,
        end_date: date | str,
    ) -> ServiceResult[RefundExport]:
        """
        CSV of refunds created in [start_date, end_date], both days inclusive.
        """
        try:
            start = parse_date_bound(start_date)
            end = parse_date_bound(end_date, end=True)
            if start is None or end is None:
                raise ValidationError("Start and end dates are required")
            if start >= end:
                raise ValidationError("Start date must not be after end date")
            refunds = await self.store.list_created_between(start, end)
        except ValidationError as e:
            return ServiceResult.from_exception(e)
        except RefundStoreError as e:
            return self.handle_exception(e, "Failed to export refunds", error_code="STORE_ERROR")

        self.get_logger().info(
            f"Exported {len(refunds)} refunds",
            extra={"start_date": str(start_date), "end_date": str(end_date)},
        )
        return ServiceResult.success(
            RefundExport(
                filename=csv_filename(start_date, end_date),
                content=render_refunds_csv(refunds),
            )
        )
