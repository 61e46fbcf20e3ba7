"""
Calendar-month helpers for refund metrics.

Months are keyed as "YYYY-MM" strings in the active Django time zone.
"""

from __future__ import annotations

from datetime import date, datetime, time

from django.utils import timezone


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def current_month() -> str:
    return month_key(timezone.localdate())


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by `delta` months, either direction."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def trailing_months(count: int, today: date | None = None) -> list[str]:
    """
    Keys for the last `count` calendar months, oldest first.

    The current month is always the last entry.

    Example:
        trailing_months(3, date(2025, 2, 10))  # ["2024-12", "2025-01", "2025-02"]
    """
    today = today or timezone.localdate()
    months = []
    for offset in range(count - 1, -1, -1):
        year, month = shift_month(today.year, today.month, -offset)
        months.append(f"{year:04d}-{month:02d}")
    return months


def month_bounds(key: str) -> tuple[datetime, datetime]:
    """
    Aware [start, end) datetimes for a "YYYY-MM" key.

    Raises:
        ValueError: If the key is not a valid month
    """
    year_part, _, month_part = key.partition("-")
    year, month = int(year_part), int(month_part)
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {key}")
    next_year, next_month = shift_month(year, month, 1)
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(date(year, month, 1), time.min), tz)
    end = timezone.make_aware(datetime.combine(date(next_year, next_month, 1), time.min), tz)
    return start, end
