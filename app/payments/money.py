"""
Integer money arithmetic in minor currency units.

All refund bookkeeping (refundable remainder, totals, comparisons) is
done on whole paise. Conversion to major units happens only at the
presentation boundary through to_major().

Usage:
    from payments.money import Money

    paid = Money(10000)            # ₹100.00
    refunded = Money(4000)
    remaining = paid - refunded    # Money(minor=6000, currency="INR")
    remaining.to_major()           # Decimal("60.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

MINOR_UNITS_PER_MAJOR = 100

CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
}


@dataclass(frozen=True, order=True)
class Money:
    """
    An amount of money held as an integer count of minor units.

    Attributes:
        minor: Amount in the smallest currency unit (paise for INR)
        currency: ISO 4217 code, upper case
    """

    minor: int
    currency: str = "INR"

    def __post_init__(self):
        # bool is an int subclass; floats would silently lose paise
        if isinstance(self.minor, bool) or not isinstance(self.minor, int):
            raise TypeError(
                f"Money requires an integer minor amount, got {type(self.minor).__name__}"
            )
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def zero(cls, currency: str = "INR") -> Money:
        return cls(0, currency)

    @classmethod
    def total(cls, amounts: Iterable[Money], currency: str = "INR") -> Money:
        """Sum an iterable of Money values, starting from zero."""
        result = cls.zero(currency)
        for amount in amounts:
            result = result + amount
        return result

    def _check_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Currency mismatch: {self.currency} vs {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(self.minor + other.minor, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(self.minor - other.minor, self.currency)

    @property
    def is_positive(self) -> bool:
        return self.minor > 0

    @property
    def is_zero(self) -> bool:
        return self.minor == 0

    def to_major(self) -> Decimal:
        """Return the amount in major units with two decimal places."""
        return (Decimal(self.minor) / MINOR_UNITS_PER_MAJOR).quantize(Decimal("0.01"))

    def format(self) -> str:
        """Human-readable amount, e.g. "₹40.00"."""
        symbol = CURRENCY_SYMBOLS.get(self.currency)
        if symbol:
            return f"{symbol}{self.to_major()}"
        return f"{self.to_major()} {self.currency}"

    def __str__(self) -> str:
        return self.format()
