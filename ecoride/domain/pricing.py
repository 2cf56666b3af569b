"""
Seat pricing (Strategy Pattern)
===============================

Formula
-------
Total = Price_Per_Seat x Seats, rounded to cents.

The client may quote its own total (the original web client computes it
from the trip card); ``QuotedPricing`` keeps that value as given while
``PerSeatPricing`` derives it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal

from .exceptions import ValidationError

CENTS = Decimal("0.01")


# ── Strategy hierarchy ────────────────────────────────────────────────


class PricingStrategy(ABC):
    @abstractmethod
    def calculate(self, price_per_seat: Decimal, seats: int) -> Decimal: ...


class PerSeatPricing(PricingStrategy):
    def calculate(self, price_per_seat: Decimal, seats: int) -> Decimal:
        return (Decimal(price_per_seat) * seats).quantize(
            CENTS, rounding=ROUND_HALF_UP
        )


class QuotedPricing(PricingStrategy):
    def __init__(self, quoted_total: Decimal):
        if quoted_total < 0:
            raise ValidationError("Total price cannot be negative")
        self.quoted_total = Decimal(quoted_total)

    def calculate(self, price_per_seat: Decimal, seats: int) -> Decimal:
        return self.quoted_total.quantize(CENTS, rounding=ROUND_HALF_UP)


# ── Facade ────────────────────────────────────────────────────────────


def booking_total(
    price_per_seat: Decimal, seats: int, quoted_total: Decimal | None = None
) -> Decimal:
    strategy = (
        QuotedPricing(quoted_total) if quoted_total is not None else PerSeatPricing()
    )
    return strategy.calculate(price_per_seat, seats)
