"""Unit tests for booking pricing."""

from decimal import Decimal

import pytest

from ecoride.domain.exceptions import ValidationError
from ecoride.domain.pricing import PerSeatPricing, QuotedPricing, booking_total


class TestPricingStrategies:
    def test_per_seat_pricing(self):
        strategy = PerSeatPricing()
        assert strategy.calculate(Decimal("12.50"), 3) == Decimal("37.50")

    def test_per_seat_pricing_rounds_to_cents(self):
        strategy = PerSeatPricing()
        assert strategy.calculate(Decimal("3.335"), 1) == Decimal("3.34")

    def test_free_trip(self):
        assert PerSeatPricing().calculate(Decimal("0"), 4) == Decimal("0.00")

    def test_quoted_total_is_kept(self):
        strategy = QuotedPricing(Decimal("30"))
        assert strategy.calculate(Decimal("12.50"), 3) == Decimal("30.00")

    def test_negative_quote_rejected(self):
        with pytest.raises(ValidationError):
            QuotedPricing(Decimal("-1"))


class TestBookingTotal:
    def test_derived_when_no_quote(self):
        assert booking_total(Decimal("8.00"), 2) == Decimal("16.00")

    def test_quote_wins(self):
        assert booking_total(Decimal("8.00"), 2, Decimal("15.00")) == Decimal("15.00")

    def test_zero_quote_is_a_quote(self):
        assert booking_total(Decimal("8.00"), 2, Decimal("0")) == Decimal("0.00")
