"""
Domain rules that do not need storage.

Patterns used
-------------
- **State Pattern** via ``check_transition``: trips move
  PENDING -> STARTED -> COMPLETED (or PENDING -> CANCELLED), bookings move
  PENDING -> CONFIRMED -> COMPLETED (or -> CANCELLED).
- ``SeatLedger`` encapsulates the seat-accounting invariant
  ``0 <= available_seats <= total_seats``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Mapping

from .exceptions import Conflict, ValidationError

TWO_PLACES = Decimal("0.01")


def check_transition(
    current: Enum,
    new: Enum,
    transitions: Mapping[Enum, set],
    error: type[Conflict],
) -> None:
    """Raise *error* unless ``current -> new`` is a legal move."""
    if new not in transitions.get(current, set()):
        raise error(f"Cannot transition from {current.value} to {new.value}")


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class SeatLedger:
    available_seats: int
    total_seats: int

    def __post_init__(self) -> None:
        if self.total_seats < 1:
            raise ValidationError("A trip needs at least one seat")
        if not 0 <= self.available_seats <= self.total_seats:
            raise ValidationError(
                "Available seats must be between 0 and total seats"
            )

    def can_book(self, seats: int) -> bool:
        return 1 <= seats <= self.available_seats

    def book(self, seats: int) -> SeatLedger:
        return SeatLedger(self.available_seats - seats, self.total_seats)

    def release(self, seats: int) -> SeatLedger:
        return SeatLedger(
            min(self.total_seats, self.available_seats + seats), self.total_seats
        )


def average_rating(scores: Iterable[int]) -> tuple[Decimal, int] | None:
    """Mean of *scores* rounded to 2 places, with the count; None if empty."""
    values = list(scores)
    if not values:
        return None
    mean = Decimal(sum(values)) / Decimal(len(values))
    return mean.quantize(TWO_PLACES, rounding=ROUND_HALF_UP), len(values)
