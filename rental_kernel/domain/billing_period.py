"""
Billing Period Resolver -- pure calendar arithmetic for monthly rent.

Responsibility:
    Maps ``(payment_due_day, month, year)`` to the canonical due date of a
    rent obligation, and describes a billing period's calendar boundaries.

Architecture position:
    Kernel > Domain -- pure functional core, ZERO I/O.

Conventions:
    ``month`` is 0-based (0 = January ... 11 = December), matching the
    billing period stored on payments and the public generation trigger.

Invariants enforced:
    - Clamping: a due day past the end of the month resolves to the month's
      last day (31 in April -> April 30; 29 in February 2023 -> Feb 28).
    - Totality: every valid input maps to exactly one date; invalid input
      raises InvalidInputError before any caller reaches storage.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date

from rental_kernel.exceptions import InvalidInputError

MIN_YEAR = 1
MAX_YEAR = 9999

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def validate_period(month: int, year: int) -> None:
    """Raise InvalidInputError unless (month, year) names a real period."""
    if isinstance(month, bool) or not isinstance(month, int):
        raise InvalidInputError("month", month, "must be an integer 0-11")
    if isinstance(year, bool) or not isinstance(year, int):
        raise InvalidInputError("year", year, "must be an integer")
    if not 0 <= month <= 11:
        raise InvalidInputError("month", month, "must be between 0 and 11")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidInputError(
            "year", year, f"must be between {MIN_YEAR} and {MAX_YEAR}"
        )


def validate_due_day(payment_due_day: int) -> None:
    """Raise InvalidInputError unless the due day is an integer 1-31."""
    if isinstance(payment_due_day, bool) or not isinstance(payment_due_day, int):
        raise InvalidInputError(
            "payment_due_day", payment_due_day, "must be an integer 1-31"
        )
    if not 1 <= payment_due_day <= 31:
        raise InvalidInputError(
            "payment_due_day", payment_due_day, "must be between 1 and 31"
        )


def days_in_month(month: int, year: int) -> int:
    """Number of days in a 0-based month."""
    return calendar.monthrange(year, month + 1)[1]


def resolve_due_date(payment_due_day: int, month: int, year: int) -> date:
    """
    Compute the due date of a monthly rent obligation.

    Preconditions:
        - ``payment_due_day`` in 1..31
        - ``month`` in 0..11
        - ``year`` in 1..9999

    Postconditions:
        - Returned date lies inside the target month.
        - Day is ``min(payment_due_day, days_in_month)``.

    Raises:
        InvalidInputError: On any precondition violation.
    """
    validate_due_day(payment_due_day)
    validate_period(month, year)
    day = min(payment_due_day, days_in_month(month, year))
    return date(year, month + 1, day)


@dataclass(frozen=True, order=True)
class BillingPeriod:
    """A (month, year) pair identifying one monthly rent cycle."""

    year: int
    month: int

    def __post_init__(self) -> None:
        validate_period(self.month, self.year)

    @classmethod
    def of(cls, month: int, year: int) -> BillingPeriod:
        return cls(year=year, month=month)

    @classmethod
    def containing(cls, day: date) -> BillingPeriod:
        """The billing period a calendar date falls in."""
        return cls(year=day.year, month=day.month - 1)

    @property
    def start(self) -> date:
        return date(self.year, self.month + 1, 1)

    @property
    def end(self) -> date:
        return date(self.year, self.month + 1, days_in_month(self.month, self.year))

    @property
    def label(self) -> str:
        return f"{MONTH_NAMES[self.month]} {self.year}"

    def due_date(self, payment_due_day: int) -> date:
        return resolve_due_date(payment_due_day, self.month, self.year)

    def overlaps(self, start: date, end: date) -> bool:
        """True if the closed interval [start, end] intersects this period."""
        return start <= self.end and end >= self.start

    def next(self) -> BillingPeriod:
        if self.month == 11:
            return BillingPeriod(year=self.year + 1, month=0)
        return BillingPeriod(year=self.year, month=self.month + 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month + 1:02d}"
