"""
rental_kernel.domain -- Pure types, calendar rules, workflow and gateway table.

ZERO I/O.
"""

from rental_kernel.domain.billing_period import BillingPeriod, resolve_due_date
from rental_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from rental_kernel.domain.types import (
    Actor,
    ActorRole,
    CardInput,
    DerivedStatus,
    GenerationError,
    GenerationResult,
    LeaseStatus,
    LedgerSummary,
    OutcomeStatus,
    PaymentMethod,
    PaymentSnapshot,
    PaymentStatus,
    PaymentType,
    SubmissionOutcome,
)

__all__ = [
    "Actor",
    "ActorRole",
    "BillingPeriod",
    "CardInput",
    "Clock",
    "DerivedStatus",
    "DeterministicClock",
    "GenerationError",
    "GenerationResult",
    "LeaseStatus",
    "LedgerSummary",
    "OutcomeStatus",
    "PaymentMethod",
    "PaymentSnapshot",
    "PaymentStatus",
    "PaymentType",
    "SubmissionOutcome",
    "SystemClock",
    "resolve_due_date",
]
