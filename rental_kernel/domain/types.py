"""
rental_kernel.domain.types -- Pure enums and frozen DTOs for the billing engine.

ZERO I/O.  Services and selectors return these instead of ORM instances so
callers never hold a live session-bound object.

Serialization:
    ``to_dict()`` methods produce the camelCase wire shapes consumed by the
    excluded UI/reporting layer (``{created, existing, errors}``,
    ``{status, reason?, receiptNumber?}``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from rental_kernel.exceptions import InvalidInputError


# =============================================================================
# Status enums
# =============================================================================


class LeaseStatus(str, Enum):
    """Lease lifecycle status (read-only input to the engine)."""

    DRAFT = "draft"
    ACTIVE = "active"
    EXPIRED = "expired"
    TERMINATED = "terminated"


class PaymentStatus(str, Enum):
    """Stored payment status."""

    PENDING = "pending"  # Created, awaiting an attempt
    PROCESSING = "processing"  # Attempt in flight
    PAID = "paid"  # Terminal
    FAILED = "failed"  # Last attempt failed, retryable


class DerivedStatus(str, Enum):
    """Read-time status: stored status plus the ``overdue`` predicate."""

    PENDING = "pending"
    OVERDUE = "overdue"  # pending AND due_date < today
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


class PaymentType(str, Enum):
    RENT = "rent"
    DEPOSIT = "deposit"
    UTILITIES = "utilities"
    MAINTENANCE = "maintenance"
    LATE_FEE = "late_fee"
    OTHER = "other"


class PaymentMethod(str, Enum):
    DEMO_CARD = "demo_card"
    CASH = "cash"
    CHECK = "check"
    BANK_TRANSFER = "bank_transfer"
    OTHER = "other"


class ActorRole(str, Enum):
    LANDLORD = "landlord"
    TENANT = "tenant"
    MANAGER = "manager"
    SYSTEM = "system"


class OutcomeStatus(str, Enum):
    """Result of a payment submission."""

    PAID = "paid"
    FAILED = "failed"
    CONFLICT = "conflict"


def derive_status(status: PaymentStatus | str, due_date: date, today: date) -> DerivedStatus:
    """Classify a payment at read time.  ``overdue`` is never stored."""
    status = PaymentStatus(status)
    if status == PaymentStatus.PENDING and due_date < today:
        return DerivedStatus.OVERDUE
    return DerivedStatus(status.value)


# =============================================================================
# Caller identity
# =============================================================================


@dataclass(frozen=True)
class Actor:
    """Explicit caller identity passed into each operation."""

    actor_id: UUID
    role: ActorRole

    @classmethod
    def system(cls, actor_id: UUID) -> Actor:
        return cls(actor_id=actor_id, role=ActorRole.SYSTEM)

    @property
    def is_privileged(self) -> bool:
        return self.role in (ActorRole.SYSTEM, ActorRole.MANAGER)


# =============================================================================
# Payment DTOs
# =============================================================================


@dataclass(frozen=True)
class PaymentSnapshot:
    """Immutable view of a persisted payment."""

    payment_id: UUID
    lease_id: UUID | None
    property_id: UUID
    tenant_id: UUID
    landlord_id: UUID
    amount: Decimal
    payment_type: PaymentType
    status: PaymentStatus
    due_date: date
    billing_month: int | None = None
    billing_year: int | None = None
    description: str | None = None
    paid_date: datetime | None = None
    receipt_number: str | None = None
    payment_method: PaymentMethod | None = None
    card_last4: str | None = None
    card_brand: str | None = None
    transaction_id: str | None = None
    failure_reason: str | None = None
    attempt_count: int = 0

    def derived_status(self, today: date) -> DerivedStatus:
        return derive_status(self.status, self.due_date, today)

    def is_overdue(self, today: date) -> bool:
        return self.derived_status(today) == DerivedStatus.OVERDUE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.payment_id),
            "leaseId": str(self.lease_id) if self.lease_id else None,
            "propertyId": str(self.property_id),
            "tenantId": str(self.tenant_id),
            "landlordId": str(self.landlord_id),
            "amount": str(self.amount),
            "type": self.payment_type.value,
            "status": self.status.value,
            "dueDate": self.due_date.isoformat(),
            "billingPeriod": (
                {"month": self.billing_month, "year": self.billing_year}
                if self.billing_month is not None
                else None
            ),
            "description": self.description,
            "paidDate": self.paid_date.isoformat() if self.paid_date else None,
            "receiptNumber": self.receipt_number,
            "failureReason": self.failure_reason,
            "attemptCount": self.attempt_count,
        }


# =============================================================================
# Gateway DTOs
# =============================================================================


@dataclass(frozen=True)
class CardInput:
    """Card data submitted to the demo gateway.  Never persisted whole."""

    card_number: str
    expiry_month: int
    expiry_year: int
    cvv: str = ""
    zip_code: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.card_number, str):
            raise InvalidInputError("card_number", None, "must be a string")
        for name in ("expiry_month", "expiry_year"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInputError(name, value, "must be an integer")
        for name in ("cvv", "zip_code"):
            if not isinstance(getattr(self, name), str):
                raise InvalidInputError(name, None, "must be a string")

    def __repr__(self) -> str:
        return f"CardInput(card=****{self.last4}, expiry={self.expiry_month:02d}/{self.expiry_year})"

    @property
    def normalized_number(self) -> str:
        return "".join(self.card_number.split())

    @property
    def last4(self) -> str:
        return self.normalized_number[-4:]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CardInput:
        """Parse the wire shape ``{cardNumber, expiryMonth, expiryYear, cvv, zipCode}``."""
        try:
            return cls(
                card_number=str(data["cardNumber"]),
                expiry_month=int(data["expiryMonth"]),
                expiry_year=int(data["expiryYear"]),
                cvv=str(data.get("cvv", "")),
                zip_code=str(data.get("zipCode", "")),
            )
        except KeyError as exc:
            raise InvalidInputError(exc.args[0], None, "is required") from None
        except (TypeError, ValueError) as exc:
            raise InvalidInputError("card", None, str(exc)) from None


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of ``DemoGatewayService.submit_payment``."""

    status: OutcomeStatus
    payment: PaymentSnapshot | None = None
    reason: str | None = None
    receipt_number: str | None = None
    transaction_id: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == OutcomeStatus.PAID

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": self.status.value}
        if self.reason is not None:
            result["reason"] = self.reason
        if self.receipt_number is not None:
            result["receiptNumber"] = self.receipt_number
        return result


# =============================================================================
# Generation DTOs
# =============================================================================


@dataclass(frozen=True)
class GenerationError:
    """One lease that could not be billed."""

    lease_id: UUID
    reason: str
    code: str = "UNHANDLED_EXCEPTION"

    def to_dict(self) -> dict[str, Any]:
        return {"leaseId": str(self.lease_id), "reason": self.reason}


@dataclass(frozen=True)
class GenerationResult:
    """Transient per-invocation report of a rent generation run.

    ``created`` holds payment ids; ``existing`` and ``errors`` hold lease ids.
    """

    month: int
    year: int
    created: tuple[UUID, ...] = ()
    existing: tuple[UUID, ...] = ()
    errors: tuple[GenerationError, ...] = ()
    duration_ms: int = 0

    @property
    def total_leases(self) -> int:
        return len(self.created) + len(self.existing) + len(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": [str(p) for p in self.created],
            "existing": [str(lease_id) for lease_id in self.existing],
            "errors": [e.to_dict() for e in self.errors],
        }


# =============================================================================
# Ledger DTOs
# =============================================================================


@dataclass(frozen=True)
class StatusTotal:
    """Sum and count of payments in one derived status."""

    status: DerivedStatus
    total: Decimal = Decimal("0.00")
    count: int = 0


@dataclass(frozen=True)
class LedgerSummary:
    """Read-only aggregate over persisted payments."""

    as_of: date
    by_status: tuple[StatusTotal, ...] = field(default_factory=tuple)

    def _get(self, status: DerivedStatus) -> StatusTotal:
        for entry in self.by_status:
            if entry.status == status:
                return entry
        return StatusTotal(status=status)

    @property
    def total_paid(self) -> Decimal:
        return self._get(DerivedStatus.PAID).total

    @property
    def total_pending(self) -> Decimal:
        return self._get(DerivedStatus.PENDING).total

    @property
    def total_overdue(self) -> Decimal:
        return self._get(DerivedStatus.OVERDUE).total

    @property
    def paid_count(self) -> int:
        return self._get(DerivedStatus.PAID).count

    @property
    def pending_count(self) -> int:
        return self._get(DerivedStatus.PENDING).count

    @property
    def overdue_count(self) -> int:
        return self._get(DerivedStatus.OVERDUE).count

    @property
    def failed_count(self) -> int:
        return self._get(DerivedStatus.FAILED).count

    def to_dict(self) -> dict[str, Any]:
        return {
            "asOf": self.as_of.isoformat(),
            "totalPaid": str(self.total_paid),
            "totalPending": str(self.total_pending),
            "totalOverdue": str(self.total_overdue),
            "details": [
                {"status": e.status.value, "total": str(e.total), "count": e.count}
                for e in self.by_status
            ],
        }
