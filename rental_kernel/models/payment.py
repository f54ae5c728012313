"""
Module: rental_kernel.models.payment
Responsibility: ORM persistence for payments -- rent obligations generated
    from leases and manual charges, tracked through settlement.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - Rent idempotency: (lease_id, billing_year, billing_month) is unique
      among rows with payment_type = 'rent' (partial index
      ``uq_payments_rent_period``).  This index is the ONLY deduplication
      mechanism; there is no find-then-create.
    - Receipt uniqueness: ``receipt_number`` is a UNIQUE column.
    - Status, paid_date and receipt_number are written only by
      PaymentStateService via conditional UPDATE.

Failure modes:
    - IntegrityError on a second rent row for the same lease and period.
      The generation job turns this into an ``existing`` entry.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import TrackedBase, UUIDString
from rental_kernel.domain.types import (
    PaymentMethod,
    PaymentSnapshot,
    PaymentStatus,
    PaymentType,
)

_RENT_ONLY = text("payment_type = 'rent'")


class PaymentModel(TrackedBase):
    """
    A single amount owed by a tenant on a property.

    Guarantees:
        - At most one rent row per lease and billing period.
        - ``paid_date`` and ``receipt_number`` are set iff status is paid.
        - ``overdue`` is never stored (see ``derive_status``).
    """

    __tablename__ = "payments"

    __table_args__ = (
        Index(
            "uq_payments_rent_period",
            "lease_id",
            "billing_year",
            "billing_month",
            unique=True,
            postgresql_where=_RENT_ONLY,
            sqlite_where=_RENT_ONLY,
        ),
        Index("idx_payment_status_due", "status", "due_date"),
        Index("idx_payment_landlord", "landlord_id"),
        Index("idx_payment_tenant", "tenant_id"),
        Index("idx_payment_property", "property_id"),
        CheckConstraint("amount > 0", name="chk_payment_amount_positive"),
        CheckConstraint(
            "billing_month IS NULL OR (billing_month >= 0 AND billing_month <= 11)",
            name="chk_payment_billing_month",
        ),
    )

    lease_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("leases.id"),
        nullable=True,
    )
    property_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    landlord_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    payment_type: Mapped[PaymentType] = mapped_column(
        String(20),
        default=PaymentType.RENT,
        nullable=False,
    )

    # Billing period (0-based month); null for manual charges
    billing_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    billing_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[PaymentStatus] = mapped_column(
        String(20),
        default=PaymentStatus.PENDING,
        nullable=False,
    )

    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    paid_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    receipt_number: Mapped[str | None] = mapped_column(
        String(32),
        unique=True,
        nullable=True,
    )

    # Settlement details recorded by the demo gateway
    payment_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    card_last4: Mapped[str | None] = mapped_column(String(4), nullable=True)
    card_brand: Mapped[str | None] = mapped_column(String(20), nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(String(200), nullable=True)

    attempt_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Payment {self.id}: {self.payment_type} {self.amount} {self.status}>"

    def to_snapshot(self) -> PaymentSnapshot:
        return PaymentSnapshot(
            payment_id=self.id,
            lease_id=self.lease_id,
            property_id=self.property_id,
            tenant_id=self.tenant_id,
            landlord_id=self.landlord_id,
            amount=Decimal(self.amount).quantize(Decimal("0.01")),
            payment_type=PaymentType(self.payment_type),
            status=PaymentStatus(self.status),
            due_date=self.due_date,
            billing_month=self.billing_month,
            billing_year=self.billing_year,
            description=self.description,
            paid_date=self.paid_date,
            receipt_number=self.receipt_number,
            payment_method=(
                PaymentMethod(self.payment_method) if self.payment_method else None
            ),
            card_last4=self.card_last4,
            card_brand=self.card_brand,
            transaction_id=self.transaction_id,
            failure_reason=self.failure_reason,
            attempt_count=self.attempt_count,
        )
