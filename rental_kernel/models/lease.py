"""
Module: rental_kernel.models.lease
Responsibility: ORM persistence for leases -- the billing source for monthly
    rent.  The engine reads leases; it never changes their status.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    None at the storage level beyond NOT NULL on identity columns.
    ``rent_amount`` and ``payment_due_day`` are nullable because leases are
    written by an outer CRUD layer the engine does not control; the
    generation job validates each lease before billing it and reports
    malformed rows under ``errors``.

Failure modes:
    - LeaseNotBillableError (raised by ``check_billable``) when the lease is
      inactive, has a reversed term, falls outside the period, or carries a
      malformed rent/due day.
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import Date, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import TrackedBase, UUIDString
from rental_kernel.domain.billing_period import BillingPeriod, validate_due_day
from rental_kernel.domain.types import LeaseStatus
from rental_kernel.exceptions import InvalidInputError, LeaseNotBillableError


class LeaseModel(TrackedBase):
    """
    A rental agreement between a landlord and a tenant for one property.

    Guarantees:
        - Owned by ``landlord_id``; readable by ``tenant_id``.
        - ``status`` is an input to billing, never written by the engine.
    """

    __tablename__ = "leases"

    __table_args__ = (
        Index("idx_lease_status_dates", "status", "start_date", "end_date"),
        Index("idx_lease_landlord", "landlord_id"),
        Index("idx_lease_tenant", "tenant_id"),
    )

    property_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    landlord_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Shown in the rent description ("Monthly rent for <property_name> - ...")
    property_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    rent_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    # Informational only; deposits are billed as manual charges
    deposit_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0"),
        nullable=False,
    )

    # Day of month rent falls due (1-31, clamped per month)
    payment_due_day: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[LeaseStatus] = mapped_column(
        String(20),
        default=LeaseStatus.DRAFT,
        nullable=False,
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    def __repr__(self) -> str:
        return f"<Lease {self.id}: {self.status}>"

    @property
    def is_active(self) -> bool:
        return LeaseStatus(self.status) == LeaseStatus.ACTIVE

    def rent_description(self, period: BillingPeriod) -> str:
        name = self.property_name or "property"
        return f"Monthly rent for {name} - {period.label}"

    def check_billable(self, period: BillingPeriod) -> None:
        """Raise LeaseNotBillableError unless this lease can be billed for period."""
        if not self.is_active:
            raise LeaseNotBillableError(str(self.id), f"status is {self.status}")
        if self.start_date > self.end_date:
            raise LeaseNotBillableError(
                str(self.id), f"start date {self.start_date} is after end date {self.end_date}"
            )
        if not period.overlaps(self.start_date, self.end_date):
            raise LeaseNotBillableError(
                str(self.id), f"lease term does not cover {period.label}"
            )
        if self.rent_amount is None or Decimal(self.rent_amount) <= 0:
            raise LeaseNotBillableError(
                str(self.id), f"invalid rent amount {self.rent_amount!r}"
            )
        try:
            validate_due_day(self.payment_due_day)
        except InvalidInputError as exc:
            raise LeaseNotBillableError(str(self.id), exc.reason) from exc

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "propertyId": str(self.property_id),
            "tenantId": str(self.tenant_id),
            "landlordId": str(self.landlord_id),
            "rentAmount": str(self.rent_amount) if self.rent_amount is not None else None,
            "paymentDueDay": self.payment_due_day,
            "status": LeaseStatus(self.status).value,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
        }
