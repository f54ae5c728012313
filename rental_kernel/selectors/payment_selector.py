"""
Module: rental_kernel.selectors.payment_selector
Responsibility: Read-only payment listing and lookup, filterable by derived
    status (including ``overdue``), type, lease, property, tenant, landlord
    and billing period.
Architecture position: Kernel > Selectors.

Status filter semantics (derived at query time against clock.today()):
    overdue    -> status = pending AND due_date <  today
    pending    -> status = pending AND due_date >= today
    processing / paid / failed -> stored status
"""

from dataclasses import dataclass, replace
from datetime import date
from uuid import UUID

from sqlalchemy import Select, func, select

from rental_kernel.db.errors import storage_guard
from rental_kernel.domain.types import (
    Actor,
    ActorRole,
    DerivedStatus,
    PaymentSnapshot,
    PaymentStatus,
    PaymentType,
)
from rental_kernel.exceptions import NotAuthorizedError, PaymentNotFoundError
from rental_kernel.models.payment import PaymentModel
from rental_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class PaymentFilter:
    """Criteria for ``PaymentSelector.list_payments``.  None means any."""

    status: DerivedStatus | None = None
    payment_type: PaymentType | None = None
    lease_id: UUID | None = None
    property_id: UUID | None = None
    tenant_id: UUID | None = None
    landlord_id: UUID | None = None
    billing_month: int | None = None
    billing_year: int | None = None
    limit: int | None = None
    offset: int = 0

    def for_actor(self, actor: Actor) -> "PaymentFilter":
        """Narrow to what the actor may see: landlords their own, tenants theirs."""
        if actor.role == ActorRole.LANDLORD:
            return replace(self, landlord_id=actor.actor_id)
        if actor.role == ActorRole.TENANT:
            return replace(self, tenant_id=actor.actor_id)
        return self


def status_clause(status: DerivedStatus, today: date) -> list:
    if status == DerivedStatus.OVERDUE:
        return [
            PaymentModel.status == PaymentStatus.PENDING.value,
            PaymentModel.due_date < today,
        ]
    if status == DerivedStatus.PENDING:
        return [
            PaymentModel.status == PaymentStatus.PENDING.value,
            PaymentModel.due_date >= today,
        ]
    return [PaymentModel.status == status.value]


class PaymentSelector(BaseSelector):
    """Payment reads.  Returns PaymentSnapshot DTOs."""

    def _apply(self, stmt: Select, criteria: PaymentFilter) -> Select:
        if criteria.status is not None:
            stmt = stmt.where(
                *status_clause(DerivedStatus(criteria.status), self.clock.today())
            )
        if criteria.payment_type is not None:
            stmt = stmt.where(
                PaymentModel.payment_type == PaymentType(criteria.payment_type).value
            )
        for column, value in (
            (PaymentModel.lease_id, criteria.lease_id),
            (PaymentModel.property_id, criteria.property_id),
            (PaymentModel.tenant_id, criteria.tenant_id),
            (PaymentModel.landlord_id, criteria.landlord_id),
            (PaymentModel.billing_month, criteria.billing_month),
            (PaymentModel.billing_year, criteria.billing_year),
        ):
            if value is not None:
                stmt = stmt.where(column == value)
        return stmt

    def list_payments(self, criteria: PaymentFilter | None = None) -> list[PaymentSnapshot]:
        """Payments matching ``criteria``, newest first."""
        criteria = criteria or PaymentFilter()
        stmt = self._apply(select(PaymentModel), criteria).order_by(
            PaymentModel.created_at.desc(),
            PaymentModel.due_date.desc(),
            PaymentModel.id,
        )
        if criteria.offset:
            stmt = stmt.offset(criteria.offset)
        if criteria.limit is not None:
            stmt = stmt.limit(criteria.limit)

        with storage_guard("list_payments"):
            rows = self.session.execute(stmt).scalars().all()
        return [row.to_snapshot() for row in rows]

    def get_payment(self, payment_id: UUID, actor: Actor | None = None) -> PaymentSnapshot:
        """
        Single payment.  When ``actor`` is given, only the payment's tenant,
        its landlord or a privileged actor may read it.
        """
        with storage_guard("get_payment"):
            row = self.session.execute(
                select(PaymentModel).where(PaymentModel.id == payment_id)
            ).scalar_one_or_none()
        if row is None:
            raise PaymentNotFoundError(str(payment_id))

        if actor is not None and not actor.is_privileged:
            if actor.actor_id not in (row.tenant_id, row.landlord_id):
                raise NotAuthorizedError(str(actor.actor_id), "view", str(payment_id))
        return row.to_snapshot()

    def get_rent_payment(self, lease_id: UUID, month: int, year: int) -> PaymentSnapshot | None:
        """The rent payment for a lease and billing period, if generated."""
        with storage_guard("get_rent_payment"):
            row = self.session.execute(
                select(PaymentModel).where(
                    PaymentModel.lease_id == lease_id,
                    PaymentModel.billing_month == month,
                    PaymentModel.billing_year == year,
                    PaymentModel.payment_type == PaymentType.RENT.value,
                )
            ).scalar_one_or_none()
        return row.to_snapshot() if row is not None else None

    def count(self, criteria: PaymentFilter | None = None) -> int:
        stmt = self._apply(select(func.count(PaymentModel.id)), criteria or PaymentFilter())
        with storage_guard("count_payments"):
            return self.session.execute(stmt).scalar_one()
