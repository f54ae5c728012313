"""
Module: rental_kernel.selectors.ledger_selector
Responsibility: Read-only payment summaries -- totals and counts per derived
    status, optionally scoped to a landlord, tenant, property or lease.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - No stored balances.  Every figure is aggregated from payment rows at
      query time, so summaries always agree with final payment states.
    - ``overdue`` is derived (pending AND due_date < today).  Overdue
      payments are counted under ``overdue`` only, never also under
      ``pending``.
    - All totals are Decimal quantized to cents, never float.

Failure modes:
    - Zero totals when no payments match.
    - StorageUnavailableError on store timeout.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select

from rental_kernel.db.errors import storage_guard
from rental_kernel.domain.types import (
    Actor,
    ActorRole,
    DerivedStatus,
    LedgerSummary,
    PaymentStatus,
    StatusTotal,
)
from rental_kernel.models.payment import PaymentModel
from rental_kernel.selectors.base import BaseSelector

_CENT = Decimal("0.01")

# Display order of ``LedgerSummary.by_status``
STATUS_ORDER = (
    DerivedStatus.PAID,
    DerivedStatus.PENDING,
    DerivedStatus.OVERDUE,
    DerivedStatus.PROCESSING,
    DerivedStatus.FAILED,
)


def _money(value) -> Decimal:
    # SQLite hands back SUM() of NUMERIC as float or int
    return Decimal(str(value or 0)).quantize(_CENT)


class LedgerSelector(BaseSelector):
    """Aggregate views over persisted payments."""

    def summarize(
        self,
        *,
        landlord_id: UUID | None = None,
        tenant_id: UUID | None = None,
        property_id: UUID | None = None,
        lease_id: UUID | None = None,
        as_of: date | None = None,
    ) -> LedgerSummary:
        """
        Totals and counts per derived status.

        Args:
            as_of: Date used for the overdue predicate; defaults to
                ``clock.today()``.
        """
        today = as_of or self.clock.today()

        scope = []
        for column, value in (
            (PaymentModel.landlord_id, landlord_id),
            (PaymentModel.tenant_id, tenant_id),
            (PaymentModel.property_id, property_id),
            (PaymentModel.lease_id, lease_id),
        ):
            if value is not None:
                scope.append(column == value)

        # Single statement: every bucket is read from the same snapshot
        derived = case(
            (
                (PaymentModel.status == PaymentStatus.PENDING.value)
                & (PaymentModel.due_date < today),
                DerivedStatus.OVERDUE.value,
            ),
            else_=PaymentModel.status,
        ).label("derived_status")
        rows = (
            select(derived, PaymentModel.amount, PaymentModel.id)
            .where(*scope)
            .subquery()
        )
        by_derived = select(
            rows.c.derived_status,
            func.sum(rows.c.amount),
            func.count(rows.c.id),
        ).group_by(rows.c.derived_status)

        with storage_guard("ledger_summary"):
            result = self.session.execute(by_derived).all()

        totals = {
            DerivedStatus(status): StatusTotal(DerivedStatus(status), _money(total), count)
            for status, total, count in result
        }

        return LedgerSummary(
            as_of=today,
            by_status=tuple(totals.get(s, StatusTotal(s)) for s in STATUS_ORDER),
        )

    def summarize_for(self, actor: Actor, as_of: date | None = None) -> LedgerSummary:
        """Summary scoped the way the actor sees payments."""
        if actor.role == ActorRole.LANDLORD:
            return self.summarize(landlord_id=actor.actor_id, as_of=as_of)
        if actor.role == ActorRole.TENANT:
            return self.summarize(tenant_id=actor.actor_id, as_of=as_of)
        return self.summarize(as_of=as_of)
