"""
ChargeService -- landlord-side management of non-rent charges.

Responsibility:
    Creates manual charges (deposit, utilities, maintenance, late fees),
    edits and deletes them while they are still ``pending``, and records
    payments received outside the demo gateway (cash, check, transfer).

Architecture position:
    Kernel > Services -- imperative shell.  Rent rows are created only by
    the generation job; this service refuses ``payment_type = rent``.
    Status changes go through PaymentStateService.

Invariants enforced:
    - Only the owning landlord (or a privileged actor) may write a charge.
    - Edits and deletes are conditional on ``status = pending`` in the same
      statement; a paid payment is never deleted.

Failure modes:
    - InvalidInputError: non-positive amount, rent type, missing parties.
    - LeaseNotFoundError / PaymentNotFoundError: unknown ids.
    - NotAuthorizedError: actor does not own the lease or payment.
    - PaymentImmutableError: edit/delete of a non-pending payment.

Transaction boundaries:
    Flush-only.  The caller commits.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from rental_kernel.db.errors import storage_guard
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.types import (
    Actor,
    ActorRole,
    PaymentMethod,
    PaymentSnapshot,
    PaymentStatus,
    PaymentType,
)
from rental_kernel.exceptions import (
    InvalidInputError,
    LeaseNotFoundError,
    NotAuthorizedError,
    PaymentImmutableError,
    PaymentNotFoundError,
)
from rental_kernel.logging_config import get_logger
from rental_kernel.models.lease import LeaseModel
from rental_kernel.models.payment import PaymentModel
from rental_kernel.services.payment_state_service import PaymentStateService

logger = get_logger("services.charge")

_CENT = Decimal("0.01")


def parse_amount(value: Decimal | int | str) -> Decimal:
    """Coerce to a positive two-place Decimal.  Floats are rejected."""
    if isinstance(value, (bool, float)):
        raise InvalidInputError("amount", value, "must be a Decimal, int or str")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInputError("amount", value, "is not a number") from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError("amount", value, "must be positive")
    return amount.quantize(_CENT)


def authorize_landlord(actor: Actor, landlord_id: UUID, action: str, resource_id: UUID) -> None:
    if actor.is_privileged:
        return
    if actor.role == ActorRole.LANDLORD and actor.actor_id == landlord_id:
        return
    raise NotAuthorizedError(str(actor.actor_id), action, str(resource_id))


class ChargeService:
    """Manual charge lifecycle for landlords."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def create_charge(
        self,
        actor: Actor,
        *,
        amount: Decimal | int | str,
        payment_type: PaymentType | str,
        due_date: date,
        description: str | None = None,
        lease_id: UUID | None = None,
        property_id: UUID | None = None,
        tenant_id: UUID | None = None,
        landlord_id: UUID | None = None,
    ) -> PaymentSnapshot:
        """
        Create a pending non-rent charge.

        Parties come from the lease when ``lease_id`` is given; otherwise
        ``property_id`` and ``tenant_id`` are required and the landlord
        defaults to the acting landlord.
        """
        try:
            payment_type = PaymentType(payment_type)
        except ValueError:
            raise InvalidInputError("payment_type", payment_type, "unknown type") from None
        if payment_type == PaymentType.RENT:
            raise InvalidInputError(
                "payment_type", payment_type.value, "rent is generated from leases"
            )
        amount = parse_amount(amount)

        if lease_id is not None:
            with storage_guard("load_lease"):
                lease = self._session.get(LeaseModel, lease_id)
            if lease is None:
                raise LeaseNotFoundError(str(lease_id))
            property_id = lease.property_id
            tenant_id = lease.tenant_id
            landlord_id = lease.landlord_id
        else:
            if landlord_id is None and actor.role == ActorRole.LANDLORD:
                landlord_id = actor.actor_id
            for name, value in (
                ("property_id", property_id),
                ("tenant_id", tenant_id),
                ("landlord_id", landlord_id),
            ):
                if value is None:
                    raise InvalidInputError(name, None, "is required without a lease")

        authorize_landlord(actor, landlord_id, "create charge on", lease_id or property_id)

        payment = PaymentModel(
            lease_id=lease_id,
            property_id=property_id,
            tenant_id=tenant_id,
            landlord_id=landlord_id,
            amount=amount,
            payment_type=payment_type.value,
            status=PaymentStatus.PENDING.value,
            due_date=due_date,
            description=description,
            created_by_id=actor.actor_id,
        )
        with storage_guard("create_charge"):
            self._session.add(payment)
            self._session.flush()

        logger.info(
            "charge_created",
            extra={
                "payment_id": str(payment.id),
                "payment_type": payment_type.value,
                "amount": str(amount),
            },
        )
        return payment.to_snapshot()

    def update_pending_charge(
        self,
        actor: Actor,
        payment_id: UUID,
        *,
        amount: Decimal | int | str | None = None,
        description: str | None = None,
        due_date: date | None = None,
    ) -> PaymentSnapshot:
        """Edit amount, description or due date of a pending payment."""
        states = PaymentStateService(self._session, self._clock, actor_id=actor.actor_id)
        current = states.load(payment_id)
        authorize_landlord(actor, current.landlord_id, "edit", payment_id)

        values: dict = {}
        if amount is not None:
            values["amount"] = parse_amount(amount)
        if description is not None:
            values["description"] = description
        if due_date is not None:
            values["due_date"] = due_date
        if not values:
            return current.to_snapshot()

        stmt = (
            update(PaymentModel)
            .where(
                PaymentModel.id == payment_id,
                PaymentModel.status == PaymentStatus.PENDING.value,
            )
            .values(
                updated_at=self._clock.now_utc(),
                updated_by_id=actor.actor_id,
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        with storage_guard("update_charge"):
            result = self._session.execute(stmt)
        if result.rowcount != 1:
            self._raise_not_pending(payment_id)

        logger.info(
            "charge_updated",
            extra={"payment_id": str(payment_id), "fields": sorted(values)},
        )
        return states.get(payment_id)

    def delete_pending_payment(self, actor: Actor, payment_id: UUID) -> None:
        """
        Physically delete a pending payment.

        Raises:
            PaymentImmutableError: payment is processing, paid or failed.
        """
        states = PaymentStateService(self._session, self._clock)
        current = states.load(payment_id)
        authorize_landlord(actor, current.landlord_id, "delete", payment_id)

        stmt = (
            delete(PaymentModel)
            .where(
                PaymentModel.id == payment_id,
                PaymentModel.status == PaymentStatus.PENDING.value,
            )
            .execution_options(synchronize_session=False)
        )
        with storage_guard("delete_payment"):
            result = self._session.execute(stmt)
        if result.rowcount != 1:
            self._raise_not_pending(payment_id)

        self._session.expunge(current)
        logger.info("payment_deleted", extra={"payment_id": str(payment_id)})

    def record_offline_payment(
        self,
        actor: Actor,
        payment_id: UUID,
        method: PaymentMethod | str = PaymentMethod.CASH,
        max_attempts: int = 0,
    ) -> PaymentSnapshot:
        """
        Mark a payment received outside the gateway as paid.

        Goes through the same claim and settle transitions as a card payment,
        so it cannot race a tenant's in-flight card attempt.
        """
        method = PaymentMethod(method)
        if method == PaymentMethod.DEMO_CARD:
            raise InvalidInputError("method", method.value, "card payments use the gateway")

        states = PaymentStateService(
            self._session, self._clock, max_attempts=max_attempts, actor_id=actor.actor_id
        )
        current = states.load(payment_id)
        authorize_landlord(actor, current.landlord_id, "record payment for", payment_id)

        states.begin_attempt(payment_id)
        return states.settle_paid(payment_id, payment_method=method)

    def _raise_not_pending(self, payment_id: UUID) -> None:
        with storage_guard("load_payment"):
            status = self._session.execute(
                select(PaymentModel.status).where(PaymentModel.id == payment_id)
            ).scalar_one_or_none()
        if status is None:
            raise PaymentNotFoundError(str(payment_id))
        raise PaymentImmutableError(str(payment_id), PaymentStatus(status).value)
