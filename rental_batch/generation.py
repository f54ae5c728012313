"""
RentGenerationJob -- idempotent monthly rent generation with SAVEPOINT-per-lease.

Contract:
    ``generate_for_period(month, year)`` creates one ``pending`` rent payment
    per active lease overlapping the period, and reports every lease under
    exactly one of ``created``, ``existing`` or ``errors``.

Architecture: rental_batch.  Imports kernel models, domain and db helpers.
    Nothing in rental_kernel imports from rental_batch.

Invariants enforced:
    - Idempotence: the partial unique index ``uq_payments_rent_period`` is
      the only duplicate check.  A rejected insert is classified as
      ``existing`` after confirming the row is there; there is no
      find-then-create.
    - Isolation: each lease runs in its own SAVEPOINT, so one malformed
      lease or transient storage error never aborts the rest of the batch.
    - Validation first: the period is validated before any storage access.
    - All timestamps from the injected Clock.

Failure modes:
    - InvalidInputError: bad month/year (nothing touched).
    - StorageUnavailableError: the active-lease query failed.  This is the
      only fatal path.
    - Per-lease failures are reported in ``errors``, never raised.

Transaction boundaries:
    ``auto_commit=True`` (default) commits once after the last lease.
    With ``auto_commit=False`` the caller owns commit/rollback.
"""

from __future__ import annotations

import time
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rental_kernel.db.errors import storage_guard
from rental_kernel.domain.billing_period import BillingPeriod
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.types import (
    GenerationError,
    GenerationResult,
    LeaseStatus,
    PaymentStatus,
    PaymentType,
)
from rental_kernel.exceptions import LeaseNotFoundError, RentalKernelError
from rental_kernel.logging_config import LogContext, get_logger
from rental_kernel.models.lease import LeaseModel
from rental_kernel.models.payment import PaymentModel

logger = get_logger("batch.generation")

# Default creator recorded on generated rows when no actor is supplied
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")


class RentGenerationJob:
    """Monthly rent generation over active leases.

    Args:
        session: SQLAlchemy session for this run.
        clock: Time source.
        actor_id: Recorded as ``created_by_id`` on generated payments.
        auto_commit: Commit at the end of the run.
        landlord_id: Restrict the run to one landlord's leases.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
        auto_commit: bool = True,
        landlord_id: UUID | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._actor_id = actor_id or SYSTEM_ACTOR_ID
        self._auto_commit = auto_commit
        self._landlord_id = landlord_id

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def generate_for_period(self, month: int, year: int) -> GenerationResult:
        """Generate rent for every billable lease in the period.

        Re-running for a processed period yields ``created == ()`` and every
        matching lease under ``existing``.

        Raises:
            InvalidInputError: month not in 0-11 or year out of range.
            StorageUnavailableError: leases could not be enumerated.
        """
        period = BillingPeriod.of(month, year)
        start_time = time.monotonic()
        job_id = uuid4()

        with LogContext.bind(job_id=job_id, actor_id=self._actor_id):
            logger.info(
                "rent_generation_started",
                extra={
                    "period": str(period),
                    "landlord_id": str(self._landlord_id) if self._landlord_id else None,
                },
            )

            with storage_guard("enumerate_leases"):
                leases = self._session.execute(self._active_leases(period)).scalars().all()

            created: list[UUID] = []
            existing: list[UUID] = []
            errors: list[GenerationError] = []

            for lease in leases:
                lease_id = lease.id
                with LogContext.bind(lease_id=lease_id):
                    try:
                        payment_id = self._bill_lease(lease, period)
                    except RentalKernelError as exc:
                        errors.append(GenerationError(lease_id, str(exc), exc.code))
                        logger.warning(
                            "rent_generation_lease_failed",
                            extra={"error_code": exc.code, "reason": str(exc)},
                        )
                        continue
                    except Exception as exc:
                        errors.append(
                            GenerationError(lease_id, str(getattr(exc, "orig", None) or exc))
                        )
                        logger.exception("rent_generation_lease_error")
                        continue

                    if payment_id is None:
                        existing.append(lease_id)
                    else:
                        created.append(payment_id)

            if self._auto_commit:
                self._commit()

            result = GenerationResult(
                month=month,
                year=year,
                created=tuple(created),
                existing=tuple(existing),
                errors=tuple(errors),
                duration_ms=int((time.monotonic() - start_time) * 1000),
            )
            logger.info(
                "rent_generation_completed",
                extra={
                    "period": str(period),
                    "created_count": len(created),
                    "existing_count": len(existing),
                    "error_count": len(errors),
                    "duration_ms": result.duration_ms,
                },
            )
            return result

    def generate_for_lease(self, lease_id: UUID, month: int, year: int) -> GenerationResult:
        """Generate the rent payment for a single lease.

        Same idempotence as ``generate_for_period``, but problems with the
        lease are raised rather than collected.

        Raises:
            InvalidInputError: bad period.
            LeaseNotFoundError: unknown lease (or another landlord's, when
                the job is scoped).
            LeaseNotBillableError: inactive, out of term or malformed lease.
        """
        period = BillingPeriod.of(month, year)

        with LogContext.bind(lease_id=lease_id, actor_id=self._actor_id):
            with storage_guard("load_lease"):
                lease = self._session.get(LeaseModel, lease_id)
            if lease is None or (
                self._landlord_id is not None and lease.landlord_id != self._landlord_id
            ):
                raise LeaseNotFoundError(str(lease_id))

            payment_id = self._bill_lease(lease, period)
            if self._auto_commit:
                self._commit()

        if payment_id is None:
            return GenerationResult(month=month, year=year, existing=(lease_id,))
        return GenerationResult(month=month, year=year, created=(payment_id,))

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _active_leases(self, period: BillingPeriod):
        stmt = (
            select(LeaseModel)
            .where(
                LeaseModel.status == LeaseStatus.ACTIVE.value,
                LeaseModel.start_date <= period.end,
                LeaseModel.end_date >= period.start,
            )
            .order_by(LeaseModel.id)
        )
        if self._landlord_id is not None:
            stmt = stmt.where(LeaseModel.landlord_id == self._landlord_id)
        return stmt

    def _bill_lease(self, lease: LeaseModel, period: BillingPeriod) -> UUID | None:
        """Insert the rent payment inside a SAVEPOINT.

        Returns the new payment id, or None when the period was already
        billed for this lease.
        """
        lease.check_billable(period)
        due_date = period.due_date(lease.payment_due_day)

        savepoint = self._session.begin_nested()
        try:
            payment = PaymentModel(
                lease_id=lease.id,
                property_id=lease.property_id,
                tenant_id=lease.tenant_id,
                landlord_id=lease.landlord_id,
                amount=lease.rent_amount,
                payment_type=PaymentType.RENT.value,
                billing_month=period.month,
                billing_year=period.year,
                status=PaymentStatus.PENDING.value,
                due_date=due_date,
                description=lease.rent_description(period),
                created_by_id=self._actor_id,
            )
            with storage_guard("insert_rent_payment"):
                self._session.add(payment)
                self._session.flush()
        except IntegrityError:
            savepoint.rollback()
            if self._rent_exists(lease.id, period):
                logger.debug("rent_payment_exists", extra={"period": str(period)})
                return None
            raise
        except Exception:
            savepoint.rollback()
            raise

        savepoint.commit()
        logger.info(
            "rent_payment_created",
            extra={
                "payment_id": str(payment.id),
                "period": str(period),
                "due_date": due_date,
                "amount": payment.amount,
            },
        )
        return payment.id

    def _rent_exists(self, lease_id: UUID, period: BillingPeriod) -> bool:
        with storage_guard("check_rent_exists"):
            found = self._session.execute(
                select(PaymentModel.id).where(
                    PaymentModel.lease_id == lease_id,
                    PaymentModel.billing_year == period.year,
                    PaymentModel.billing_month == period.month,
                    PaymentModel.payment_type == PaymentType.RENT.value,
                )
            ).first()
        return found is not None

    def _commit(self) -> None:
        try:
            with storage_guard("commit_generation"):
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise
