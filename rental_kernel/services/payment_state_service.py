"""
PaymentStateService -- store-enforced payment status transitions.

Responsibility:
    Applies the transitions of PAYMENT_WORKFLOW to persisted payments.
    Every transition is a single conditional UPDATE:

        UPDATE payments SET status = :target, ...
        WHERE id = :id AND status IN (:allowed_sources)

    One affected row means this caller won; zero rows means it lost, and the
    current row is re-read only to pick the right error.  There is no
    read-check-write window.

Architecture position:
    Kernel > Services -- imperative shell.  The only writer of
    ``status``, ``paid_date`` and ``receipt_number``.  Called by
    DemoGatewayService.

Invariants enforced:
    - A payment in ``paid`` is never mutated again.
    - ``paid_date`` and ``receipt_number`` are set together with
      ``status = paid``, in one statement, in the transaction that minted
      the receipt number.
    - Concurrent ``begin_attempt`` calls on one payment: exactly one wins.

Failure modes:
    - PaymentNotFoundError: no such payment.
    - PaymentConflictError: payment already ``processing``.
    - IllegalTransitionError: transition not in the workflow (e.g. leaving
      ``paid``).
    - RetryLimitExceededError: ``max_attempts`` reached (only when > 0).
    - StorageUnavailableError: timeout / connection loss.

Transaction boundaries:
    Flush-only.  The caller commits.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from rental_kernel.db.errors import storage_guard
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.types import PaymentMethod, PaymentSnapshot, PaymentStatus
from rental_kernel.domain.workflow import PAYMENT_WORKFLOW
from rental_kernel.exceptions import (
    IllegalTransitionError,
    PaymentConflictError,
    PaymentNotFoundError,
    RetryLimitExceededError,
)
from rental_kernel.logging_config import get_logger
from rental_kernel.models.payment import PaymentModel
from rental_kernel.services.receipt_service import ReceiptService

logger = get_logger("services.payment_state")


class PaymentStateService:
    """
    Compare-and-set transitions over the ``payments`` table.

    Args:
        session: SQLAlchemy session; the caller owns commit/rollback.
        clock: Time source for ``paid_date`` and ``updated_at``.
        max_attempts: Attempt ceiling for ``begin_attempt``; 0 = unlimited.
        actor_id: Recorded as ``updated_by_id`` on every transition.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        max_attempts: int = 0,
        actor_id: UUID | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._max_attempts = max_attempts
        self._actor_id = actor_id
        self._receipts = ReceiptService(session, self._clock)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load(self, payment_id: UUID) -> PaymentModel:
        """Fresh read of a payment row.  Raises PaymentNotFoundError."""
        with storage_guard("load_payment"):
            payment = self._session.execute(
                select(PaymentModel)
                .where(PaymentModel.id == payment_id)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        if payment is None:
            raise PaymentNotFoundError(str(payment_id))
        return payment

    def get(self, payment_id: UUID) -> PaymentSnapshot:
        return self.load(payment_id).to_snapshot()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def begin_attempt(self, payment_id: UUID) -> PaymentSnapshot:
        """
        pending/failed -> processing.

        Postconditions:
            - status is ``processing`` and ``attempt_count`` incremented.
        """
        target = PaymentStatus.PROCESSING
        conditions = []
        if self._max_attempts > 0:
            conditions.append(PaymentModel.attempt_count < self._max_attempts)

        self._compare_and_set(
            payment_id,
            target,
            {"attempt_count": PaymentModel.attempt_count + 1},
            extra_conditions=conditions,
        )
        snapshot = self.get(payment_id)
        logger.info(
            "payment_attempt_started",
            extra={
                "payment_id": str(payment_id),
                "attempt": snapshot.attempt_count,
            },
        )
        return snapshot

    def settle_paid(
        self,
        payment_id: UUID,
        *,
        payment_method: PaymentMethod = PaymentMethod.DEMO_CARD,
        card_last4: str | None = None,
        card_brand: str | None = None,
        transaction_id: str | None = None,
    ) -> PaymentSnapshot:
        """
        processing -> paid.

        Mints the receipt number in the current transaction, then writes it
        together with ``paid_date`` and the new status.  If the update loses,
        the raised error makes the caller roll back, which also returns the
        sequence value.
        """
        receipt_number = self._receipts.mint_receipt_number(payment_id)
        self._compare_and_set(
            payment_id,
            PaymentStatus.PAID,
            {
                "paid_date": self._clock.now_utc(),
                "receipt_number": receipt_number,
                "payment_method": PaymentMethod(payment_method).value,
                "card_last4": card_last4,
                "card_brand": card_brand,
                "transaction_id": transaction_id,
                "failure_reason": None,
            },
        )
        logger.info(
            "payment_settled",
            extra={"payment_id": str(payment_id), "receipt_number": receipt_number},
        )
        return self.get(payment_id)

    def settle_failed(self, payment_id: UUID, reason: str) -> PaymentSnapshot:
        """processing -> failed.  ``paid_date`` and ``receipt_number`` stay unset."""
        self._compare_and_set(
            payment_id,
            PaymentStatus.FAILED,
            {"failure_reason": reason},
        )
        logger.info(
            "payment_declined",
            extra={"payment_id": str(payment_id), "reason": reason},
        )
        return self.get(payment_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _compare_and_set(
        self,
        payment_id: UUID,
        target: PaymentStatus,
        values: dict[str, Any],
        extra_conditions: list | None = None,
    ) -> None:
        sources = PAYMENT_WORKFLOW.sources_for(target)
        stmt = (
            update(PaymentModel)
            .where(
                PaymentModel.id == payment_id,
                PaymentModel.status.in_([s.value for s in sources]),
                *(extra_conditions or []),
            )
            .values(
                status=target.value,
                updated_at=self._clock.now_utc(),
                updated_by_id=self._actor_id,
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        with storage_guard(f"transition_to_{target.value}"):
            result = self._session.execute(stmt)

        if result.rowcount == 1:
            logger.debug(
                "payment_transition_applied",
                extra={"payment_id": str(payment_id), "to_status": target.value},
            )
            return

        self._raise_lost(payment_id, target, sources)

    def _raise_lost(
        self,
        payment_id: UUID,
        target: PaymentStatus,
        sources: tuple[PaymentStatus, ...],
    ) -> None:
        payment = self.load(payment_id)
        current = PaymentStatus(payment.status)

        logger.warning(
            "payment_transition_lost",
            extra={
                "payment_id": str(payment_id),
                "current_status": current.value,
                "to_status": target.value,
            },
        )

        if target == PaymentStatus.PROCESSING and current == PaymentStatus.PROCESSING:
            raise PaymentConflictError(str(payment_id), current.value)
        if current in sources:
            if target == PaymentStatus.PROCESSING and self._max_attempts > 0:
                # Status matched, so the attempt ceiling rejected it
                if payment.attempt_count >= self._max_attempts:
                    raise RetryLimitExceededError(
                        str(payment_id), payment.attempt_count, self._max_attempts
                    )
            # Row moved between the update and this read
            raise PaymentConflictError(str(payment_id), current.value)
        raise IllegalTransitionError(str(payment_id), current.value, target.value)
