"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing integers for named sequences.  The
    receipt number minted on every settled payment draws from the
    ``receipt`` sequence.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by ReceiptService inside the settlement transaction.

Invariants enforced:
    - The locked counter row is the sole source of the next value.
      ``MAX(receipt_number) + 1`` is never used.
    - Transactional: an increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and re-read).
    - StorageUnavailableError: lock wait exceeded the store timeout.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rental_kernel.db.errors import storage_guard
from rental_kernel.logging_config import get_logger
from rental_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        seq = SequenceService(session).next_value(SequenceService.RECEIPT)
        # committed together with the caller's work
    """

    # Well-known sequence names
    RECEIPT = "receipt"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Locks the sequence row (creating it on first use), increments it
        and returns the new value.

        Postconditions:
            - Returns an integer > 0, strictly greater than any value
              previously committed for this sequence name.
            - The counter row stays locked until the transaction completes.
        """
        with storage_guard("sequence_next_value"):
            counter = self._locked_counter(sequence_name)

            if counter is None:
                # First use; another session may be creating it concurrently
                savepoint = self._session.begin_nested()
                try:
                    counter = SequenceCounter(name=sequence_name, current_value=1)
                    self._session.add(counter)
                    self._session.flush()
                    savepoint.commit()
                    logger.debug(
                        "sequence_allocated",
                        extra={"sequence_name": sequence_name, "value": 1},
                    )
                    return 1
                except IntegrityError:
                    logger.debug(
                        "sequence_counter_race_retry",
                        extra={"sequence_name": sequence_name},
                    )
                    savepoint.rollback()
                    counter = self._locked_counter(sequence_name)
                    if counter is None:
                        raise

            counter.current_value += 1
            self._session.flush()

        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Reset a sequence to a specific value.

        WARNING: tests and data repair only.  Resetting the receipt sequence
        in production makes the next mint collide with an existing receipt.
        """
        counter = self._locked_counter(sequence_name)
        if counter is None:
            self._session.add(SequenceCounter(name=sequence_name, current_value=value))
        else:
            counter.current_value = value
        self._session.flush()
