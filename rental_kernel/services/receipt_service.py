"""
ReceiptService -- mints receipt numbers for settled payments.

Responsibility:
    Produces ``RCP-YYYYMM-NNNNNN`` identifiers: the year and month of
    settlement (from the injected clock) followed by the next value of the
    ``receipt`` sequence, zero-padded to six digits.

Architecture position:
    Kernel > Services.  Called only by PaymentStateService.settle_paid, in
    the same transaction that writes ``status = paid``.  A rolled-back
    settlement therefore never consumes or exposes a receipt number.

Invariants enforced:
    - Uniqueness across all payments.  The sequence is global, not reset
      per month, so the suffix alone is already unique; the UNIQUE column
      on payments.receipt_number backs it at the store level.
    - Opaque: callers must not parse the number.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.logging_config import get_logger
from rental_kernel.services.sequence_service import SequenceService

logger = get_logger("services.receipt")

RECEIPT_PREFIX = "RCP"


def format_receipt_number(year: int, month: int, sequence: int) -> str:
    """Render a receipt number.  ``month`` is 1-based here (calendar month)."""
    return f"{RECEIPT_PREFIX}-{year:04d}{month:02d}-{sequence:06d}"


class ReceiptService:
    """Receipt number allocation on top of SequenceService."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = SequenceService(session)

    def mint_receipt_number(self, payment_id: UUID) -> str:
        """
        Allocate the receipt number for a payment being settled.

        Preconditions:
            - Called inside the transaction that moves the payment to paid.

        Returns:
            A string unique across all payments.
        """
        today = self._clock.today()
        value = self._sequences.next_value(SequenceService.RECEIPT)
        receipt_number = format_receipt_number(today.year, today.month, value)
        logger.info(
            "receipt_minted",
            extra={"payment_id": str(payment_id), "receipt_number": receipt_number},
        )
        return receipt_number
