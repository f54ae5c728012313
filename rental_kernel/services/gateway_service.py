"""
DemoGatewayService -- tenant payment submission against the demo gateway.

Responsibility:
    Entry point for ``{paymentId, cardNumber, expiryMonth, expiryYear, cvv,
    zipCode}``.  Claims the payment, evaluates the card with the pure rules
    in ``domain/gateway.py``, and drives the payment to ``paid`` or
    ``failed``.

Architecture position:
    Kernel > Services -- orchestrates PaymentStateService.  Unlike the
    flush-only kernel services this one owns its transactions: the claim
    must be committed before the card is evaluated so that competing
    submissions observe ``processing``.

Flow:
    1. Authorize: the payment's tenant, or a privileged actor.
    2. Claim: pending/failed -> processing (compare-and-set), COMMIT.
       Losing the claim returns a ``conflict`` outcome; the card is never
       evaluated.
    3. Evaluate the card (expiry first, then the test-card table).
    4. Settle: processing -> paid (receipt minted in this transaction) or
       processing -> failed with a reason, COMMIT.
    5. If evaluation or settlement raises, best-effort processing -> failed
       with "processing error", then re-raise.

Failure modes:
    - PaymentNotFoundError, NotAuthorizedError, InvalidInputError: raised
      before any write.
    - IllegalTransitionError: the payment is already paid.
    - RetryLimitExceededError: configured attempt ceiling reached.
    - StorageUnavailableError: store timeout; retryable.
"""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.gateway import REASON_PROCESSING_ERROR, evaluate_card
from rental_kernel.domain.types import (
    Actor,
    ActorRole,
    CardInput,
    OutcomeStatus,
    PaymentMethod,
    SubmissionOutcome,
)
from rental_kernel.exceptions import NotAuthorizedError, PaymentConflictError
from rental_kernel.logging_config import LogContext, get_logger
from rental_kernel.services.payment_state_service import PaymentStateService

logger = get_logger("services.gateway")


def new_transaction_id(clock: Clock) -> str:
    millis = int(clock.now_utc().timestamp() * 1000)
    return f"TXN-{millis}-{uuid4().hex[:8].upper()}"


class DemoGatewayService:
    """
    Deterministic payment gateway simulator.

    Args:
        session: SQLAlchemy session.  Committed after the claim and after
            settlement.
        clock: Time source for expiry checks, ``paid_date`` and receipts.
        max_attempts: Attempt ceiling; 0 = unlimited retries.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        max_attempts: int = 0,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._max_attempts = max_attempts

    def submit_payment(
        self,
        payment_id: UUID,
        card: CardInput | dict[str, Any],
        actor: Actor | None = None,
    ) -> SubmissionOutcome:
        """
        Attempt to settle a pending or failed payment with a demo card.

        Returns:
            SubmissionOutcome with status ``paid`` (and a receipt number),
            ``failed`` (and a reason) or ``conflict`` (another attempt is in
            flight).
        """
        if isinstance(card, dict):
            card = CardInput.from_dict(card)

        actor_id = actor.actor_id if actor else None
        with LogContext.bind(payment_id=payment_id, actor_id=actor_id):
            states = PaymentStateService(
                self._session,
                clock=self._clock,
                max_attempts=self._max_attempts,
                actor_id=actor_id,
            )

            logger.info("payment_submission_received", extra={"card": repr(card)})

            try:
                payment = states.get(payment_id)
                self._authorize(actor, payment.tenant_id, payment_id)
                states.begin_attempt(payment_id)
                self._session.commit()
            except PaymentConflictError as exc:
                self._session.rollback()
                logger.info(
                    "payment_submission_conflict",
                    extra={"current_status": exc.current_status},
                )
                current = states.get(payment_id)
                self._session.commit()
                return SubmissionOutcome(
                    status=OutcomeStatus.CONFLICT,
                    payment=current,
                    reason="payment already being processed",
                )
            except Exception:
                self._session.rollback()
                raise

            try:
                decision = evaluate_card(card, self._clock.today())
                if decision.approved:
                    settled = states.settle_paid(
                        payment_id,
                        payment_method=PaymentMethod.DEMO_CARD,
                        card_last4=decision.card_last4,
                        card_brand=decision.card_brand,
                        transaction_id=new_transaction_id(self._clock),
                    )
                else:
                    settled = states.settle_failed(payment_id, decision.reason)
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.exception("payment_settlement_error")
                self._release_stuck(states, payment_id)
                raise

            if decision.approved:
                return SubmissionOutcome(
                    status=OutcomeStatus.PAID,
                    payment=settled,
                    receipt_number=settled.receipt_number,
                    transaction_id=settled.transaction_id,
                )
            return SubmissionOutcome(
                status=OutcomeStatus.FAILED,
                payment=settled,
                reason=decision.reason,
            )

    def _authorize(self, actor: Actor | None, tenant_id: UUID, payment_id: UUID) -> None:
        if actor is None or actor.is_privileged:
            return
        if actor.role == ActorRole.TENANT and actor.actor_id == tenant_id:
            return
        raise NotAuthorizedError(str(actor.actor_id), "pay", str(payment_id))

    def _release_stuck(self, states: PaymentStateService, payment_id: UUID) -> None:
        """Move a payment left in processing to failed so it can be retried."""
        try:
            states.settle_failed(payment_id, REASON_PROCESSING_ERROR)
            self._session.commit()
        except Exception:
            self._session.rollback()
            logger.warning(
                "payment_release_failed",
                extra={"payment_id": str(payment_id)},
                exc_info=True,
            )
