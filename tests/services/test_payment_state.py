"""
Tests for PaymentStateService compare-and-set transitions.

Every transition is one conditional UPDATE; these tests drive the
service directly with a single session and check the store afterwards.
"""

from uuid import uuid4

import pytest

from rental_kernel.domain.types import PaymentMethod, PaymentStatus
from rental_kernel.exceptions import (
    IllegalTransitionError,
    PaymentConflictError,
    PaymentNotFoundError,
    RetryLimitExceededError,
)
from rental_kernel.services.payment_state_service import PaymentStateService


class TestBeginAttempt:

    def test_pending_to_processing(self, session, clock, make_payment):
        payment_id = make_payment()
        snapshot = PaymentStateService(session, clock).begin_attempt(payment_id)
        assert snapshot.status == PaymentStatus.PROCESSING
        assert snapshot.attempt_count == 1

    def test_failed_to_processing(self, session, clock, make_payment):
        payment_id = make_payment(status="failed", attempt_count=1, failure_reason="card declined")
        snapshot = PaymentStateService(session, clock).begin_attempt(payment_id)
        assert snapshot.status == PaymentStatus.PROCESSING
        assert snapshot.attempt_count == 2

    def test_processing_is_conflict(self, session, clock, make_payment):
        payment_id = make_payment(status="processing")
        with pytest.raises(PaymentConflictError) as exc_info:
            PaymentStateService(session, clock).begin_attempt(payment_id)
        assert exc_info.value.current_status == "processing"

    def test_paid_is_illegal(self, session, clock, make_payment):
        payment_id = make_payment(status="paid", receipt_number="RCP-202406-000009")
        with pytest.raises(IllegalTransitionError):
            PaymentStateService(session, clock).begin_attempt(payment_id)

    def test_unknown_payment(self, session, clock):
        with pytest.raises(PaymentNotFoundError):
            PaymentStateService(session, clock).begin_attempt(uuid4())

    def test_retry_limit(self, session, clock, make_payment):
        payment_id = make_payment(status="failed", attempt_count=3)
        with pytest.raises(RetryLimitExceededError) as exc_info:
            PaymentStateService(session, clock, max_attempts=3).begin_attempt(payment_id)
        assert exc_info.value.attempts == 3

    def test_unlimited_retries_by_default(self, session, clock, make_payment):
        payment_id = make_payment(status="failed", attempt_count=50)
        snapshot = PaymentStateService(session, clock).begin_attempt(payment_id)
        assert snapshot.attempt_count == 51


class TestSettle:

    def test_settle_paid_sets_receipt_and_paid_date(self, session, clock, make_payment):
        payment_id = make_payment()
        states = PaymentStateService(session, clock)
        states.begin_attempt(payment_id)
        snapshot = states.settle_paid(
            payment_id, card_last4="4242", card_brand="Visa", transaction_id="TXN-1-ABC"
        )
        assert snapshot.status == PaymentStatus.PAID
        assert snapshot.receipt_number == "RCP-202406-000001"
        assert snapshot.paid_date is not None
        assert snapshot.payment_method == PaymentMethod.DEMO_CARD
        assert snapshot.card_last4 == "4242"

    def test_settle_paid_clears_previous_failure(self, session, clock, make_payment):
        payment_id = make_payment(status="failed", failure_reason="card declined")
        states = PaymentStateService(session, clock)
        states.begin_attempt(payment_id)
        assert states.settle_paid(payment_id).failure_reason is None

    def test_settle_failed(self, session, clock, make_payment):
        payment_id = make_payment()
        states = PaymentStateService(session, clock)
        states.begin_attempt(payment_id)
        snapshot = states.settle_failed(payment_id, "card declined")
        assert snapshot.status == PaymentStatus.FAILED
        assert snapshot.failure_reason == "card declined"
        assert snapshot.paid_date is None
        assert snapshot.receipt_number is None

    def test_settle_requires_processing(self, session, clock, make_payment):
        payment_id = make_payment()
        with pytest.raises(IllegalTransitionError):
            PaymentStateService(session, clock).settle_failed(payment_id, "x")

    def test_paid_is_terminal(self, session, clock, make_payment):
        payment_id = make_payment()
        states = PaymentStateService(session, clock)
        states.begin_attempt(payment_id)
        states.settle_paid(payment_id)
        session.commit()

        with pytest.raises(IllegalTransitionError):
            states.settle_failed(payment_id, "late failure")
        session.rollback()

        assert states.get(payment_id).status == PaymentStatus.PAID

    def test_updated_by_recorded(self, session, clock, make_payment):
        actor_id = uuid4()
        payment_id = make_payment()
        PaymentStateService(session, clock, actor_id=actor_id).begin_attempt(payment_id)
        assert PaymentStateService(session, clock).load(payment_id).updated_by_id == actor_id
