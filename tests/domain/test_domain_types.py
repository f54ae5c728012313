"""Tests for rental_kernel.domain.types -- derived status and wire shapes."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from rental_kernel.domain.types import (
    Actor,
    ActorRole,
    CardInput,
    DerivedStatus,
    GenerationError,
    GenerationResult,
    LedgerSummary,
    OutcomeStatus,
    PaymentStatus,
    StatusTotal,
    SubmissionOutcome,
    derive_status,
)
from rental_kernel.exceptions import InvalidInputError

TODAY = date(2024, 6, 20)


class TestDeriveStatus:

    def test_pending_past_due_is_overdue(self):
        assert derive_status(PaymentStatus.PENDING, date(2024, 6, 19), TODAY) == (
            DerivedStatus.OVERDUE
        )

    def test_pending_due_today_is_not_overdue(self):
        assert derive_status(PaymentStatus.PENDING, TODAY, TODAY) == DerivedStatus.PENDING

    @pytest.mark.parametrize("status", ["processing", "paid", "failed"])
    def test_non_pending_never_overdue(self, status):
        assert derive_status(status, date(2020, 1, 1), TODAY) == DerivedStatus(status)


class TestActor:

    def test_system_is_privileged(self):
        assert Actor.system(uuid4()).is_privileged

    @pytest.mark.parametrize("role", [ActorRole.LANDLORD, ActorRole.TENANT])
    def test_owner_roles_not_privileged(self, role):
        assert not Actor(uuid4(), role).is_privileged


class TestCardInput:

    def test_from_wire_shape(self):
        card = CardInput.from_dict(
            {
                "cardNumber": "4242424242424242",
                "expiryMonth": "12",
                "expiryYear": 2030,
                "cvv": "123",
                "zipCode": "12345",
            }
        )
        assert card.expiry_month == 12
        assert card.last4 == "4242"

    def test_missing_field(self):
        with pytest.raises(InvalidInputError) as exc_info:
            CardInput.from_dict({"cardNumber": "4242424242424242", "expiryMonth": 1})
        assert exc_info.value.field == "expiryYear"

    def test_non_numeric_expiry(self):
        with pytest.raises(InvalidInputError):
            CardInput.from_dict(
                {"cardNumber": "4242424242424242", "expiryMonth": "xx", "expiryYear": 2030}
            )

    def test_repr_masks_number(self):
        card = CardInput("4242424242424242", 12, 2030, cvv="999")
        assert "4242424242424242" not in repr(card)
        assert "999" not in repr(card)


class TestWireShapes:

    def test_submission_outcome_paid(self):
        outcome = SubmissionOutcome(OutcomeStatus.PAID, receipt_number="RCP-202406-000001")
        assert outcome.to_dict() == {"status": "paid", "receiptNumber": "RCP-202406-000001"}

    def test_submission_outcome_failed(self):
        outcome = SubmissionOutcome(OutcomeStatus.FAILED, reason="card declined")
        assert outcome.to_dict() == {"status": "failed", "reason": "card declined"}

    def test_generation_result(self):
        pid, lid, eid = uuid4(), uuid4(), uuid4()
        result = GenerationResult(
            month=5,
            year=2024,
            created=(pid,),
            existing=(lid,),
            errors=(GenerationError(eid, "bad lease"),),
        )
        assert result.to_dict() == {
            "created": [str(pid)],
            "existing": [str(lid)],
            "errors": [{"leaseId": str(eid), "reason": "bad lease"}],
        }
        assert result.total_leases == 3

    def test_ledger_summary_defaults_to_zero(self):
        summary = LedgerSummary(
            as_of=TODAY,
            by_status=(StatusTotal(DerivedStatus.PAID, Decimal("10.00"), 1),),
        )
        assert summary.total_paid == Decimal("10.00")
        assert summary.total_overdue == Decimal("0.00")
        assert summary.to_dict()["totalPending"] == "0.00"
