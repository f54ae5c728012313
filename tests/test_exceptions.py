"""Tests for the typed exception hierarchy (rental_kernel/exceptions.py)."""

import pytest

from rental_kernel.exceptions import (
    ConcurrencyError,
    IllegalTransitionError,
    InvalidInputError,
    LeaseNotBillableError,
    NotAuthorizedError,
    PaymentConflictError,
    PaymentImmutableError,
    RentalKernelError,
    StorageUnavailableError,
)


class TestExceptionCodes:

    @pytest.mark.parametrize(
        "exc, code",
        [
            (InvalidInputError("month", 12, "bad"), "INVALID_INPUT"),
            (StorageUnavailableError("op", "timeout"), "STORAGE_UNAVAILABLE"),
            (LeaseNotBillableError("l1", "inactive"), "LEASE_NOT_BILLABLE"),
            (IllegalTransitionError("p1", "paid", "processing"), "ILLEGAL_TRANSITION"),
            (PaymentImmutableError("p1", "paid"), "PAYMENT_IMMUTABLE"),
            (PaymentConflictError("p1", "processing"), "PAYMENT_CONFLICT"),
            (NotAuthorizedError("a1", "pay", "p1"), "NOT_AUTHORIZED"),
        ],
    )
    def test_code(self, exc, code):
        assert exc.code == code
        assert isinstance(exc, RentalKernelError)

    def test_retryable_flags(self):
        assert StorageUnavailableError("op", "x").retryable
        assert PaymentConflictError("p1", "processing").retryable
        assert not IllegalTransitionError("p1", "paid", "failed").retryable

    def test_conflict_is_concurrency_error(self):
        assert isinstance(PaymentConflictError("p1", "processing"), ConcurrencyError)

    def test_conflict_message(self):
        exc = PaymentConflictError("p1", "processing")
        assert "already being processed" in str(exc)

    def test_structured_attributes(self):
        exc = IllegalTransitionError("p1", "paid", "processing")
        assert (exc.payment_id, exc.current_status, exc.target_status) == (
            "p1",
            "paid",
            "processing",
        )
