"""
Tests for PaymentSelector.

``overdue`` is never stored: these tests check that the status filter
derives it from the clock at query time.
"""

from datetime import date
from uuid import uuid4

import pytest

from rental_kernel.domain.types import Actor, ActorRole, DerivedStatus, PaymentType
from rental_kernel.exceptions import NotAuthorizedError, PaymentNotFoundError
from rental_kernel.selectors.payment_selector import PaymentFilter, PaymentSelector


@pytest.fixture
def mixed_payments(make_payment):
    """One payment in each derived status (today is 2024-06-20)."""
    return {
        "overdue": make_payment(due_date=date(2024, 6, 1)),
        "pending": make_payment(due_date=date(2024, 7, 1)),
        "due_today": make_payment(due_date=date(2024, 6, 20)),
        "processing": make_payment(status="processing", due_date=date(2024, 5, 1)),
        "paid": make_payment(status="paid", due_date=date(2024, 5, 1), receipt_number="RCP-1"),
        "failed": make_payment(status="failed", due_date=date(2024, 5, 1)),
    }


class TestStatusFilter:

    def test_overdue_is_derived(self, session, clock, mixed_payments):
        result = PaymentSelector(session, clock).list_payments(
            PaymentFilter(status=DerivedStatus.OVERDUE)
        )
        assert [p.payment_id for p in result] == [mixed_payments["overdue"]]
        assert result[0].is_overdue(clock.today())

    def test_pending_excludes_overdue(self, session, clock, mixed_payments):
        result = PaymentSelector(session, clock).list_payments(
            PaymentFilter(status=DerivedStatus.PENDING)
        )
        assert {p.payment_id for p in result} == {
            mixed_payments["pending"],
            mixed_payments["due_today"],
        }

    @pytest.mark.parametrize("status", ["processing", "paid", "failed"])
    def test_stored_statuses(self, session, clock, mixed_payments, status):
        result = PaymentSelector(session, clock).list_payments(
            PaymentFilter(status=DerivedStatus(status))
        )
        assert [p.payment_id for p in result] == [mixed_payments[status]]

    def test_overdue_follows_clock(self, session, clock, mixed_payments):
        clock.advance(seconds=15 * 86400)
        selector = PaymentSelector(session, clock)
        overdue = selector.count(PaymentFilter(status=DerivedStatus.OVERDUE))
        assert overdue == 3

    def test_no_filter_lists_all(self, session, clock, mixed_payments):
        assert len(PaymentSelector(session, clock).list_payments()) == 6


class TestOtherFilters:

    def test_by_type_and_period(self, session, clock, make_payment, make_lease):
        lease_id = make_lease()
        rent_id = make_payment(
            lease_id=lease_id, payment_type="rent", billing_month=5, billing_year=2024, amount=1500
        )
        make_payment(lease_id=lease_id, payment_type="utilities")

        selector = PaymentSelector(session, clock)
        rent = selector.list_payments(
            PaymentFilter(payment_type=PaymentType.RENT, billing_month=5, billing_year=2024)
        )
        assert [p.payment_id for p in rent] == [rent_id]
        assert selector.count(PaymentFilter(lease_id=lease_id)) == 2

    def test_limit_offset(self, session, clock, make_payment):
        for _ in range(5):
            make_payment()
        selector = PaymentSelector(session, clock)
        page = selector.list_payments(PaymentFilter(limit=2, offset=1))
        assert len(page) == 2

    def test_for_actor_scopes_landlord(self, session, clock, make_payment, landlord):
        mine = make_payment()
        make_payment(landlord_id=uuid4())
        result = PaymentSelector(session, clock).list_payments(PaymentFilter().for_actor(landlord))
        assert [p.payment_id for p in result] == [mine]

    def test_for_actor_scopes_tenant(self, session, clock, make_payment, tenant):
        mine = make_payment()
        make_payment(tenant_id=uuid4())
        result = PaymentSelector(session, clock).list_payments(PaymentFilter().for_actor(tenant))
        assert [p.payment_id for p in result] == [mine]


class TestGetPayment:

    def test_get_by_id(self, session, clock, make_payment):
        payment_id = make_payment()
        assert PaymentSelector(session, clock).get_payment(payment_id).payment_id == payment_id

    def test_unknown(self, session, clock):
        with pytest.raises(PaymentNotFoundError):
            PaymentSelector(session, clock).get_payment(uuid4())

    def test_owner_may_read(self, session, clock, make_payment, tenant, landlord):
        payment_id = make_payment()
        selector = PaymentSelector(session, clock)
        assert selector.get_payment(payment_id, tenant).payment_id == payment_id
        assert selector.get_payment(payment_id, landlord).payment_id == payment_id

    def test_stranger_may_not_read(self, session, clock, make_payment):
        payment_id = make_payment()
        with pytest.raises(NotAuthorizedError):
            PaymentSelector(session, clock).get_payment(
                payment_id, Actor(uuid4(), ActorRole.TENANT)
            )

    def test_get_rent_payment(self, session, clock, make_payment, make_lease):
        lease_id = make_lease()
        rent_id = make_payment(
            lease_id=lease_id, payment_type="rent", billing_month=6, billing_year=2024
        )
        selector = PaymentSelector(session, clock)
        assert selector.get_rent_payment(lease_id, 6, 2024).payment_id == rent_id
        assert selector.get_rent_payment(lease_id, 7, 2024) is None
