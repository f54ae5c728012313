"""
Concurrency tests for rent generation.

Several workers generate the same period at once.  The partial unique
index must leave exactly one rent payment per lease, and every worker must
classify each lease as created or existing rather than failing.

Skip with: pytest -m "not slow_locks"
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from rental_batch.generation import RentGenerationJob
from rental_kernel.domain.types import PaymentType
from rental_kernel.selectors.payment_selector import PaymentFilter, PaymentSelector

pytestmark = pytest.mark.slow_locks

WORKERS = 6
JUNE = 5


def _run_concurrently(session_factory, clock, job_kwargs=None):
    barrier = Barrier(WORKERS)

    def _worker(_):
        session = session_factory()
        try:
            barrier.wait(timeout=10)
            job = RentGenerationJob(session, clock, **(job_kwargs or {}))
            return job.generate_for_period(JUNE, 2024)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        return list(pool.map(_worker, range(WORKERS)))


class TestConcurrentGeneration:

    def test_one_rent_payment_per_lease(self, session_factory, session, clock, make_lease):
        lease_ids = [make_lease() for _ in range(3)]

        results = _run_concurrently(session_factory, clock)

        created = [pid for r in results for pid in r.created]
        assert len(created) == len(lease_ids)
        assert len(set(created)) == len(lease_ids)
        assert all(r.errors == () for r in results)
        for r in results:
            assert r.total_leases == len(lease_ids)

        rent = PaymentSelector(session, clock).count(
            PaymentFilter(payment_type=PaymentType.RENT, billing_month=JUNE, billing_year=2024)
        )
        assert rent == len(lease_ids)

    def test_existing_reported_by_losers(self, session_factory, clock, make_lease):
        lease_id = make_lease()

        results = _run_concurrently(session_factory, clock)

        winners = [r for r in results if r.created]
        losers = [r for r in results if r.existing]
        assert len(winners) == 1
        assert len(losers) == WORKERS - 1
        assert all(r.existing == (lease_id,) for r in losers)
