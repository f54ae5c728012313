"""
Tests for MonthlyRentScheduler and the pure periods_due evaluation.
"""

from datetime import UTC, date, datetime

from rental_batch.generation import RentGenerationJob
from rental_batch.scheduler import MonthlyRentScheduler, periods_due
from rental_kernel.domain.billing_period import BillingPeriod
from rental_kernel.domain.clock import DeterministicClock
from rental_kernel.exceptions import StorageUnavailableError


class TestPeriodsDue:

    def test_current_period_only(self):
        assert periods_due(date(2024, 6, 20)) == (BillingPeriod.of(5, 2024),)

    def test_lead_days_within_month(self):
        assert periods_due(date(2024, 6, 10), lead_days=5) == (BillingPeriod.of(5, 2024),)

    def test_lead_days_reach_next_month(self):
        assert periods_due(date(2024, 6, 20), lead_days=15) == (
            BillingPeriod.of(5, 2024),
            BillingPeriod.of(6, 2024),
        )

    def test_year_rollover(self):
        assert periods_due(date(2024, 12, 28), lead_days=7) == (
            BillingPeriod.of(11, 2024),
            BillingPeriod.of(0, 2025),
        )


class TestSchedulerTick:

    def test_tick_generates_current_period(self, session_factory, clock, make_lease):
        make_lease()
        scheduler = MonthlyRentScheduler(session_factory, clock)

        results = scheduler.tick()

        assert len(results) == 1
        assert (results[0].month, results[0].year) == (5, 2024)
        assert len(results[0].created) == 1

    def test_repeated_ticks_are_idempotent(self, session_factory, clock, make_lease):
        lease_id = make_lease()
        scheduler = MonthlyRentScheduler(session_factory, clock)

        scheduler.tick()
        second = scheduler.tick()

        assert second[0].created == ()
        assert second[0].existing == (lease_id,)

    def test_lead_days_generate_ahead(self, session_factory, clock, make_lease):
        make_lease()
        scheduler = MonthlyRentScheduler(session_factory, clock, lead_days=15)

        results = scheduler.tick()

        assert [(r.month, r.year) for r in results] == [(5, 2024), (6, 2024)]
        assert all(len(r.created) == 1 for r in results)

    def test_month_boundary(self, session_factory, make_lease):
        make_lease()
        clock = DeterministicClock(datetime(2024, 7, 1, 0, 5, tzinfo=UTC))

        results = MonthlyRentScheduler(session_factory, clock).tick()

        assert (results[0].month, results[0].year) == (6, 2024)

    def test_failed_period_logged_and_skipped(self, session_factory, clock, monkeypatch, captured_logs):
        def _boom(self, month, year):
            raise StorageUnavailableError("enumerate_leases", "simulated timeout")

        monkeypatch.setattr(RentGenerationJob, "generate_for_period", _boom)

        assert MonthlyRentScheduler(session_factory, clock).tick() == []
        assert any(r["message"] == "scheduler_tick_failed" for r in captured_logs())


class TestSchedulerLifecycle:

    def test_start_stop(self, session_factory, clock):
        scheduler = MonthlyRentScheduler(session_factory, clock, tick_interval_seconds=3600)
        scheduler.start()
        assert scheduler.is_running
        scheduler.stop(timeout=10)
        assert not scheduler.is_running

    def test_start_twice_keeps_one_thread(self, session_factory, clock):
        scheduler = MonthlyRentScheduler(session_factory, clock, tick_interval_seconds=3600)
        scheduler.start()
        first = scheduler._thread
        scheduler.start()
        assert scheduler._thread is first
        scheduler.stop(timeout=10)

    def test_stopped_scheduler_skips_tick(self, session_factory, clock, make_lease):
        make_lease()
        scheduler = MonthlyRentScheduler(session_factory, clock)
        scheduler.stop()
        assert scheduler.tick() == []
