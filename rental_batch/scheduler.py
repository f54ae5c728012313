"""
MonthlyRentScheduler -- in-process polling trigger for rent generation.

Contract:
    Each ``tick()`` generates rent for the billing period containing
    ``clock.today()``, plus the next period once ``today + lead_days`` falls
    into it.  Ticks may repeat freely: generation is idempotent, so a
    second tick in the same period only reports ``existing`` leases.

Architecture: rental_batch.  Uses ``periods_due`` (pure) for evaluation
    and RentGenerationJob for execution.

Invariants enforced:
    - All timestamps from the injected Clock.
    - Period evaluation is pure (``periods_due``).
    - Graceful shutdown: the stop signal is checked between periods.
"""

from __future__ import annotations

import threading
from datetime import date, timedelta
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from rental_kernel.domain.billing_period import BillingPeriod
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.types import GenerationResult
from rental_kernel.logging_config import get_logger

from rental_batch.generation import SYSTEM_ACTOR_ID, RentGenerationJob

logger = get_logger("batch.scheduler")


def periods_due(today: date, lead_days: int = 0) -> tuple[BillingPeriod, ...]:
    """Billing periods a tick on ``today`` should generate.  Pure."""
    current = BillingPeriod.containing(today)
    if lead_days <= 0:
        return (current,)
    ahead = BillingPeriod.containing(today + timedelta(days=lead_days))
    if ahead == current:
        return (current,)
    return (current, current.next())


class MonthlyRentScheduler:
    """In-process polling scheduler for monthly rent.

    Contract:
        - ``tick()`` runs generation for the due periods and returns results.
        - ``start()`` / ``stop()`` for background thread operation.

    Non-goals:
        - NOT a distributed scheduler (no leader election).  Running several
          instances is safe but redundant.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        actor_id: UUID | None = None,
        tick_interval_seconds: int = 3600,
        lead_days: int = 0,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._actor_id = actor_id or SYSTEM_ACTOR_ID
        self._tick_interval = tick_interval_seconds
        self._lead_days = lead_days
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> list[GenerationResult]:
        """Generate rent for the due periods (public for testing).

        A period whose run fails fatally is logged and skipped; the next
        tick retries it.
        """
        results: list[GenerationResult] = []
        for period in periods_due(self._clock.today(), self._lead_days):
            if self._stop_event.is_set():
                break

            session = self._session_factory()
            try:
                job = RentGenerationJob(
                    session,
                    clock=self._clock,
                    actor_id=self._actor_id,
                )
                results.append(job.generate_for_period(period.month, period.year))
            except Exception:
                session.rollback()
                logger.exception(
                    "scheduler_tick_failed", extra={"period": str(period)}
                )
            finally:
                session.close()
        return results

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="rent-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"tick_interval": self._tick_interval})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the scheduler to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background polling loop. Exits when stop_event is set."""
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("scheduler_tick_exception")
            self._stop_event.wait(timeout=self._tick_interval)
