"""
rental-billing -- command-line trigger for the billing engine.

Usage:
    rental-billing init-db
    rental-billing generate --month 5 --year 2024 [--lease ID] [--landlord ID]
    rental-billing pay --payment-id ID --card-number 4242424242424242 \
        --expiry-month 12 --expiry-year 2030
    rental-billing schedule [--once]
    rental-billing summary [--landlord ID | --tenant ID | --property ID]

``--month`` is 0-based (0 = January), matching the stored billing period.
Results are printed to stdout as JSON; structured logs go to stderr.
Exit status is 0 on success, 1 on a kernel error, 2 on bad arguments.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from typing import Any, Sequence
from uuid import UUID

from rental_config import BillingConfig, get_active_config
from rental_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from rental_kernel.domain.clock import SystemClock
from rental_kernel.domain.types import CardInput
from rental_kernel.exceptions import RentalKernelError
from rental_kernel.logging_config import configure_logging, get_logger
from rental_kernel.selectors.ledger_selector import LedgerSelector
from rental_kernel.services.gateway_service import DemoGatewayService

from rental_batch.generation import RentGenerationJob
from rental_batch.scheduler import MonthlyRentScheduler

logger = get_logger("batch.cli")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="rental-billing",
        description="Rent generation and demo payment processing",
    )
    p.add_argument("--config", help="YAML configuration file (default: bundled default.yaml)")
    p.add_argument("--database-url", help="Override storage.database_url")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for structured logs on stderr (default: WARNING)",
    )
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables")

    gen = sub.add_parser("generate", help="Generate rent for a billing period")
    gen.add_argument("--month", type=int, required=True, help="0-based month (0-11)")
    gen.add_argument("--year", type=int, required=True)
    gen.add_argument("--lease", type=UUID, help="Only this lease")
    gen.add_argument("--landlord", type=UUID, help="Only this landlord's leases")

    pay = sub.add_parser("pay", help="Submit a demo card payment")
    pay.add_argument("--payment-id", type=UUID, required=True)
    pay.add_argument("--card-number", required=True)
    pay.add_argument("--expiry-month", type=int, required=True)
    pay.add_argument("--expiry-year", type=int, required=True)
    pay.add_argument("--cvv", default="")
    pay.add_argument("--zip-code", default="")

    schedule = sub.add_parser("schedule", help="Run the monthly rent scheduler")
    schedule.add_argument("--once", action="store_true", help="Run a single tick and exit")

    summary = sub.add_parser("summary", help="Payment totals by status")
    scope = summary.add_mutually_exclusive_group()
    scope.add_argument("--landlord", type=UUID)
    scope.add_argument("--tenant", type=UUID)
    scope.add_argument("--property", type=UUID)

    return p.parse_args(argv)


def _init_storage(config: BillingConfig, database_url: str | None) -> None:
    storage = config.storage
    init_engine_from_url(
        database_url or storage.database_url,
        echo=storage.echo,
        pool_size=storage.pool_size,
        max_overflow=storage.max_overflow,
        pool_timeout=storage.pool_timeout,
        statement_timeout_ms=storage.statement_timeout_ms,
    )


def _run_scheduler(config: BillingConfig, once: bool) -> dict[str, Any]:
    scheduler = MonthlyRentScheduler(
        get_session_factory(),
        clock=SystemClock(),
        actor_id=config.generation.system_actor_id,
        tick_interval_seconds=config.scheduler.tick_interval_seconds,
        lead_days=config.scheduler.lead_days,
    )
    if once:
        return {"results": [r.to_dict() for r in scheduler.tick()]}

    scheduler.start()
    try:
        while scheduler.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("scheduler_interrupted")
    finally:
        scheduler.stop()
    return {"status": "stopped"}


def _run(args: argparse.Namespace, config: BillingConfig) -> dict[str, Any]:
    clock = SystemClock()

    if args.command == "init-db":
        create_tables()
        return {"status": "ok"}

    if args.command == "generate":
        with session_scope() as session:
            job = RentGenerationJob(
                session,
                clock=clock,
                actor_id=config.generation.system_actor_id,
                auto_commit=False,
                landlord_id=args.landlord,
            )
            if args.lease is not None:
                result = job.generate_for_lease(args.lease, args.month, args.year)
            else:
                result = job.generate_for_period(args.month, args.year)
        return result.to_dict()

    if args.command == "pay":
        card = CardInput(
            card_number=args.card_number,
            expiry_month=args.expiry_month,
            expiry_year=args.expiry_year,
            cvv=args.cvv,
            zip_code=args.zip_code,
        )
        with session_scope() as session:
            gateway = DemoGatewayService(
                session,
                clock=clock,
                max_attempts=config.gateway.max_attempts,
            )
            outcome = gateway.submit_payment(args.payment_id, card)
        return outcome.to_dict()

    if args.command == "schedule":
        return _run_scheduler(config, once=args.once)

    if args.command == "summary":
        with session_scope() as session:
            summary = LedgerSelector(session, clock).summarize(
                landlord_id=args.landlord,
                tenant_id=args.tenant,
                property_id=args.property,
            )
        return summary.to_dict()

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(level=getattr(logging, args.log_level))

    try:
        config = get_active_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    if args.command == "schedule" and not args.once and not config.scheduler.enabled:
        print("Error: scheduler.enabled is false; enable it or pass --once", file=sys.stderr)
        return 2

    try:
        _init_storage(config, args.database_url)
        output = _run(args, config)
    except RentalKernelError as exc:
        logger.warning("cli_command_failed", extra={"command": args.command}, exc_info=True)
        print(json.dumps({"error": exc.code, "message": str(exc)}), file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
