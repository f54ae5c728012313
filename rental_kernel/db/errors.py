"""
Module: rental_kernel.db.errors
Responsibility: Translate driver-level infrastructure failures into the
    kernel's retryable StorageUnavailableError.
Architecture position: Kernel > DB.  Imported by services, selectors and the
    generation job around every store round-trip.

Only transient conditions are translated: lock/statement timeouts, dropped
connections and pool exhaustion.  IntegrityError is NOT translated -- it is
the signal the engine uses for deduplication and must reach the caller
untouched.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    TimeoutError as PoolTimeoutError,
)

from rental_kernel.exceptions import StorageUnavailableError
from rental_kernel.logging_config import get_logger

logger = get_logger("db.errors")

TRANSIENT_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
)


@contextmanager
def storage_guard(operation: str) -> Generator[None, None, None]:
    """Re-raise transient driver errors as StorageUnavailableError.

    Usage:
        with storage_guard("enumerate_leases"):
            rows = session.execute(stmt).scalars().all()
    """
    try:
        yield
    except TRANSIENT_ERRORS as exc:
        detail = str(getattr(exc, "orig", None) or exc)
        logger.warning(
            "storage_unavailable",
            extra={"operation": operation, "detail": detail},
        )
        raise StorageUnavailableError(operation, detail) from exc
