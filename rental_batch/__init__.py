"""
rental_batch -- Rent generation job, scheduler and command-line trigger.

Architecture:
    rental_batch/ is a top-level package.  Nothing in rental_kernel
    imports from rental_batch.

Invariants:
    - One SAVEPOINT per lease (a failing lease never aborts the batch)
    - Idempotence through the rent-period unique index, never find-then-create
    - Clock injection (no datetime.now() calls)
"""
