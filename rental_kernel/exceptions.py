"""
Typed Exception Hierarchy for the Rental Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the billing engine (a scheduler, a CLI, an HTTP layer) must be
able to tell a retryable condition from a permanent one without parsing
message strings.  Every error therefore:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (payment_id, lease_id, ...)

Example - RIGHT way:
    try:
        gateway.submit_payment(payment_id, card)
    except PaymentConflictError as e:
        return {"error": e.code, "paymentId": str(e.payment_id)}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RentalKernelError (base)
    |
    +-- InvalidInputError
    |
    +-- StorageError
    |   +-- StorageUnavailableError
    |
    +-- LeaseError
    |   +-- LeaseNotFoundError
    |   +-- LeaseNotBillableError
    |
    +-- PaymentError
    |   +-- PaymentNotFoundError
    |   +-- IllegalTransitionError
    |   +-- PaymentImmutableError
    |   +-- RetryLimitExceededError
    |
    +-- ConcurrencyError
    |   +-- PaymentConflictError
    |
    +-- AuthorizationError
        +-- NotAuthorizedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                   | When Raised
----------------|------------------------|-----------------------------------------
Input           | INVALID_INPUT          | Bad due day, period, amount, card input
----------------|------------------------|-----------------------------------------
Storage         | STORAGE_UNAVAILABLE    | Timeout / lost connection (retryable)
----------------|------------------------|-----------------------------------------
Lease           | LEASE_NOT_FOUND        | Lease ID doesn't exist
                | LEASE_NOT_BILLABLE     | Lease inactive, out of range, malformed
----------------|------------------------|-----------------------------------------
Payment         | PAYMENT_NOT_FOUND      | Payment ID doesn't exist
                | ILLEGAL_TRANSITION     | Transition not in the payment workflow
                | PAYMENT_IMMUTABLE      | Deleting/editing a non-pending payment
                | RETRY_LIMIT_EXCEEDED   | Attempt count reached configured max
----------------|------------------------|-----------------------------------------
Concurrency     | PAYMENT_CONFLICT       | Lost compare-and-set (retryable)
----------------|------------------------|-----------------------------------------
Authorization   | NOT_AUTHORIZED         | Actor does not own the record

Duplicate rent generation is NOT an error: the generation job reports the
lease under ``existing``.  A declined card is NOT an exception either: it is a
``failed`` SubmissionOutcome carrying a reason.

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Domain exceptions inherit from Exception, not ValueError, so they can be
   caught as a group without mixing in programming errors.

2. ``retryable`` is a class attribute.  Middleware may auto-retry
   StorageUnavailableError and PaymentConflictError; everything else is
   surfaced to the caller as-is.

===============================================================================
"""


class RentalKernelError(Exception):
    """
    Base exception for all rental kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RENTAL_KERNEL_ERROR"
    retryable: bool = False


# Input exceptions


class InvalidInputError(RentalKernelError):
    """Caller supplied a value that violates an operation's contract."""

    code: str = "INVALID_INPUT"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


# Storage exceptions


class StorageError(RentalKernelError):
    """Base exception for storage-layer errors."""

    code: str = "STORAGE_ERROR"


class StorageUnavailableError(StorageError):
    """
    Transient infrastructure failure (timeout, dropped connection, lock wait).

    Retryable by the caller.  Inside rent generation it is isolated to the
    lease being processed.
    """

    code: str = "STORAGE_UNAVAILABLE"
    retryable: bool = True

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage unavailable during {operation}: {detail}")


# Lease exceptions


class LeaseError(RentalKernelError):
    """Base exception for lease-related errors."""

    code: str = "LEASE_ERROR"


class LeaseNotFoundError(LeaseError):
    """Lease with given ID was not found."""

    code: str = "LEASE_NOT_FOUND"

    def __init__(self, lease_id: str):
        self.lease_id = lease_id
        super().__init__(f"Lease not found: {lease_id}")


class LeaseNotBillableError(LeaseError):
    """Lease cannot produce a rent payment for the requested period."""

    code: str = "LEASE_NOT_BILLABLE"

    def __init__(self, lease_id: str, reason: str):
        self.lease_id = lease_id
        self.reason = reason
        super().__init__(f"Lease {lease_id} is not billable: {reason}")


# Payment exceptions


class PaymentError(RentalKernelError):
    """Base exception for payment-related errors."""

    code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """Payment with given ID was not found."""

    code: str = "PAYMENT_NOT_FOUND"

    def __init__(self, payment_id: str):
        self.payment_id = payment_id
        super().__init__(f"Payment not found: {payment_id}")


class IllegalTransitionError(PaymentError):
    """Requested status transition is not part of the payment workflow."""

    code: str = "ILLEGAL_TRANSITION"

    def __init__(self, payment_id: str, current_status: str, target_status: str):
        self.payment_id = payment_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Payment {payment_id} cannot move from "
            f"{current_status} to {target_status}"
        )


class PaymentImmutableError(PaymentError):
    """Payment is no longer pending and cannot be edited or deleted."""

    code: str = "PAYMENT_IMMUTABLE"

    def __init__(self, payment_id: str, status: str):
        self.payment_id = payment_id
        self.status = status
        super().__init__(
            f"Payment {payment_id} is {status}; only pending payments "
            "may be deleted"
        )


class RetryLimitExceededError(PaymentError):
    """Payment reached the configured maximum number of attempts."""

    code: str = "RETRY_LIMIT_EXCEEDED"

    def __init__(self, payment_id: str, attempts: int, max_attempts: int):
        self.payment_id = payment_id
        self.attempts = attempts
        self.max_attempts = max_attempts
        super().__init__(
            f"Payment {payment_id} reached {attempts} of "
            f"{max_attempts} allowed attempts"
        )


# Concurrency exceptions


class ConcurrencyError(RentalKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"
    retryable: bool = True


class PaymentConflictError(ConcurrencyError):
    """A competing settlement attempt won the compare-and-set."""

    code: str = "PAYMENT_CONFLICT"

    def __init__(self, payment_id: str, current_status: str):
        self.payment_id = payment_id
        self.current_status = current_status
        super().__init__(
            f"Payment {payment_id} is already being processed "
            f"(status={current_status})"
        )


# Authorization exceptions


class AuthorizationError(RentalKernelError):
    """Base exception for ownership checks."""

    code: str = "AUTHORIZATION_ERROR"


class NotAuthorizedError(AuthorizationError):
    """Actor is not allowed to perform the action on the record."""

    code: str = "NOT_AUTHORIZED"

    def __init__(self, actor_id: str, action: str, resource_id: str):
        self.actor_id = actor_id
        self.action = action
        self.resource_id = resource_id
        super().__init__(
            f"Actor {actor_id} is not authorized to {action} {resource_id}"
        )
