"""ORM models for the rental billing kernel."""

from rental_kernel.models.lease import LeaseModel
from rental_kernel.models.payment import PaymentModel
from rental_kernel.models.sequence import SequenceCounter

__all__ = [
    "LeaseModel",
    "PaymentModel",
    "SequenceCounter",
]
