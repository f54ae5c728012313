"""Read-only query selectors."""

from rental_kernel.selectors.ledger_selector import LedgerSelector
from rental_kernel.selectors.payment_selector import PaymentFilter, PaymentSelector

__all__ = [
    "LedgerSelector",
    "PaymentFilter",
    "PaymentSelector",
]
