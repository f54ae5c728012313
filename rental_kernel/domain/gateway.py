"""
Demo gateway rules -- deterministic card-outcome table.

Responsibility:
    Maps submitted card data to a terminal outcome without any network
    call.  This is a closed simulation: no Luhn check, no CVV or ZIP
    validation, no amount limits.  The same card and date always produce
    the same decision.

Architecture position:
    Kernel > Domain -- pure, ZERO I/O.  ``DemoGatewayService`` calls
    ``evaluate_card`` after it has won the compare-and-set on the payment.

Evaluation order:
    1. Expiry month/year before the current month -> "card expired"
    2. Test card table (below)
    3. Anything else -> "invalid card"
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from rental_kernel.domain.types import CardInput

REASON_DECLINED = "card declined"
REASON_INSUFFICIENT_FUNDS = "insufficient funds"
REASON_EXPIRED = "card expired"
REASON_INVALID = "invalid card"
REASON_PROCESSING_ERROR = "processing error"


class DemoCards:
    """Documented demo card numbers."""

    SUCCESS = "4242424242424242"
    DECLINED = "4000000000000002"
    INSUFFICIENT_FUNDS = "4000000000009995"
    EXPIRED = "4000000000000069"


# card number -> failure reason (None = approved)
CARD_TABLE: dict[str, str | None] = {
    DemoCards.SUCCESS: None,
    DemoCards.DECLINED: REASON_DECLINED,
    DemoCards.INSUFFICIENT_FUNDS: REASON_INSUFFICIENT_FUNDS,
    DemoCards.EXPIRED: REASON_EXPIRED,
}


@dataclass(frozen=True)
class GatewayDecision:
    """Outcome of evaluating one card against the table."""

    approved: bool
    reason: str | None
    card_brand: str
    card_last4: str


def card_brand(number: str) -> str:
    if number.startswith("4"):
        return "Visa"
    if number[:2] in ("51", "52", "53", "54", "55"):
        return "Mastercard"
    if number[:2] in ("34", "37"):
        return "Amex"
    if number.startswith(("6011", "65")):
        return "Discover"
    return "Unknown"


def normalize_expiry_year(expiry_year: int) -> int:
    """Accept two-digit years ("26") as well as four-digit ones."""
    if 0 <= expiry_year < 100:
        return 2000 + expiry_year
    return expiry_year


def is_expired(card: CardInput, today: date) -> bool:
    """A card is valid through the last day of its expiry month."""
    year = normalize_expiry_year(card.expiry_year)
    return (year, card.expiry_month) < (today.year, today.month)


def evaluate_card(card: CardInput, today: date) -> GatewayDecision:
    number = card.normalized_number
    brand = card_brand(number)
    last4 = card.last4

    if not 1 <= card.expiry_month <= 12:
        return GatewayDecision(False, REASON_INVALID, brand, last4)

    if is_expired(card, today):
        return GatewayDecision(False, REASON_EXPIRED, brand, last4)

    if number not in CARD_TABLE:
        return GatewayDecision(False, REASON_INVALID, brand, last4)

    reason = CARD_TABLE[number]
    return GatewayDecision(reason is None, reason, brand, last4)
