"""
Payment Workflow.

State machine definition for a payment's settlement lifecycle.  The
definition is pure data; ``PaymentStateService`` enforces it against the
store with conditional updates.

    pending ──begin_attempt──▶ processing ──settle──▶ paid (terminal)
                                   │  ▲
                           decline │  │ retry_attempt
                                   ▼  │
                                  failed
"""

from dataclasses import dataclass

from rental_kernel.domain.types import PaymentStatus
from rental_kernel.logging_config import get_logger

logger = get_logger("domain.workflow")


@dataclass(frozen=True)
class Guard:
    """A condition for a transition."""
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition."""
    from_state: PaymentStatus
    to_state: PaymentStatus
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition."""
    name: str
    description: str
    initial_state: PaymentStatus
    states: tuple[PaymentStatus, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[PaymentStatus, ...] = ()

    def is_allowed(self, from_state: PaymentStatus, to_state: PaymentStatus) -> bool:
        return any(
            t.from_state == from_state and t.to_state == to_state
            for t in self.transitions
        )

    def sources_for(self, to_state: PaymentStatus) -> tuple[PaymentStatus, ...]:
        """All states from which ``to_state`` may be entered."""
        return tuple(t.from_state for t in self.transitions if t.to_state == to_state)

    def targets_from(self, from_state: PaymentStatus) -> tuple[PaymentStatus, ...]:
        return tuple(t.to_state for t in self.transitions if t.from_state == from_state)

    def is_terminal(self, state: PaymentStatus) -> bool:
        return state in self.terminal_states


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

CURRENT_STATUS_MATCHES = Guard(
    name="current_status_matches",
    description="Stored status equals the expected source state at write time",
)

RECEIPT_MINTED = Guard(
    name="receipt_minted",
    description="A unique receipt number was minted in the same transaction",
)


# -----------------------------------------------------------------------------
# Payment Workflow
# -----------------------------------------------------------------------------

PAYMENT_WORKFLOW = Workflow(
    name="payment_settlement",
    description="Rent and charge payment settlement lifecycle",
    initial_state=PaymentStatus.PENDING,
    states=(
        PaymentStatus.PENDING,
        PaymentStatus.PROCESSING,
        PaymentStatus.PAID,
        PaymentStatus.FAILED,
    ),
    transitions=(
        Transition(
            PaymentStatus.PENDING,
            PaymentStatus.PROCESSING,
            action="begin_attempt",
            guard=CURRENT_STATUS_MATCHES,
        ),
        Transition(
            PaymentStatus.FAILED,
            PaymentStatus.PROCESSING,
            action="retry_attempt",
            guard=CURRENT_STATUS_MATCHES,
        ),
        Transition(
            PaymentStatus.PROCESSING,
            PaymentStatus.PAID,
            action="settle",
            guard=RECEIPT_MINTED,
        ),
        Transition(
            PaymentStatus.PROCESSING,
            PaymentStatus.FAILED,
            action="decline",
            guard=CURRENT_STATUS_MATCHES,
        ),
    ),
    terminal_states=(PaymentStatus.PAID,),
)

logger.debug(
    "payment_workflow_defined",
    extra={
        "workflow": PAYMENT_WORKFLOW.name,
        "transitions": [t.action for t in PAYMENT_WORKFLOW.transitions],
    },
)
