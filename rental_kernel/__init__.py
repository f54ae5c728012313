"""
Rental Kernel - recurring billing and payment lifecycle engine.

A storage-backed engine with:
- Idempotent monthly rent generation
- Compare-and-set payment state transitions
- Deterministic demo gateway settlement
- Unique receipt numbering and read-only ledger projections
"""

__version__ = "0.1.0"
