"""Kernel services -- the imperative shell over payments and receipts."""

from rental_kernel.services.charge_service import ChargeService
from rental_kernel.services.gateway_service import DemoGatewayService
from rental_kernel.services.payment_state_service import PaymentStateService
from rental_kernel.services.receipt_service import ReceiptService
from rental_kernel.services.sequence_service import SequenceService

__all__ = [
    "ChargeService",
    "DemoGatewayService",
    "PaymentStateService",
    "ReceiptService",
    "SequenceService",
]
