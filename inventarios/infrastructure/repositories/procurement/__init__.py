from .payment_repository import PaymentRepository
from .purchase_order_repository import PurchaseOrderRepository

__all__ = [
    "PaymentRepository",
    "PurchaseOrderRepository",
]
