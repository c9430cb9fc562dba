from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List


@dataclass(frozen=True)
class ProductTypeInput:
    name: str
    description: str | None = None


@dataclass(frozen=True)
class ProviderInput:
    business_name: str
    type: str = "recurrent"
    ruc: str | None = None
    contact_person: str | None = None
    phone: str | None = None
    phones: List[str] = field(default_factory=list)
    email: str | None = None
    address: str | None = None
    payment_terms: int = 30
    product_type_ids: List[int] = field(default_factory=list)
    contract_number: str | None = None
    contract_start_date: str | None = None
    delivery_frequency: str | None = None
    contract_file_url: str | None = None
    status: str = "active"


@dataclass(frozen=True)
class ProductInput:
    code: str
    name: str
    unit: str
    product_type_id: int | None = None
    storage_type: str = "bulk"
    requires_expiry_control: bool = False
    min_stock: Decimal = Decimal("0")
    description: str | None = None
    status: str = "active"


@dataclass(frozen=True)
class WarehouseInput:
    name: str
    location: str | None = None
    capacity: Decimal | None = None
    status: str = "active"


@dataclass(frozen=True)
class OrderLineInput:
    product_id: int
    quantity: Decimal
    unit_price: Decimal


@dataclass(frozen=True)
class PurchaseOrderCreateInput:
    provider_id: int
    order_date: str
    items: List[OrderLineInput]
    delivery_date: str | None = None
    payment_due_date: str | None = None
    notes: str | None = None
    order_number: str | None = None


@dataclass(frozen=True)
class PaymentCreateInput:
    purchase_order_id: int
    amount: Decimal
    payment_date: str
    payment_type: str
    reference: str | None = None
    description: str | None = None
    receipt_file: str | None = None


@dataclass(frozen=True)
class NotificationCreateInput:
    type: str
    title: str
    message: str
    priority: str = "medium"
    related_entity_type: str | None = None
    related_entity_id: str | None = None
