from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Dict, List

from inventarios.application.catalog_service import require_row
from inventarios.domain.contracts import PaymentCreateInput
from inventarios.errors import ConflictError, ValidationError
from inventarios.infrastructure.repositories.procurement import PaymentRepository, PurchaseOrderRepository
from inventarios.procurement.reconciliation import (
    DEFAULT_DUE_SOON_DAYS,
    format_currency,
    generate_payment_reference,
    remaining_balance,
    summarize,
    to_decimal,
    validate_payment_amount,
)
from inventarios.row_store import RowStore
from inventarios.ui_strings import error_message, option_label, success_message


logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(
        self,
        payments: PaymentRepository | None = None,
        orders: PurchaseOrderRepository | None = None,
    ) -> None:
        self.payments = payments or PaymentRepository()
        self.orders = orders or PurchaseOrderRepository()

    def _get_order(self, store: RowStore, purchase_order_id: int) -> dict:
        return require_row(self.orders.get_by_id(store, purchase_order_id), "purchase_order_not_found", purchase_order_id)

    def list_payments(self, store: RowStore, *, purchase_order_id: int | None = None) -> List[dict]:
        if purchase_order_id is not None:
            orders = [self._get_order(store, purchase_order_id)]
            payments = self.payments.list_for_order(store, purchase_order_id)
        else:
            orders = self.orders.list_all(store)
            payments = self.payments.list_all(store)
        orders_by_id = {str(row.get("id")): row for row in orders}
        listed = []
        for payment in payments:
            row = dict(payment)
            order = orders_by_id.get(str(payment.get("purchase_order_id"))) or {}
            row["order_number"] = order.get("order_number")
            row["payment_type_label"] = option_label("payment_type", payment.get("payment_type"))
            listed.append(row)
        return listed

    def order_payments(
        self,
        store: RowStore,
        purchase_order_id: int,
        *,
        today: date | None = None,
        due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
    ) -> Dict[str, Any]:
        order = self._get_order(store, purchase_order_id)
        payments = self.payments.list_for_order(store, purchase_order_id)
        return {
            "purchase_order_id": order.get("id"),
            "order_number": order.get("order_number"),
            "payments": payments,
            "summary": summarize(order, payments, today=today, due_soon_days=due_soon_days),
        }

    def record_payment(
        self,
        store: RowStore,
        create_input: PaymentCreateInput,
        *,
        today: date | None = None,
        now: datetime | None = None,
        due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
    ) -> Dict[str, Any]:
        """Validate ``create_input`` against the order balance and store it.

        The amount must be positive and must not exceed the remaining
        balance computed from the payments already stored, whatever the order
        lifecycle status is. When the new
        payment settles the balance the order's ``payment_status`` flips to
        ``paid``. Both writes share one unit of work.
        """
        order = self._get_order(store, create_input.purchase_order_id)
        existing = self.payments.list_for_order(store, create_input.purchase_order_id)
        remaining = remaining_balance(order, existing)

        error_key = validate_payment_amount(create_input.amount, order, existing)
        if error_key == "payment_amount_exceeds_remaining" and remaining <= 0:
            raise ConflictError(
                code="order_fully_paid",
                message_key="order_fully_paid",
                payload={"purchase_order_id": order.get("id"), "remaining": 0.0},
            )
        if error_key:
            params = {"remaining": format_currency(remaining)}
            raise ValidationError(
                code=error_key,
                message_key=error_key,
                message_params=params,
                payload={
                    "fields": {"amount": error_message(error_key, **params)},
                    "remaining": float(remaining),
                },
            )

        values = asdict(create_input)
        values["reference"] = create_input.reference or generate_payment_reference(create_input.payment_type, now)
        settles = remaining - to_decimal(create_input.amount) <= 0

        with store.unit_of_work():
            payment = self.payments.create(store, values)
            if settles:
                order = self.orders.mark_payment_status(store, create_input.purchase_order_id, "paid") or order

        payments = existing + [payment]
        logger.info(
            "payment_recorded",
            extra={
                "purchase_order_id": create_input.purchase_order_id,
                "payment_id": payment.get("id"),
                "amount": float(to_decimal(create_input.amount)),
                "settled": settles,
            },
        )
        return {
            "payment": payment,
            "payment_status": "paid" if settles else order.get("payment_status"),
            "summary": summarize(order, payments, today=today, due_soon_days=due_soon_days),
            "message": success_message("payment_recorded"),
        }

    def delete_payment(self, store: RowStore, payment_id: int) -> Dict[str, Any]:
        payment = require_row(self.payments.get_by_id(store, payment_id), "payment_not_found", payment_id)
        order = self._get_order(store, payment.get("purchase_order_id"))
        with store.unit_of_work():
            self.payments.delete(store, payment_id)
            remaining_payments = self.payments.list_for_order(store, order.get("id"))
            if order.get("payment_status") == "paid" and remaining_balance(order, remaining_payments) > 0:
                order = self.orders.mark_payment_status(store, order.get("id"), "unpaid") or order
        logger.info(
            "payment_deleted",
            extra={"payment_id": payment_id, "purchase_order_id": order.get("id")},
        )
        return {"payment_id": payment_id, "purchase_order_id": order.get("id"), "payment_status": order.get("payment_status")}
