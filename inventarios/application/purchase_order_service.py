from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List

from inventarios.application.catalog_service import require_row
from inventarios.domain.contracts import PurchaseOrderCreateInput
from inventarios.errors import ConflictError, NotFoundError, ValidationError
from inventarios.infrastructure.repositories.catalog import ProductRepository, ProviderRepository
from inventarios.infrastructure.repositories.procurement import PaymentRepository, PurchaseOrderRepository
from inventarios.procurement.documents import (
    document_filename,
    render_order_document,
    render_order_email,
    render_order_whatsapp,
)
from inventarios.procurement.flow_policy import (
    action_allowed,
    allowed_actions,
    build_process_steps,
    flow_meta,
    next_status,
    primary_action,
)
from inventarios.procurement.order_totals import compute_order_totals, line_subtotal
from inventarios.procurement.reconciliation import DEFAULT_DUE_SOON_DAYS, summarize
from inventarios.row_store import Filter, RowStore
from inventarios.ui_strings import option_keys, status_keys_for_group, status_label, success_message


logger = logging.getLogger(__name__)

_ORDER_NUMBER_ATTEMPTS = 5


def generate_order_number(now: datetime | None = None) -> str:
    moment = now or datetime.now()
    millis = int(moment.timestamp() * 1000)
    return f"OC-{moment.year}-{str(millis)[-4:]}"


def forbidden_action(order: Dict[str, Any], action: str) -> ConflictError:
    status = order.get("status")
    return ConflictError(
        payload={
            "status": status,
            "action": action,
            "allowed_actions": allowed_actions(status),
            "primary_action": primary_action(status),
        },
    )


def require_action(order: Dict[str, Any], action: str) -> None:
    if not action_allowed(order.get("status"), action):
        raise forbidden_action(order, action)


class PurchaseOrderService:
    def __init__(
        self,
        orders: PurchaseOrderRepository | None = None,
        payments: PaymentRepository | None = None,
        providers: ProviderRepository | None = None,
        products: ProductRepository | None = None,
    ) -> None:
        self.orders = orders or PurchaseOrderRepository()
        self.payments = payments or PaymentRepository()
        self.providers = providers or ProviderRepository()
        self.products = products or ProductRepository()

    def get_order(self, store: RowStore, purchase_order_id: int) -> dict:
        return require_row(self.orders.get_by_id(store, purchase_order_id), "purchase_order_not_found", purchase_order_id)

    def _decorate(
        self,
        order: Dict[str, Any],
        payments: List[dict],
        provider: Dict[str, Any] | None,
        *,
        today: date | None,
        due_soon_days: int,
    ) -> Dict[str, Any]:
        decorated = dict(order)
        decorated["provider_name"] = (provider or {}).get("business_name")
        decorated["status_label"] = status_label("orden_compra", order.get("status"))
        decorated["payment_status_label"] = status_label("estado_pago", order.get("payment_status"))
        decorated["reconciliation"] = summarize(order, payments, today=today, due_soon_days=due_soon_days)
        decorated["flow"] = flow_meta(order.get("status"))
        return decorated

    def list_orders(
        self,
        store: RowStore,
        *,
        status: str | None = None,
        payment_status: str | None = None,
        provider_id: int | None = None,
        today: date | None = None,
        due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
    ) -> List[dict]:
        filters = []
        if status:
            if status not in status_keys_for_group("orden_compra"):
                raise ValidationError(code="option_invalid", message_key="option_invalid", payload={"status": status})
            filters.append(Filter("status", "eq", status))
        if payment_status:
            if payment_status not in status_keys_for_group("estado_pago"):
                raise ValidationError(
                    code="option_invalid",
                    message_key="option_invalid",
                    payload={"payment_status": payment_status},
                )
            filters.append(Filter("payment_status", "eq", payment_status))
        if provider_id is not None:
            filters.append(Filter("provider_id", "eq", provider_id))

        orders = self.orders.list_all(store, filters=filters)
        payments = self.payments.list_for_orders(store, [order.get("id") for order in orders])
        providers = {
            str(row.get("id")): row
            for row in self.providers.get_many(store, [order.get("provider_id") for order in orders])
        }
        return [
            self._decorate(
                order,
                payments,
                providers.get(str(order.get("provider_id"))),
                today=today,
                due_soon_days=due_soon_days,
            )
            for order in orders
        ]

    def _items_with_products(self, store: RowStore, purchase_order_id: int) -> List[dict]:
        items = self.orders.list_items(store, purchase_order_id)
        products = {
            str(row.get("id")): row for row in self.products.get_many(store, [item.get("product_id") for item in items])
        }
        enriched = []
        for item in items:
            product = products.get(str(item.get("product_id"))) or {}
            row = dict(item)
            row["product_name"] = product.get("name")
            row["product_code"] = product.get("code")
            row["product_unit"] = product.get("unit")
            enriched.append(row)
        return enriched

    def order_detail(
        self,
        store: RowStore,
        purchase_order_id: int,
        *,
        today: date | None = None,
        due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
    ) -> Dict[str, Any]:
        order = self.get_order(store, purchase_order_id)
        provider = self.providers.get_by_id(store, order.get("provider_id"))
        payments = self.payments.list_for_order(store, purchase_order_id)
        detail = self._decorate(order, payments, provider, today=today, due_soon_days=due_soon_days)
        detail["provider"] = provider
        detail["items"] = self._items_with_products(store, purchase_order_id)
        detail["payments"] = payments
        detail["process_steps"] = build_process_steps(order.get("status"))
        return detail

    def _unique_order_number(self, store: RowStore, requested: str | None, now: datetime | None) -> str:
        if requested:
            if self.orders.get_by_number(store, requested):
                raise ConflictError(
                    code="order_number_taken",
                    message_key="order_number_taken",
                    payload={"order_number": requested},
                )
            return requested
        moment = now or datetime.now()
        for attempt in range(_ORDER_NUMBER_ATTEMPTS):
            candidate = generate_order_number(moment + timedelta(milliseconds=attempt))
            if not self.orders.get_by_number(store, candidate):
                return candidate
        return f"{generate_order_number(moment)}-{int(moment.timestamp())}"

    def create_order(
        self,
        store: RowStore,
        create_input: PurchaseOrderCreateInput,
        *,
        iva_rate: Any,
        now: datetime | None = None,
    ) -> Dict[str, Any]:
        require_row(self.providers.get_by_id(store, create_input.provider_id), "provider_not_found", create_input.provider_id)
        product_ids = {line.product_id for line in create_input.items}
        found = {int(row["id"]) for row in self.products.get_many(store, product_ids)}
        missing = sorted(product_ids - found)
        if missing:
            raise NotFoundError(
                code="product_not_found",
                message_key="product_not_found",
                payload={"product_ids": missing},
            )

        lines = [
            {
                "product_id": line.product_id,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "total_price": line_subtotal(line.quantity, line.unit_price),
                "received_quantity": 0,
            }
            for line in create_input.items
        ]
        totals = compute_order_totals(lines, iva_rate)

        with store.unit_of_work():
            order = self.orders.create(
                store,
                {
                    "order_number": self._unique_order_number(store, create_input.order_number, now),
                    "provider_id": create_input.provider_id,
                    "order_date": create_input.order_date,
                    "delivery_date": create_input.delivery_date,
                    "payment_due_date": create_input.payment_due_date,
                    "status": "pre_order",
                    "payment_status": "unpaid",
                    "notes": create_input.notes,
                    "email_sent": False,
                    "whatsapp_sent": False,
                    **totals,
                },
            )
            items = self.orders.add_items(store, order["id"], lines)

        logger.info(
            "purchase_order_created",
            extra={
                "purchase_order_id": order.get("id"),
                "order_number": order.get("order_number"),
                "total_amount": float(totals["total_amount"]),
            },
        )
        created = dict(order)
        created["items"] = items
        created["flow"] = flow_meta(order.get("status"))
        return created

    def update_order(self, store: RowStore, purchase_order_id: int, changes: Dict[str, Any]) -> dict:
        order = self.get_order(store, purchase_order_id)
        require_action(order, "edit_order")
        return self.orders.update(store, purchase_order_id, changes)

    def delete_order(self, store: RowStore, purchase_order_id: int) -> None:
        order = self.get_order(store, purchase_order_id)
        require_action(order, "delete_order")
        with store.unit_of_work():
            self.orders.delete_items(store, purchase_order_id)
            self.payments.delete_for_order(store, purchase_order_id)
            self.orders.delete(store, purchase_order_id)
        logger.info("purchase_order_deleted", extra={"purchase_order_id": purchase_order_id})

    def advance_order(self, store: RowStore, purchase_order_id: int) -> Dict[str, Any]:
        order = self.get_order(store, purchase_order_id)
        target = next_status(order.get("status"))
        if target is None:
            raise ConflictError(
                code="order_already_final",
                message_key="order_already_final",
                payload={"status": order.get("status")},
            )
        require_action(order, "advance_status")
        updated = self.orders.update_status(store, purchase_order_id, target)
        label = status_label("orden_compra", target)
        logger.info(
            "purchase_order_status_changed",
            extra={"purchase_order_id": purchase_order_id, "from_status": order.get("status"), "to_status": target},
        )
        return {
            "order": updated,
            "previous_status": order.get("status"),
            "status": target,
            "flow": flow_meta(target),
            "message": success_message("order_status_updated", label=label),
        }

    def _document_parts(self, store: RowStore, purchase_order_id: int) -> tuple[dict, dict, List[dict]]:
        order = self.get_order(store, purchase_order_id)
        provider = self.providers.get_by_id(store, order.get("provider_id")) or {}
        return order, provider, self._items_with_products(store, purchase_order_id)

    def render_document(self, store: RowStore, purchase_order_id: int) -> Dict[str, str]:
        order, provider, items = self._document_parts(store, purchase_order_id)
        require_action(order, "download_document")
        return {
            "filename": document_filename(order),
            "content": render_order_document(order, provider, items),
        }

    def dispatch_order(self, store: RowStore, purchase_order_id: int, channel: str) -> Dict[str, Any]:
        if channel not in option_keys("dispatch_channel"):
            raise ValidationError(code="option_invalid", message_key="option_invalid", payload={"channel": channel})
        order, provider, items = self._document_parts(store, purchase_order_id)
        require_action(order, f"dispatch_{channel}")

        if channel == "email":
            message = render_order_email(order, provider, items)
            flag = "email_sent"
            notice = success_message("order_dispatched_email", recipient=message["to"])
        else:
            message = render_order_whatsapp(order, provider, items)
            flag = "whatsapp_sent"
            notice = success_message("order_dispatched_whatsapp")

        if not message["to"]:
            raise ValidationError(
                code="email_invalid" if channel == "email" else "validation_error",
                message_key="email_invalid" if channel == "email" else "validation_error",
                payload={"channel": channel, "provider_id": order.get("provider_id")},
            )

        updated = self.orders.update(store, purchase_order_id, {flag: True})
        logger.info(
            "purchase_order_dispatched",
            extra={
                "purchase_order_id": purchase_order_id,
                "channel": channel,
                "recipient": message["to"],
                "body": message["body"],
            },
        )
        return {"order": updated, "channel": channel, "dispatched": message, "message": notice}
