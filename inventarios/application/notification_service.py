from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Any, Dict, List

from inventarios.application.catalog_service import require_row
from inventarios.domain.contracts import NotificationCreateInput
from inventarios.errors import ValidationError
from inventarios.infrastructure.repositories.notification_repository import NotificationRepository
from inventarios.infrastructure.repositories.procurement import PaymentRepository, PurchaseOrderRepository
from inventarios.procurement.payment_alerts import build_payment_due_alerts
from inventarios.procurement.reconciliation import DEFAULT_DUE_SOON_DAYS
from inventarios.row_store import RowStore
from inventarios.ui_strings import option_keys, status_keys_for_group


logger = logging.getLogger(__name__)


def _check_option(value: str | None, allowed: List[str], name: str) -> str | None:
    text = str(value or "").strip()
    if not text:
        return None
    if text not in allowed:
        raise ValidationError(code="option_invalid", message_key="option_invalid", payload={name: text})
    return text


class NotificationService:
    def __init__(
        self,
        notifications: NotificationRepository | None = None,
        orders: PurchaseOrderRepository | None = None,
        payments: PaymentRepository | None = None,
    ) -> None:
        self.notifications = notifications or NotificationRepository()
        self.orders = orders or PurchaseOrderRepository()
        self.payments = payments or PaymentRepository()

    def list_notifications(
        self,
        store: RowStore,
        *,
        status: str | None = None,
        notification_type: str | None = None,
        priority: str | None = None,
    ) -> List[dict]:
        return self.notifications.list_filtered(
            store,
            status=_check_option(status, status_keys_for_group("notificacion"), "status"),
            type=_check_option(notification_type, option_keys("notification_type"), "type"),
            priority=_check_option(priority, option_keys("priority"), "priority"),
        )

    def create_notification(self, store: RowStore, create_input: NotificationCreateInput) -> dict:
        values = asdict(create_input)
        values["status"] = "unread"
        return self.notifications.create(store, values)

    def _get(self, store: RowStore, notification_id: int) -> dict:
        return require_row(
            self.notifications.get_by_id(store, notification_id),
            "notification_not_found",
            notification_id,
        )

    def _set_status(self, store: RowStore, notification_id: int, values: Dict[str, Any]) -> dict:
        self._get(store, notification_id)
        return self.notifications.update(store, notification_id, values)

    def mark_read(self, store: RowStore, notification_id: int, *, now: datetime | None = None) -> dict:
        moment = now or datetime.now(timezone.utc)
        return self._set_status(store, notification_id, {"status": "read", "read_at": moment.isoformat()})

    def mark_unread(self, store: RowStore, notification_id: int) -> dict:
        return self._set_status(store, notification_id, {"status": "unread", "read_at": None})

    def archive(self, store: RowStore, notification_id: int) -> dict:
        return self._set_status(store, notification_id, {"status": "archived"})

    def delete_notification(self, store: RowStore, notification_id: int) -> None:
        self._get(store, notification_id)
        self.notifications.delete(store, notification_id)

    def unread_count(self, store: RowStore) -> int:
        return self.notifications.unread_count(store)

    def scan_payment_due(
        self,
        store: RowStore,
        *,
        today: date | None = None,
        due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
    ) -> List[dict]:
        orders = self.orders.list_unpaid(store)
        payments = self.payments.list_for_orders(store, [order.get("id") for order in orders])
        existing = self.notifications.list_open(store, "payment_due")
        drafts = build_payment_due_alerts(
            orders,
            payments,
            existing,
            today=today,
            due_soon_days=due_soon_days,
        )
        if not drafts:
            return []
        with store.unit_of_work():
            created = self.notifications.create_many(store, drafts)
        logger.info(
            "payment_due_scan_completed",
            extra={"orders_checked": len(orders), "notifications_created": len(created)},
        )
        return created
