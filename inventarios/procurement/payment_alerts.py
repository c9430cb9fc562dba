from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List

from inventarios.procurement.reconciliation import (
    DEFAULT_DUE_SOON_DAYS,
    days_until,
    format_currency,
    payment_status,
    remaining_balance,
)


ALERT_PRIORITY_BY_STATUS: Dict[str, str] = {
    "overdue": "high",
    "due_soon": "medium",
}

OPEN_NOTIFICATION_STATUSES = ("unread", "read")


def _already_notified(order_id: Any, priority: str, notifications: Iterable[Dict[str, Any]]) -> bool:
    key = str(order_id)
    for notification in notifications:
        if notification.get("type") != "payment_due":
            continue
        if notification.get("priority") != priority:
            continue
        if notification.get("related_entity_type") != "purchase_order":
            continue
        if notification.get("status") not in OPEN_NOTIFICATION_STATUSES:
            continue
        if str(notification.get("related_entity_id")) == key:
            return True
    return False


def _alert_text(order: Dict[str, Any], status: str, days: int | None, remaining: Any) -> tuple[str, str]:
    number = order.get("order_number") or order.get("id")
    amount = format_currency(remaining)
    if status == "overdue":
        return (
            f"Pago vencido: {number}",
            f"La orden {number} tiene un saldo pendiente de {amount} vencido hace {abs(days or 0)} días.",
        )
    if days == 0:
        return (
            f"Pago próximo: {number}",
            f"La orden {number} tiene un saldo pendiente de {amount} que vence hoy.",
        )
    return (
        f"Pago próximo: {number}",
        f"La orden {number} tiene un saldo pendiente de {amount} que vence en {days} días.",
    )


def build_payment_due_alerts(
    orders: Iterable[Dict[str, Any]],
    payments: Iterable[Dict[str, Any]],
    notifications: Iterable[Dict[str, Any]],
    *,
    today: date | None = None,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
) -> List[Dict[str, Any]]:
    """Return notification drafts for unpaid orders that are overdue or due soon.

    An order is skipped when it already carries an open ``payment_due``
    notification of the same priority, so repeated scans do not stack
    duplicates while a due-soon order that becomes overdue still gets its
    high-priority alert.
    """
    payments = list(payments)
    notifications = list(notifications)
    drafts: List[Dict[str, Any]] = []
    for order in orders:
        if order.get("payment_status") == "paid":
            continue
        status = payment_status(order, payments, today=today, due_soon_days=due_soon_days)
        priority = ALERT_PRIORITY_BY_STATUS.get(status)
        if priority is None:
            continue
        if _already_notified(order.get("id"), priority, notifications):
            continue
        days = days_until(order.get("payment_due_date"), today)
        title, message = _alert_text(order, status, days, remaining_balance(order, payments))
        drafts.append(
            {
                "type": "payment_due",
                "title": title,
                "message": message,
                "priority": priority,
                "status": "unread",
                "related_entity_type": "purchase_order",
                "related_entity_id": str(order.get("id")),
            }
        )
    return drafts
