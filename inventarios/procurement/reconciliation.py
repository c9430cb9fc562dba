"""Purchase-order payment reconciliation.

Pure functions over in-memory rows: an order dict (``id``,
``total_amount``, ``payment_due_date``) and the payment dicts recorded
against it (``purchase_order_id``, ``amount``). Money is handled as
:class:`~decimal.Decimal`.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List

from inventarios.ui_strings import option_keys


DEFAULT_DUE_SOON_DAYS = 7

PAYMENT_REFERENCE_PREFIXES: Dict[str, str] = {
    "transfer": "TRF",
    "check": "CHK",
    "card": "CRD",
    "cash": "CSH",
}


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip() or "0")
    except InvalidOperation:
        return Decimal("0")


def parse_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def order_total(order: Dict[str, Any]) -> Decimal:
    return to_decimal(order.get("total_amount", order.get("total")))


def payments_for_order(order: Dict[str, Any], payments: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    order_id = str(order.get("id"))
    return [payment for payment in payments if str(payment.get("purchase_order_id")) == order_id]


def total_paid(order: Dict[str, Any], payments: Iterable[Dict[str, Any]]) -> Decimal:
    return sum(
        (to_decimal(payment.get("amount")) for payment in payments_for_order(order, payments)),
        Decimal("0"),
    )


def remaining_balance(order: Dict[str, Any], payments: Iterable[Dict[str, Any]]) -> Decimal:
    remaining = order_total(order) - total_paid(order, payments)
    return max(Decimal("0"), remaining)


def days_until(due_date: Any, today: date | None = None) -> int | None:
    due = parse_date(due_date)
    if due is None:
        return None
    return (due - (today or date.today())).days


def payment_status(
    order: Dict[str, Any],
    payments: Iterable[Dict[str, Any]],
    *,
    today: date | None = None,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
) -> str:
    payments = list(payments)
    if remaining_balance(order, payments) <= 0:
        return "paid"
    if payments_for_order(order, payments):
        return "partial"
    days = days_until(order.get("payment_due_date"), today)
    if days is None:
        return "pending"
    if days < 0:
        return "overdue"
    if days <= due_soon_days:
        return "due_soon"
    return "pending"


def payment_status_badge(
    order: Dict[str, Any],
    payments: Iterable[Dict[str, Any]],
    *,
    today: date | None = None,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
) -> Dict[str, Any]:
    status = payment_status(order, payments, today=today, due_soon_days=due_soon_days)
    days = days_until(order.get("payment_due_date"), today)
    if status == "paid":
        return {"status": status, "variant": "default", "text": "Pagado"}
    if status == "partial":
        return {"status": status, "variant": "secondary", "text": "Parcial"}
    if status == "overdue":
        return {"status": status, "variant": "destructive", "text": "Vencido"}
    if status == "due_soon":
        return {"status": status, "variant": "destructive", "text": f"Próximo ({days} días)"}
    if days is None:
        return {"status": status, "variant": "outline", "text": "Pendiente"}
    return {"status": status, "variant": "outline", "text": f"Pendiente ({days} días)"}


def validate_payment_amount(amount: Any, order: Dict[str, Any], payments: Iterable[Dict[str, Any]]) -> str | None:
    value = to_decimal(amount)
    if value <= 0:
        return "payment_amount_not_positive"
    if value > remaining_balance(order, payments):
        return "payment_amount_exceeds_remaining"
    return None


def summarize(
    order: Dict[str, Any],
    payments: Iterable[Dict[str, Any]],
    *,
    today: date | None = None,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
) -> Dict[str, Any]:
    payments = list(payments)
    badge = payment_status_badge(order, payments, today=today, due_soon_days=due_soon_days)
    return {
        "total": float(order_total(order)),
        "paid": float(total_paid(order, payments)),
        "remaining": float(remaining_balance(order, payments)),
        "payments_count": len(payments_for_order(order, payments)),
        "days_until_due": days_until(order.get("payment_due_date"), today),
        "status": badge["status"],
        "badge": {"variant": badge["variant"], "text": badge["text"]},
    }


def format_currency(amount: Any) -> str:
    value = to_decimal(amount).quantize(Decimal("1"))
    sign = "-" if value < 0 else ""
    digits = f"{abs(int(value)):,}".replace(",", ".")
    return f"₲ {sign}{digits}"


def generate_payment_reference(payment_type: str, now: datetime | None = None) -> str:
    if payment_type not in option_keys("payment_type"):
        payment_type = "cash"
    prefix = PAYMENT_REFERENCE_PREFIXES[payment_type]
    moment = now or datetime.now()
    millis = int(moment.timestamp() * 1000)
    return f"{prefix}-{moment.year}-{str(millis)[-6:]}"
