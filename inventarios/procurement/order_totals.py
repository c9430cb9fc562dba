from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable

from inventarios.procurement.reconciliation import to_decimal


DEFAULT_IVA_RATE = Decimal("0.15")
_CENTS = Decimal("0.01")


def _round(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def line_subtotal(quantity: Any, unit_price: Any) -> Decimal:
    return _round(to_decimal(quantity) * to_decimal(unit_price))


def compute_order_totals(items: Iterable[Dict[str, Any]], iva_rate: Any = DEFAULT_IVA_RATE) -> Dict[str, Decimal]:
    # Computed once when the order is created; later line edits do not touch the stored totals.
    subtotal = sum(
        (line_subtotal(item.get("quantity"), item.get("unit_price")) for item in items),
        Decimal("0"),
    )
    tax = _round(subtotal * to_decimal(iva_rate))
    return {
        "subtotal": _round(subtotal),
        "tax_amount": tax,
        "total_amount": _round(subtotal + tax),
    }
