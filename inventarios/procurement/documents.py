"""Plain-text renderings of a purchase order for the provider."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from inventarios.procurement.reconciliation import parse_date, to_decimal
from inventarios.ui_strings import FRIENDLY_TERMS


def _amount(value: Any) -> str:
    number = int(to_decimal(value).quantize(to_decimal("1")))
    return f"{number:,}".replace(",", ".")


def _date(value: Any) -> str:
    parsed = parse_date(value)
    return parsed.strftime("%d/%m/%Y") if parsed else "-"


def _quantity(value: Any) -> str:
    number = to_decimal(value).normalize()
    return format(number, "f")


def _item_lines(items: Iterable[Dict[str, Any]], bullet: str, with_price: bool) -> List[str]:
    lines = []
    for item in items:
        name = item.get("product_name") or f"Producto {item.get('product_id')}"
        unit = item.get("product_unit") or ""
        text = f"{bullet}{name}: {_quantity(item.get('quantity'))} {unit}".rstrip()
        if with_price:
            text = f"{text} - {_amount(item.get('unit_price'))} ₲"
        lines.append(text)
    return lines


def render_order_document(order: Dict[str, Any], provider: Dict[str, Any], items: List[Dict[str, Any]]) -> str:
    lines = [
        "ORDEN DE COMPRA",
        "",
        f"Número: {order.get('order_number')}",
        f"Fecha: {_date(order.get('order_date'))}",
        "",
        "PROVEEDOR:",
        str(provider.get("business_name") or ""),
        f"RUC: {provider.get('ruc') or '-'}",
        f"Email: {provider.get('email') or '-'}",
        "",
        "PRODUCTOS:",
        *_item_lines(items, "", with_price=True),
        "",
        f"SUBTOTAL: {_amount(order.get('subtotal'))} ₲",
        f"IVA: {_amount(order.get('tax_amount'))} ₲",
        f"TOTAL: {_amount(order.get('total_amount'))} ₲",
        "",
        f"Fecha estimada de llegada: {_date(order.get('delivery_date'))}",
        f"Fecha programada de pago: {_date(order.get('payment_due_date'))}",
    ]
    return "\n".join(lines) + "\n"


def render_order_email(order: Dict[str, Any], provider: Dict[str, Any], items: List[Dict[str, Any]]) -> Dict[str, str]:
    team = f"Equipo de {FRIENDLY_TERMS['app_name']}"
    body = "\n".join(
        [
            f"Estimado proveedor {provider.get('business_name')},",
            "",
            (
                f"Adjunto encontrará la orden de compra {order.get('order_number')} "
                f"por un total de {_amount(order.get('total_amount'))} ₲."
            ),
            "",
            f"Fecha estimada de entrega: {_date(order.get('delivery_date'))}",
            f"Fecha programada de pago: {_date(order.get('payment_due_date'))}",
            "",
            "Productos solicitados:",
            *_item_lines(items, "- ", with_price=False),
            "",
            "Por favor confirme la recepción de esta orden.",
            "",
            "Saludos cordiales,",
            team,
        ]
    )
    return {
        "to": str(provider.get("email") or ""),
        "subject": f"Orden de Compra {order.get('order_number')} - {FRIENDLY_TERMS['app_name']}",
        "body": body,
    }


def render_order_whatsapp(order: Dict[str, Any], provider: Dict[str, Any], items: List[Dict[str, Any]]) -> Dict[str, str]:
    message = "\n".join(
        [
            f"*Orden de Compra {order.get('order_number')}*",
            "",
            f"Estimado {provider.get('business_name')},",
            "",
            f"Hemos generado una nueva orden de compra por un total de *{_amount(order.get('total_amount'))} ₲*.",
            "",
            f"Fecha estimada de entrega: {_date(order.get('delivery_date'))}",
            f"Fecha programada de pago: {_date(order.get('payment_due_date'))}",
            "",
            "Productos solicitados:",
            *_item_lines(items, "• ", with_price=False),
            "",
            "Por favor confirme la recepción de esta orden.",
            "",
            "Saludos cordiales,",
            f"Equipo de {FRIENDLY_TERMS['app_name']}",
        ]
    )
    return {"to": str(provider.get("phone") or ""), "body": message}


def document_filename(order: Dict[str, Any]) -> str:
    return f"Orden_Compra_{order.get('order_number')}.txt"
