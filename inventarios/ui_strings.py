from __future__ import annotations

from typing import Dict, List


FRIENDLY_TERMS: Dict[str, str] = {
    "app_name": "Inventarios Rossi",
    "company_name": "Rossi Lácteos",
    "provider": "Proveedor",
    "product": "Producto",
    "product_type": "Tipo de producto",
    "warehouse": "Almacén",
    "purchase_order": "Orden de compra",
    "payment": "Pago",
    "notification": "Notificación",
}


STATUS_GROUPS: Dict[str, List[Dict[str, str]]] = {
    "orden_compra": [
        {
            "key": "pre_order",
            "label": "Pre-orden",
            "description": "Orden en preparación, todavía no enviada al proveedor.",
        },
        {
            "key": "issued",
            "label": "Emitida",
            "description": "Orden emitida y comunicada al proveedor.",
        },
        {
            "key": "received",
            "label": "Recibida",
            "description": "Mercadería recibida en almacén.",
        },
        {
            "key": "paid",
            "label": "Pagada",
            "description": "Orden cerrada con el pago completo.",
        },
    ],
    "estado_pago": [
        {"key": "unpaid", "label": "No pagado", "description": "La orden tiene saldo pendiente."},
        {"key": "paid", "label": "Pagado", "description": "La orden no tiene saldo pendiente."},
    ],
    "conciliacion": [
        {"key": "paid", "label": "Pagado", "description": "Saldo pendiente en cero."},
        {"key": "partial", "label": "Parcial", "description": "Existen pagos registrados y queda saldo."},
        {"key": "overdue", "label": "Vencido", "description": "La fecha programada de pago ya pasó."},
        {"key": "due_soon", "label": "Próximo", "description": "El pago vence en los próximos días."},
        {"key": "pending", "label": "Pendiente", "description": "Pago programado sin urgencia."},
    ],
    "notificacion": [
        {"key": "unread", "label": "No leída", "description": "Notificación nueva."},
        {"key": "read", "label": "Leída", "description": "Notificación revisada."},
        {"key": "archived", "label": "Archivada", "description": "Notificación fuera de la bandeja."},
    ],
    "registro": [
        {"key": "active", "label": "Activo", "description": "Registro disponible para operar."},
        {"key": "inactive", "label": "Inactivo", "description": "Registro fuera de uso."},
    ],
}


OPTION_GROUPS: Dict[str, Dict[str, str]] = {
    "payment_type": {
        "cash": "Efectivo",
        "transfer": "Transferencia",
        "check": "Cheque",
        "card": "Tarjeta",
    },
    "provider_type": {
        "contract": "Por Contrato",
        "recurrent": "Recurrente",
    },
    "storage_type": {
        "bulk": "A Granel",
        "batch": "Por Lotes",
    },
    "delivery_frequency": {
        "weekly": "Semanal",
        "biweekly": "Quincenal",
        "monthly": "Mensual",
    },
    "notification_type": {
        "low_stock": "Stock Bajo",
        "expiry": "Vencimiento",
        "payment_due": "Pago Pendiente",
        "import": "Importación",
        "manual": "Manual",
    },
    "priority": {
        "low": "Baja",
        "medium": "Media",
        "high": "Alta",
    },
    "related_entity": {
        "product": "Producto",
        "batch": "Lote",
        "purchase_order": "Orden de compra",
        "payment": "Pago",
    },
    "dispatch_channel": {
        "email": "Email",
        "whatsapp": "WhatsApp",
    },
}


MESSAGES: Dict[str, Dict[str, str]] = {
    "error": {
        "action_not_allowed_for_status": "La acción no está permitida para el estado actual.",
        "backend_rejected": "El servidor de datos rechazó la operación.",
        "backend_unavailable": "El servidor de datos no está disponible. Intente nuevamente.",
        "business_name_invalid": "La razón social debe tener al menos 2 caracteres.",
        "code_invalid": "El código debe tener al menos 2 caracteres.",
        "code_taken": "Ya existe un producto con ese código.",
        "date_invalid": "Fecha inválida.",
        "decimal_places_invalid": "El valor admite como máximo 2 decimales.",
        "email_invalid": "Email inválido.",
        "items_required": "Debe tener al menos un item.",
        "message_invalid": "El mensaje debe tener al menos 5 caracteres.",
        "name_invalid": "El nombre debe tener al menos 2 caracteres.",
        "no_changes": "No hay cambios para guardar.",
        "not_found": "Registro no encontrado.",
        "notification_not_found": "Notificación no encontrada.",
        "option_invalid": "Opción inválida.",
        "order_already_final": "La orden ya está en su estado final.",
        "order_fully_paid": "La orden ya no tiene saldo pendiente.",
        "order_number_taken": "Ya existe una orden con ese número.",
        "payment_amount_exceeds_remaining": "El monto no puede exceder el saldo pendiente de {remaining}",
        "payment_amount_not_positive": "El monto debe ser mayor a 0",
        "payment_not_found": "Pago no encontrado.",
        "product_not_found": "Producto no encontrado.",
        "product_type_not_found": "Tipo de producto no encontrado.",
        "provider_not_found": "Proveedor no encontrado.",
        "provider_required": "Debe seleccionar un proveedor.",
        "purchase_order_not_found": "Orden de compra no encontrada.",
        "purchase_order_required": "Debe seleccionar una orden de compra.",
        "quantity_invalid": "La cantidad debe ser mayor a 0.",
        "ruc_invalid": "El RUC debe tener al menos 10 caracteres.",
        "stock_invalid": "El stock mínimo no puede ser negativo.",
        "title_invalid": "El título debe tener al menos 2 caracteres.",
        "unexpected_error": "No fue posible completar la operación. Intente nuevamente en unos instantes.",
        "unit_cost_invalid": "El costo unitario no puede ser negativo.",
        "unit_required": "Debe seleccionar una unidad.",
        "validation_error": "Hay campos con datos inválidos.",
        "warehouse_not_found": "Almacén no encontrado.",
        "location_invalid": "La ubicación debe tener al menos 5 caracteres.",
    },
    "success": {
        "order_dispatched_email": "Email enviado exitosamente a {recipient}",
        "order_dispatched_whatsapp": "WhatsApp enviado exitosamente",
        "order_status_updated": "Estado actualizado a: {label}",
        "payment_recorded": "Pago registrado correctamente.",
    },
}


def status_keys_for_group(group: str) -> List[str]:
    return [item["key"] for item in STATUS_GROUPS.get(group, [])]


def status_label(group: str, key: str | None) -> str:
    for item in STATUS_GROUPS.get(group, []):
        if item["key"] == key:
            return item["label"]
    return str(key or "")


def option_keys(group: str) -> List[str]:
    return list(OPTION_GROUPS.get(group, {}))


def option_label(group: str, key: str | None) -> str:
    return OPTION_GROUPS.get(group, {}).get(str(key or ""), str(key or ""))


def get_message(category: str, key: str, default: str | None = None, **params: object) -> str:
    message = MESSAGES.get(category, {}).get(key)
    if not message:
        return default if default is not None else key
    if params:
        try:
            return message.format(**params)
        except (KeyError, IndexError):
            return message
    return message


def error_message(key: str, default: str | None = None, **params: object) -> str:
    return get_message("error", key, default, **params)


def success_message(key: str, default: str | None = None, **params: object) -> str:
    return get_message("success", key, default, **params)


def frontend_bundle() -> Dict[str, object]:
    return {
        "terms": FRIENDLY_TERMS,
        "status_groups": STATUS_GROUPS,
        "options": OPTION_GROUPS,
        "messages": MESSAGES,
    }
