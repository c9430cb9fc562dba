from __future__ import annotations

from typing import Dict, List


ORDER_STATUS_SEQUENCE: List[str] = ["pre_order", "issued", "received", "paid"]


ACTION_LABELS: Dict[str, str] = {
    "advance_status": "Avanzar estado",
    "edit_order": "Editar orden",
    "delete_order": "Eliminar orden",
    "dispatch_email": "Enviar por email",
    "dispatch_whatsapp": "Enviar por WhatsApp",
    "download_document": "Descargar documento",
    "register_payment": "Registrar pago",
    "view_order": "Ver orden",
    "view_payments": "Ver pagos",
}


FLOW_POLICY: Dict[str, Dict[str, object]] = {
    "pre_order": {
        "allowed_actions": [
            "view_order",
            "edit_order",
            "delete_order",
            "download_document",
            "advance_status",
        ],
        "primary_action": "advance_status",
    },
    "issued": {
        "allowed_actions": [
            "view_order",
            "download_document",
            "dispatch_email",
            "dispatch_whatsapp",
            "register_payment",
            "view_payments",
            "advance_status",
        ],
        "primary_action": "dispatch_email",
    },
    "received": {
        "allowed_actions": [
            "view_order",
            "download_document",
            "register_payment",
            "view_payments",
            "advance_status",
        ],
        "primary_action": "register_payment",
    },
    "paid": {
        "allowed_actions": ["view_order", "download_document", "view_payments"],
        "primary_action": "view_payments",
    },
}


def next_status(current_status: str | None) -> str | None:
    status = str(current_status or "").strip()
    if status not in ORDER_STATUS_SEQUENCE:
        return None
    index = ORDER_STATUS_SEQUENCE.index(status)
    if index + 1 >= len(ORDER_STATUS_SEQUENCE):
        return None
    return ORDER_STATUS_SEQUENCE[index + 1]


def allowed_actions(status: str | None) -> List[str]:
    policy = FLOW_POLICY.get(str(status or "").strip()) or {}
    return list(policy.get("allowed_actions") or [])


def action_allowed(status: str | None, action: str) -> bool:
    return action in allowed_actions(status)


def primary_action(status: str | None) -> str | None:
    policy = FLOW_POLICY.get(str(status or "").strip()) or {}
    action = policy.get("primary_action")
    return str(action) if action else None


def action_label(action: str) -> str:
    return ACTION_LABELS.get(action, action)


def flow_meta(status: str | None) -> Dict[str, object]:
    actions = allowed_actions(status)
    primary = primary_action(status)
    return {
        "status": status,
        "next_status": next_status(status),
        "allowed_actions": actions,
        "primary_action": primary,
        "primary_action_label": action_label(primary) if primary else None,
    }


def build_process_steps(current_status: str | None) -> List[Dict[str, object]]:
    from inventarios.ui_strings import status_label

    current = str(current_status or "").strip()
    current_index = ORDER_STATUS_SEQUENCE.index(current) if current in ORDER_STATUS_SEQUENCE else -1
    steps: List[Dict[str, object]] = []
    for index, status in enumerate(ORDER_STATUS_SEQUENCE):
        if index < current_index:
            state = "done"
        elif index == current_index:
            state = "current"
        else:
            state = "upcoming"
        steps.append({"key": status, "label": status_label("orden_compra", status), "state": state})
    return steps
