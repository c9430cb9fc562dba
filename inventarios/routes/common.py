from __future__ import annotations

from datetime import date
from typing import Any

from flask import current_app, request

from inventarios.application.collection_state import CollectionState, collection_states
from inventarios.errors import ValidationError
from inventarios.procurement.reconciliation import DEFAULT_DUE_SOON_DAYS


def json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def parse_optional_int(value: Any, name: str) -> int | None:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        raise ValidationError(payload={"fields": {name: text}}) from None


def today() -> date:
    return date.today()


def due_soon_days() -> int:
    return int(current_app.config.get("PAYMENT_DUE_SOON_DAYS", DEFAULT_DUE_SOON_DAYS))


def collection_state(name: str) -> CollectionState:
    return collection_states(current_app)[name]
