"""Request body validation.

Each ``*_input`` function turns a JSON body into a frozen contract for
creation; each ``*_changes`` function validates a partial body for PATCH and
returns only the columns that were sent. Field problems are collected and
raised together as a single :class:`ValidationError` whose payload carries
``fields: {name: message}``.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from inventarios.domain.contracts import (
    NotificationCreateInput,
    OrderLineInput,
    PaymentCreateInput,
    ProductInput,
    ProductTypeInput,
    ProviderInput,
    PurchaseOrderCreateInput,
    WarehouseInput,
)
from inventarios.errors import ValidationError
from inventarios.procurement.reconciliation import parse_date
from inventarios.ui_strings import error_message, option_keys, status_keys_for_group


_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_MISSING = object()
# Money and quantity columns are NUMERIC(16, 2) on PostgreSQL.
_MONEY_PLACES = 2


class _Fields:
    def __init__(self, payload: Any, *, partial: bool = False) -> None:
        self.payload = payload if isinstance(payload, dict) else {}
        self.partial = partial
        self.values: Dict[str, Any] = {}
        self.errors: Dict[str, str] = {}

    def _raw(self, name: str) -> Any:
        return self.payload.get(name, _MISSING)

    def _fail(self, name: str, key: str) -> None:
        self.errors.setdefault(name, error_message(key))

    def _skip(self, name: str, raw: Any) -> bool:
        return raw is _MISSING and self.partial

    def text(self, name: str, *, min_length: int = 0, error_key: str = "validation_error", required: bool = False) -> None:
        raw = self._raw(name)
        if self._skip(name, raw):
            return
        value = "" if raw is _MISSING or raw is None else str(raw).strip()
        if not value:
            if required:
                self._fail(name, error_key)
                return
            self.values[name] = None
            return
        if len(value) < min_length:
            self._fail(name, error_key)
            return
        self.values[name] = value

    def email(self, name: str) -> None:
        raw = self._raw(name)
        if self._skip(name, raw):
            return
        value = "" if raw is _MISSING or raw is None else str(raw).strip()
        if value and not _EMAIL_PATTERN.match(value):
            self._fail(name, "email_invalid")
            return
        self.values[name] = value or None

    def choice(self, name: str, allowed: List[str], *, default: str | None = None, required: bool = True) -> None:
        raw = self._raw(name)
        if self._skip(name, raw):
            return
        value = "" if raw is _MISSING or raw is None else str(raw).strip()
        if not value:
            if default is not None or not required:
                self.values[name] = default
                return
            self._fail(name, "option_invalid")
            return
        if value not in allowed:
            self._fail(name, "option_invalid")
            return
        self.values[name] = value

    def decimal(
        self,
        name: str,
        *,
        error_key: str = "validation_error",
        minimum: Decimal | None = None,
        exclusive: bool = False,
        default: Decimal | None = None,
        required: bool = False,
        places: int = _MONEY_PLACES,
    ) -> None:
        raw = self._raw(name)
        if self._skip(name, raw):
            return
        if raw is _MISSING or raw is None or str(raw).strip() == "":
            if required:
                self._fail(name, error_key)
                return
            self.values[name] = default
            return
        try:
            value = Decimal(str(raw).strip())
        except InvalidOperation:
            self._fail(name, error_key)
            return
        if not value.is_finite():
            self._fail(name, error_key)
            return
        if value.as_tuple().exponent < -places:
            try:
                exact = value == value.quantize(Decimal(1).scaleb(-places))
            except InvalidOperation:
                exact = False
            if not exact:
                self._fail(name, "decimal_places_invalid")
                return
        if minimum is not None and (value <= minimum if exclusive else value < minimum):
            self._fail(name, error_key)
            return
        self.values[name] = value

    def integer(self, name: str, *, error_key: str = "validation_error", default: int | None = None, required: bool = False) -> None:
        raw = self._raw(name)
        if self._skip(name, raw):
            return
        if raw is _MISSING or raw is None or str(raw).strip() == "":
            if required:
                self._fail(name, error_key)
                return
            self.values[name] = default
            return
        try:
            self.values[name] = int(str(raw).strip())
        except ValueError:
            self._fail(name, error_key)

    def boolean(self, name: str, *, default: bool = False) -> None:
        raw = self._raw(name)
        if self._skip(name, raw):
            return
        if raw is _MISSING or raw is None:
            self.values[name] = default
            return
        if isinstance(raw, str):
            self.values[name] = raw.strip().lower() in {"1", "true", "yes", "on", "si", "sí"}
            return
        self.values[name] = bool(raw)

    def date(self, name: str, *, required: bool = False) -> None:
        raw = self._raw(name)
        if self._skip(name, raw):
            return
        if raw is _MISSING or raw is None or str(raw).strip() == "":
            if required:
                self._fail(name, "date_invalid")
                return
            self.values[name] = None
            return
        parsed = parse_date(raw)
        if parsed is None:
            self._fail(name, "date_invalid")
            return
        self.values[name] = parsed.isoformat()

    def string_list(self, name: str) -> None:
        raw = self._raw(name)
        if self._skip(name, raw):
            return
        if raw is _MISSING or raw is None:
            self.values[name] = []
            return
        if not isinstance(raw, list):
            self._fail(name, "validation_error")
            return
        self.values[name] = [str(item).strip() for item in raw if str(item or "").strip()]

    def id_list(self, name: str) -> None:
        raw = self._raw(name)
        if self._skip(name, raw):
            return
        if raw is _MISSING or raw is None:
            self.values[name] = []
            return
        if not isinstance(raw, list):
            self._fail(name, "validation_error")
            return
        try:
            self.values[name] = [int(item) for item in raw]
        except (TypeError, ValueError):
            self._fail(name, "validation_error")

    def finish(self) -> Dict[str, Any]:
        if self.errors:
            raise ValidationError(payload={"fields": dict(self.errors)})
        return dict(self.values)


def _require_changes(values: Dict[str, Any]) -> Dict[str, Any]:
    if not values:
        raise ValidationError(code="no_changes", message_key="no_changes")
    return values


def _product_type_fields(payload: Any, partial: bool) -> Dict[str, Any]:
    fields = _Fields(payload, partial=partial)
    fields.text("name", min_length=2, error_key="name_invalid", required=True)
    fields.text("description")
    return fields.finish()


def product_type_input(payload: Any) -> ProductTypeInput:
    return ProductTypeInput(**_product_type_fields(payload, partial=False))


def product_type_changes(payload: Any) -> Dict[str, Any]:
    return _require_changes(_product_type_fields(payload, partial=True))


def _provider_fields(payload: Any, partial: bool) -> Dict[str, Any]:
    fields = _Fields(payload, partial=partial)
    fields.text("business_name", min_length=2, error_key="business_name_invalid", required=True)
    fields.choice("type", option_keys("provider_type"), default=None if partial else "recurrent")
    fields.text("ruc", min_length=10, error_key="ruc_invalid")
    fields.text("contact_person", min_length=2, error_key="name_invalid")
    fields.text("phone")
    fields.string_list("phones")
    fields.email("email")
    fields.text("address", min_length=5, error_key="location_invalid")
    fields.integer("payment_terms", default=30)
    fields.id_list("product_type_ids")
    fields.text("contract_number")
    fields.date("contract_start_date")
    fields.choice("delivery_frequency", option_keys("delivery_frequency"), required=False)
    fields.text("contract_file_url")
    fields.choice("status", status_keys_for_group("registro"), default=None if partial else "active")
    values = fields.finish()
    if not partial and not values.get("phone") and values.get("phones"):
        values["phone"] = values["phones"][0]
    return values


def provider_input(payload: Any) -> ProviderInput:
    return ProviderInput(**_provider_fields(payload, partial=False))


def provider_changes(payload: Any) -> Dict[str, Any]:
    return _require_changes(_provider_fields(payload, partial=True))


def _product_fields(payload: Any, partial: bool) -> Dict[str, Any]:
    fields = _Fields(payload, partial=partial)
    fields.text("code", min_length=2, error_key="code_invalid", required=True)
    fields.text("name", min_length=2, error_key="name_invalid", required=True)
    fields.text("unit", min_length=1, error_key="unit_required", required=True)
    fields.integer("product_type_id")
    fields.choice("storage_type", option_keys("storage_type"), default=None if partial else "bulk")
    fields.boolean("requires_expiry_control")
    fields.decimal("min_stock", error_key="stock_invalid", minimum=Decimal("0"), default=Decimal("0"))
    fields.text("description")
    fields.choice("status", status_keys_for_group("registro"), default=None if partial else "active")
    return fields.finish()


def product_input(payload: Any) -> ProductInput:
    return ProductInput(**_product_fields(payload, partial=False))


def product_changes(payload: Any) -> Dict[str, Any]:
    return _require_changes(_product_fields(payload, partial=True))


def _warehouse_fields(payload: Any, partial: bool) -> Dict[str, Any]:
    fields = _Fields(payload, partial=partial)
    fields.text("name", min_length=2, error_key="name_invalid", required=True)
    fields.text("location", min_length=5, error_key="location_invalid")
    fields.decimal("capacity", minimum=Decimal("0"))
    fields.choice("status", status_keys_for_group("registro"), default=None if partial else "active")
    return fields.finish()


def warehouse_input(payload: Any) -> WarehouseInput:
    return WarehouseInput(**_warehouse_fields(payload, partial=False))


def warehouse_changes(payload: Any) -> Dict[str, Any]:
    return _require_changes(_warehouse_fields(payload, partial=True))


def _order_lines(raw_items: Any) -> List[OrderLineInput]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError(
            code="items_required",
            message_key="items_required",
            payload={"fields": {"items": error_message("items_required")}},
        )
    lines: List[OrderLineInput] = []
    errors: Dict[str, str] = {}
    for index, raw in enumerate(raw_items):
        fields = _Fields(raw)
        fields.integer("product_id", error_key="validation_error", required=True)
        fields.decimal("quantity", error_key="quantity_invalid", minimum=Decimal("0"), exclusive=True, required=True)
        fields.decimal("unit_price", error_key="unit_cost_invalid", minimum=Decimal("0"), required=True)
        for name, message in fields.errors.items():
            errors[f"items[{index}].{name}"] = message
        if not fields.errors:
            lines.append(OrderLineInput(**fields.values))
    if errors:
        raise ValidationError(payload={"fields": errors})
    return lines


def purchase_order_input(payload: Any, *, today: str) -> PurchaseOrderCreateInput:
    body = payload if isinstance(payload, dict) else {}
    fields = _Fields(body)
    fields.integer("provider_id", error_key="provider_required", required=True)
    fields.date("order_date")
    fields.date("delivery_date")
    fields.date("payment_due_date")
    fields.text("notes")
    fields.text("order_number")
    values = fields.finish()
    values["order_date"] = values.get("order_date") or today
    return PurchaseOrderCreateInput(items=_order_lines(body.get("items")), **values)


def purchase_order_changes(payload: Any) -> Dict[str, Any]:
    fields = _Fields(payload, partial=True)
    fields.date("delivery_date")
    fields.date("payment_due_date")
    fields.text("notes")
    return _require_changes(fields.finish())


def payment_input(payload: Any, *, purchase_order_id: int | None = None, today: str) -> PaymentCreateInput:
    body = dict(payload) if isinstance(payload, dict) else {}
    if purchase_order_id is not None:
        body["purchase_order_id"] = purchase_order_id
    fields = _Fields(body)
    fields.integer("purchase_order_id", error_key="purchase_order_required", required=True)
    fields.decimal("amount", error_key="payment_amount_not_positive", required=True)
    fields.date("payment_date")
    fields.choice("payment_type", option_keys("payment_type"), default="transfer")
    fields.text("reference")
    fields.text("description")
    fields.text("receipt_file")
    values = fields.finish()
    values["payment_date"] = values.get("payment_date") or today
    return PaymentCreateInput(**values)


def notification_input(payload: Any) -> NotificationCreateInput:
    body = payload if isinstance(payload, dict) else {}
    fields = _Fields(body)
    fields.choice("type", option_keys("notification_type"), default="manual")
    fields.text("title", min_length=2, error_key="title_invalid", required=True)
    fields.text("message", min_length=5, error_key="message_invalid", required=True)
    fields.choice("priority", option_keys("priority"), default="medium")
    fields.choice("related_entity_type", option_keys("related_entity"), required=False)
    fields.text("related_entity_id")
    values = fields.finish()
    if values.get("related_entity_type") and not values.get("related_entity_id"):
        raise ValidationError(payload={"fields": {"related_entity_id": error_message("validation_error")}})
    return NotificationCreateInput(**values)
