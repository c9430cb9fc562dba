from __future__ import annotations

from datetime import datetime

from flask import Blueprint, jsonify, request

from inventarios.application.payment_service import PaymentService
from inventarios.domain.forms import payment_input
from inventarios.routes.common import due_soon_days, json_body, parse_optional_int, today
from inventarios.row_store import get_row_store


payments_bp = Blueprint("payments", __name__)

_PAYMENT_SERVICE = PaymentService()


@payments_bp.route("/api/payments", methods=["GET", "POST"])
def payments_api():
    store = get_row_store()
    if request.method == "POST":
        create_input = payment_input(json_body(), today=today().isoformat())
        result = _PAYMENT_SERVICE.record_payment(
            store,
            create_input,
            today=today(),
            now=datetime.now(),
            due_soon_days=due_soon_days(),
        )
        return jsonify(result), 201

    purchase_order_id = parse_optional_int(request.args.get("purchase_order_id"), "purchase_order_id")
    return jsonify({"items": _PAYMENT_SERVICE.list_payments(store, purchase_order_id=purchase_order_id)})


@payments_bp.route("/api/payments/<int:payment_id>", methods=["DELETE"])
def payment_delete_api(payment_id: int):
    return jsonify(_PAYMENT_SERVICE.delete_payment(get_row_store(), payment_id))
