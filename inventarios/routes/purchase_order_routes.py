from __future__ import annotations

from datetime import datetime

from flask import Blueprint, Response, current_app, jsonify, request

from inventarios.application.payment_service import PaymentService
from inventarios.application.purchase_order_service import PurchaseOrderService
from inventarios.domain.forms import payment_input, purchase_order_changes, purchase_order_input
from inventarios.routes.common import due_soon_days, json_body, parse_optional_int, today
from inventarios.row_store import get_row_store


purchase_orders_bp = Blueprint("purchase_orders", __name__)

_ORDER_SERVICE = PurchaseOrderService()
_PAYMENT_SERVICE = PaymentService()


@purchase_orders_bp.route("/api/purchase-orders", methods=["GET", "POST"])
def purchase_orders_api():
    store = get_row_store()
    if request.method == "POST":
        create_input = purchase_order_input(json_body(), today=today().isoformat())
        created = _ORDER_SERVICE.create_order(
            store,
            create_input,
            iva_rate=current_app.config.get("IVA_RATE", 0.15),
            now=datetime.now(),
        )
        return jsonify(created), 201

    items = _ORDER_SERVICE.list_orders(
        store,
        status=(request.args.get("status") or "").strip() or None,
        payment_status=(request.args.get("payment_status") or "").strip() or None,
        provider_id=parse_optional_int(request.args.get("provider_id"), "provider_id"),
        today=today(),
        due_soon_days=due_soon_days(),
    )
    return jsonify({"items": items})


@purchase_orders_bp.route("/api/purchase-orders/<int:purchase_order_id>", methods=["GET", "PATCH", "DELETE"])
def purchase_order_crud_api(purchase_order_id: int):
    store = get_row_store()
    if request.method == "GET":
        detail = _ORDER_SERVICE.order_detail(
            store,
            purchase_order_id,
            today=today(),
            due_soon_days=due_soon_days(),
        )
        return jsonify(detail)
    if request.method == "DELETE":
        _ORDER_SERVICE.delete_order(store, purchase_order_id)
        return jsonify({"deleted": True, "id": purchase_order_id})
    updated = _ORDER_SERVICE.update_order(store, purchase_order_id, purchase_order_changes(json_body()))
    return jsonify(updated)


@purchase_orders_bp.route("/api/purchase-orders/<int:purchase_order_id>/advance", methods=["POST"])
def purchase_order_advance_api(purchase_order_id: int):
    return jsonify(_ORDER_SERVICE.advance_order(get_row_store(), purchase_order_id))


@purchase_orders_bp.route("/api/purchase-orders/<int:purchase_order_id>/dispatch", methods=["POST"])
def purchase_order_dispatch_api(purchase_order_id: int):
    channel = str(json_body().get("channel") or request.args.get("channel") or "email").strip().lower()
    return jsonify(_ORDER_SERVICE.dispatch_order(get_row_store(), purchase_order_id, channel))


@purchase_orders_bp.route("/api/purchase-orders/<int:purchase_order_id>/document", methods=["GET"])
def purchase_order_document_api(purchase_order_id: int):
    document = _ORDER_SERVICE.render_document(get_row_store(), purchase_order_id)
    return Response(
        document["content"],
        mimetype="text/plain",
        headers={"Content-Disposition": f'attachment; filename="{document["filename"]}"'},
    )


@purchase_orders_bp.route("/api/purchase-orders/<int:purchase_order_id>/payments", methods=["GET", "POST"])
def purchase_order_payments_api(purchase_order_id: int):
    store = get_row_store()
    if request.method == "POST":
        create_input = payment_input(
            json_body(),
            purchase_order_id=purchase_order_id,
            today=today().isoformat(),
        )
        result = _PAYMENT_SERVICE.record_payment(
            store,
            create_input,
            today=today(),
            now=datetime.now(),
            due_soon_days=due_soon_days(),
        )
        return jsonify(result), 201
    return jsonify(
        _PAYMENT_SERVICE.order_payments(
            store,
            purchase_order_id,
            today=today(),
            due_soon_days=due_soon_days(),
        )
    )
