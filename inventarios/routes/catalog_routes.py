from __future__ import annotations

from flask import Blueprint, jsonify, request

from inventarios.application.catalog_service import CatalogService
from inventarios.domain.forms import (
    product_changes,
    product_input,
    product_type_changes,
    product_type_input,
    provider_changes,
    provider_input,
    warehouse_changes,
    warehouse_input,
)
from inventarios.errors import ValidationError
from inventarios.routes.common import collection_state, json_body, parse_optional_int
from inventarios.row_store import get_row_store


catalog_bp = Blueprint("catalog", __name__)

_CATALOG_SERVICE = CatalogService()


@catalog_bp.route("/api/product-types", methods=["GET", "POST"])
def product_types_api():
    store = get_row_store()
    if request.method == "POST":
        row = _CATALOG_SERVICE.create_product_type(store, product_type_input(json_body()))
        return jsonify(row), 201
    return jsonify({"items": _CATALOG_SERVICE.list_product_types(store)})


@catalog_bp.route("/api/product-types/<int:product_type_id>", methods=["PATCH", "DELETE"])
def product_type_crud_api(product_type_id: int):
    store = get_row_store()
    if request.method == "DELETE":
        _CATALOG_SERVICE.delete_product_type(store, product_type_id)
        return jsonify({"deleted": True, "id": product_type_id})
    row = _CATALOG_SERVICE.update_product_type(store, product_type_id, product_type_changes(json_body()))
    return jsonify(row)


@catalog_bp.route("/api/providers", methods=["GET", "POST"])
def providers_api():
    store = get_row_store()
    state = collection_state("providers")
    if request.method == "POST":
        row = _CATALOG_SERVICE.create_provider(store, state, provider_input(json_body()))
        return jsonify(row), 201

    items = _CATALOG_SERVICE.list_providers(
        store,
        state,
        query=request.args.get("q"),
        provider_type=(request.args.get("type") or "").strip() or None,
    )
    return jsonify({"items": items, "state": state.snapshot()})


@catalog_bp.route("/api/providers/<int:provider_id>", methods=["GET", "PATCH", "DELETE"])
def provider_crud_api(provider_id: int):
    store = get_row_store()
    state = collection_state("providers")
    if request.method == "GET":
        return jsonify(_CATALOG_SERVICE.get_provider(store, provider_id))
    if request.method == "DELETE":
        _CATALOG_SERVICE.delete_provider(store, state, provider_id)
        return jsonify({"deleted": True, "id": provider_id})
    row = _CATALOG_SERVICE.update_provider(store, state, provider_id, provider_changes(json_body()))
    return jsonify(row)


@catalog_bp.route("/api/products", methods=["GET", "POST"])
def products_api():
    store = get_row_store()
    state = collection_state("products")
    if request.method == "POST":
        row = _CATALOG_SERVICE.create_product(store, state, product_input(json_body()))
        return jsonify(row), 201

    items = _CATALOG_SERVICE.list_products(
        store,
        state,
        query=request.args.get("q"),
        product_type_id=parse_optional_int(request.args.get("product_type_id"), "product_type_id"),
        status=(request.args.get("status") or "").strip() or None,
    )
    return jsonify({"items": items, "state": state.snapshot()})


@catalog_bp.route("/api/products/code-exists", methods=["GET"])
def product_code_exists_api():
    code = (request.args.get("code") or "").strip()
    if not code:
        raise ValidationError(code="code_invalid", message_key="code_invalid")
    exclude_id = parse_optional_int(request.args.get("exclude_id"), "exclude_id")
    exists = _CATALOG_SERVICE.code_exists(get_row_store(), code, exclude_id=exclude_id)
    return jsonify({"code": code, "exists": exists})


@catalog_bp.route("/api/products/<int:product_id>", methods=["GET", "PATCH", "DELETE"])
def product_crud_api(product_id: int):
    store = get_row_store()
    state = collection_state("products")
    if request.method == "GET":
        return jsonify(_CATALOG_SERVICE.get_product(store, product_id))
    if request.method == "DELETE":
        _CATALOG_SERVICE.delete_product(store, state, product_id)
        return jsonify({"deleted": True, "id": product_id})
    row = _CATALOG_SERVICE.update_product(store, state, product_id, product_changes(json_body()))
    return jsonify(row)


@catalog_bp.route("/api/warehouses", methods=["GET", "POST"])
def warehouses_api():
    store = get_row_store()
    if request.method == "POST":
        row = _CATALOG_SERVICE.create_warehouse(store, warehouse_input(json_body()))
        return jsonify(row), 201
    return jsonify({"items": _CATALOG_SERVICE.list_warehouses(store)})


@catalog_bp.route("/api/warehouses/<int:warehouse_id>", methods=["PATCH", "DELETE"])
def warehouse_crud_api(warehouse_id: int):
    store = get_row_store()
    if request.method == "DELETE":
        _CATALOG_SERVICE.delete_warehouse(store, warehouse_id)
        return jsonify({"deleted": True, "id": warehouse_id})
    row = _CATALOG_SERVICE.update_warehouse(store, warehouse_id, warehouse_changes(json_body()))
    return jsonify(row)
