from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, List

from inventarios.application.collection_state import CollectionState
from inventarios.domain.contracts import ProductInput, ProductTypeInput, ProviderInput, WarehouseInput
from inventarios.errors import ConflictError, NotFoundError, ValidationError
from inventarios.infrastructure.repositories.catalog import (
    ProductRepository,
    ProductTypeRepository,
    ProviderRepository,
    WarehouseRepository,
)
from inventarios.row_store import RowStore
from inventarios.ui_strings import option_keys, status_keys_for_group


logger = logging.getLogger(__name__)


def require_row(row: dict | None, message_key: str, record_id: Any) -> dict:
    if not row:
        raise NotFoundError(code=message_key, message_key=message_key, payload={"id": record_id})
    return row


class CatalogService:
    def __init__(
        self,
        product_types: ProductTypeRepository | None = None,
        providers: ProviderRepository | None = None,
        products: ProductRepository | None = None,
        warehouses: WarehouseRepository | None = None,
    ) -> None:
        self.product_types = product_types or ProductTypeRepository()
        self.providers = providers or ProviderRepository()
        self.products = products or ProductRepository()
        self.warehouses = warehouses or WarehouseRepository()

    # Product types

    def list_product_types(self, store: RowStore) -> List[dict]:
        return self.product_types.list_all(store)

    def create_product_type(self, store: RowStore, create_input: ProductTypeInput) -> dict:
        return self.product_types.create(store, asdict(create_input))

    def update_product_type(self, store: RowStore, product_type_id: int, changes: Dict[str, Any]) -> dict:
        require_row(self.product_types.get_by_id(store, product_type_id), "product_type_not_found", product_type_id)
        return self.product_types.update(store, product_type_id, changes)

    def delete_product_type(self, store: RowStore, product_type_id: int) -> None:
        require_row(self.product_types.get_by_id(store, product_type_id), "product_type_not_found", product_type_id)
        self.product_types.delete(store, product_type_id)

    # Providers

    def list_providers(
        self,
        store: RowStore,
        state: CollectionState,
        *,
        query: str | None = None,
        provider_type: str | None = None,
    ) -> List[dict]:
        term = str(query or "").strip()
        if term:
            return state.query("search", lambda: self.providers.search(store, term))
        if provider_type:
            if provider_type not in option_keys("provider_type"):
                raise ValidationError(code="option_invalid", message_key="option_invalid", payload={"type": provider_type})
            return state.query("by_type", lambda: self.providers.list_by_type(store, provider_type))
        return state.load(lambda: self.providers.list_all(store))

    def get_provider(self, store: RowStore, provider_id: int) -> dict:
        return require_row(self.providers.get_by_id(store, provider_id), "provider_not_found", provider_id)

    def create_provider(self, store: RowStore, state: CollectionState, create_input: ProviderInput) -> dict:
        row = state.create(lambda: self.providers.create(store, asdict(create_input)))
        logger.info("provider_created", extra={"provider_id": row.get("id")})
        return row

    def update_provider(self, store: RowStore, state: CollectionState, provider_id: int, changes: Dict[str, Any]) -> dict:
        self.get_provider(store, provider_id)
        return state.update(provider_id, lambda: self.providers.update(store, provider_id, changes))

    def delete_provider(self, store: RowStore, state: CollectionState, provider_id: int) -> None:
        self.get_provider(store, provider_id)
        state.delete(provider_id, lambda: self.providers.delete(store, provider_id))
        logger.info("provider_deleted", extra={"provider_id": provider_id})

    # Products

    def list_products(
        self,
        store: RowStore,
        state: CollectionState,
        *,
        query: str | None = None,
        product_type_id: int | None = None,
        status: str | None = None,
    ) -> List[dict]:
        term = str(query or "").strip()
        if term:
            return state.query("search", lambda: self.products.search(store, term))
        if product_type_id is not None:
            return state.query("by_type", lambda: self.products.list_by_type(store, product_type_id))
        if status:
            if status not in status_keys_for_group("registro"):
                raise ValidationError(code="option_invalid", message_key="option_invalid", payload={"status": status})
            return state.query("by_status", lambda: self.products.list_by_status(store, status))
        return state.load(lambda: self.products.list_all(store))

    def get_product(self, store: RowStore, product_id: int) -> dict:
        return require_row(self.products.get_by_id(store, product_id), "product_not_found", product_id)

    def code_exists(self, store: RowStore, code: str, exclude_id: int | None = None) -> bool:
        return self.products.code_exists(store, code, exclude_id=exclude_id)

    def _ensure_code_free(self, store: RowStore, code: str, exclude_id: int | None = None) -> None:
        if self.code_exists(store, code, exclude_id=exclude_id):
            raise ConflictError(code="code_taken", message_key="code_taken", payload={"code": code})

    def create_product(self, store: RowStore, state: CollectionState, create_input: ProductInput) -> dict:
        self._ensure_code_free(store, create_input.code)
        row = state.create(lambda: self.products.create(store, asdict(create_input)))
        logger.info("product_created", extra={"product_id": row.get("id"), "code": row.get("code")})
        return row

    def update_product(self, store: RowStore, state: CollectionState, product_id: int, changes: Dict[str, Any]) -> dict:
        self.get_product(store, product_id)
        if changes.get("code"):
            self._ensure_code_free(store, changes["code"], exclude_id=product_id)
        return state.update(product_id, lambda: self.products.update(store, product_id, changes))

    def delete_product(self, store: RowStore, state: CollectionState, product_id: int) -> None:
        self.get_product(store, product_id)
        state.delete(product_id, lambda: self.products.delete(store, product_id))

    # Warehouses

    def list_warehouses(self, store: RowStore) -> List[dict]:
        return self.warehouses.list_all(store)

    def create_warehouse(self, store: RowStore, create_input: WarehouseInput) -> dict:
        return self.warehouses.create(store, asdict(create_input))

    def update_warehouse(self, store: RowStore, warehouse_id: int, changes: Dict[str, Any]) -> dict:
        require_row(self.warehouses.get_by_id(store, warehouse_id), "warehouse_not_found", warehouse_id)
        return self.warehouses.update(store, warehouse_id, changes)

    def delete_warehouse(self, store: RowStore, warehouse_id: int) -> None:
        require_row(self.warehouses.get_by_id(store, warehouse_id), "warehouse_not_found", warehouse_id)
        self.warehouses.delete(store, warehouse_id)
