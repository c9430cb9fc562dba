from __future__ import annotations

from typing import Any, Dict, Iterable

from inventarios.infrastructure.repositories.base import BaseRepository
from inventarios.row_store import Filter, RowStore


class PurchaseOrderRepository(BaseRepository):
    table = "purchase_orders"
    items_table = "purchase_order_items"
    default_order = ("-order_date", "-id")

    def get_by_number(self, store: RowStore, order_number: str) -> dict | None:
        return store.select_one(self.table, filters=[Filter("order_number", "eq", order_number)])

    def list_unpaid(self, store: RowStore) -> list[dict]:
        return self.list_all(store, filters=[Filter("payment_status", "neq", "paid")])

    def update_status(self, store: RowStore, purchase_order_id: int, status: str) -> dict | None:
        return self.update(store, purchase_order_id, {"status": status})

    def mark_payment_status(self, store: RowStore, purchase_order_id: int, payment_status: str) -> dict | None:
        return self.update(store, purchase_order_id, {"payment_status": payment_status})

    def list_items(self, store: RowStore, purchase_order_id: int) -> list[dict]:
        return store.select(
            self.items_table,
            filters=[Filter("purchase_order_id", "eq", purchase_order_id)],
            order_by=("id",),
        )

    def add_items(self, store: RowStore, purchase_order_id: int, items: Iterable[Dict[str, Any]]) -> list[dict]:
        created = []
        for item in items:
            values = dict(item)
            values["purchase_order_id"] = purchase_order_id
            created.append(store.insert(self.items_table, values))
        return created

    def delete_items(self, store: RowStore, purchase_order_id: int) -> int:
        return store.delete(self.items_table, filters=[Filter("purchase_order_id", "eq", purchase_order_id)])
