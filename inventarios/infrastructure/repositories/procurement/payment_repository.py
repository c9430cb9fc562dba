from __future__ import annotations

from inventarios.infrastructure.repositories.base import BaseRepository
from inventarios.row_store import Filter, RowStore


class PaymentRepository(BaseRepository):
    table = "payments"
    default_order = ("-payment_date", "-id")

    def list_for_order(self, store: RowStore, purchase_order_id: int) -> list[dict]:
        return self.list_all(store, filters=[Filter("purchase_order_id", "eq", purchase_order_id)])

    def list_for_orders(self, store: RowStore, purchase_order_ids) -> list[dict]:
        ids = sorted({int(value) for value in purchase_order_ids if value is not None})
        if not ids:
            return []
        return self.list_all(store, filters=[Filter("purchase_order_id", "in", ids)])

    def delete_for_order(self, store: RowStore, purchase_order_id: int) -> int:
        return store.delete(self.table, filters=[Filter("purchase_order_id", "eq", purchase_order_id)])
