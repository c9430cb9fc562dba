from __future__ import annotations

from inventarios.infrastructure.repositories.base import BaseRepository
from inventarios.row_store import Filter, RowStore


class ProductRepository(BaseRepository):
    table = "products"
    default_order = ("name", "id")
    search_columns = ("name", "code", "description")

    def list_by_type(self, store: RowStore, product_type_id: int) -> list[dict]:
        return self.list_by(store, "product_type_id", product_type_id)

    def list_by_status(self, store: RowStore, status: str) -> list[dict]:
        return self.list_by(store, "status", status)

    def get_many(self, store: RowStore, product_ids) -> list[dict]:
        ids = sorted({int(value) for value in product_ids if value is not None})
        if not ids:
            return []
        return self.list_all(store, filters=[Filter("id", "in", ids)])

    def code_exists(self, store: RowStore, code: str, *, exclude_id: int | None = None) -> bool:
        filters = [Filter("code", "eq", str(code or "").strip())]
        if exclude_id is not None:
            filters.append(Filter("id", "neq", exclude_id))
        rows = store.select(self.table, filters=filters, columns=("id",), limit=1)
        return bool(rows)
