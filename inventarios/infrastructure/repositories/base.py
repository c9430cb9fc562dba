from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence

from inventarios.row_store import Filter, RowStore


class BaseRepository:
    table: str = ""
    default_order: Sequence[str] = ("id",)
    search_columns: Sequence[str] = ()

    def get_by_id(self, store: RowStore, record_id: Any) -> dict | None:
        return store.select_one(self.table, filters=[Filter("id", "eq", record_id)])

    def list_all(
        self,
        store: RowStore,
        *,
        filters: Iterable[Filter] = (),
        order_by: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        return store.select(
            self.table,
            filters=filters,
            order_by=order_by or self.default_order,
            limit=limit,
        )

    def list_by(self, store: RowStore, column: str, value: Any) -> list[dict]:
        return self.list_all(store, filters=[Filter(column, "eq", value)])

    def search(self, store: RowStore, term: str, *, filters: Iterable[Filter] = ()) -> list[dict]:
        pattern = f"%{str(term or '').strip()}%"
        return store.select(
            self.table,
            filters=filters,
            any_of=[Filter(column, "ilike", pattern) for column in self.search_columns],
            order_by=self.default_order,
        )

    def create(self, store: RowStore, values: Dict[str, Any]) -> dict:
        return store.insert(self.table, values)

    def update(self, store: RowStore, record_id: Any, values: Dict[str, Any]) -> dict | None:
        rows = store.update(self.table, values, filters=[Filter("id", "eq", record_id)])
        return rows[0] if rows else None

    def delete(self, store: RowStore, record_id: Any) -> bool:
        return store.delete(self.table, filters=[Filter("id", "eq", record_id)]) > 0
