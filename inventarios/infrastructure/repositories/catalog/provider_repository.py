from __future__ import annotations

from inventarios.infrastructure.repositories.base import BaseRepository
from inventarios.row_store import Filter, RowStore


class ProviderRepository(BaseRepository):
    table = "providers"
    default_order = ("business_name", "id")
    search_columns = ("business_name", "ruc", "contact_person")

    def list_by_type(self, store: RowStore, provider_type: str) -> list[dict]:
        return self.list_by(store, "type", provider_type)

    def list_by_status(self, store: RowStore, status: str) -> list[dict]:
        return self.list_by(store, "status", status)

    def get_many(self, store: RowStore, provider_ids) -> list[dict]:
        ids = sorted({int(value) for value in provider_ids if value is not None})
        if not ids:
            return []
        return self.list_all(store, filters=[Filter("id", "in", ids)])
