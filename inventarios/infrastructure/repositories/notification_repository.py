from __future__ import annotations

from typing import Iterable

from inventarios.infrastructure.repositories.base import BaseRepository
from inventarios.row_store import Filter, RowStore


class NotificationRepository(BaseRepository):
    table = "notifications"
    default_order = ("-created_at", "-id")

    def list_filtered(
        self,
        store: RowStore,
        *,
        status: str | None = None,
        type: str | None = None,
        priority: str | None = None,
    ) -> list[dict]:
        filters = []
        if status:
            filters.append(Filter("status", "eq", status))
        if type:
            filters.append(Filter("type", "eq", type))
        if priority:
            filters.append(Filter("priority", "eq", priority))
        return self.list_all(store, filters=filters)

    def list_open(self, store: RowStore, notification_type: str) -> list[dict]:
        return self.list_all(
            store,
            filters=[
                Filter("type", "eq", notification_type),
                Filter("status", "in", ["unread", "read"]),
            ],
        )

    def unread_count(self, store: RowStore) -> int:
        rows = store.select(self.table, filters=[Filter("status", "eq", "unread")], columns=("id",))
        return len(rows)

    def create_many(self, store: RowStore, drafts: Iterable[dict]) -> list[dict]:
        return [self.create(store, dict(draft)) for draft in drafts]
