from __future__ import annotations

from inventarios.infrastructure.repositories.base import BaseRepository


class WarehouseRepository(BaseRepository):
    table = "warehouses"
    default_order = ("name", "id")
