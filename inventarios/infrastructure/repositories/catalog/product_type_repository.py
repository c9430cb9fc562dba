from __future__ import annotations

from inventarios.infrastructure.repositories.base import BaseRepository


class ProductTypeRepository(BaseRepository):
    table = "product_types"
    default_order = ("name", "id")
