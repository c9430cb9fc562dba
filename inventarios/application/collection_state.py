"""Loading and error state of an entity collection.

A :class:`CollectionState` records the rows of the last full read and
whether a read is in flight. List requests always re-read the row store
through :meth:`CollectionState.load`, since other workers and other
clients of the backend write to the same tables. Successful mutations patch
the held rows (append on create, replace on update, remove on delete) so
the snapshot on ``/health`` stays current between reads. Failures are
recorded as plain Spanish text in :attr:`error` and re-raised.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List

from inventarios.errors import AppError


logger = logging.getLogger(__name__)

DEFAULT_ERROR_TEXT = "Error desconocido"


class CollectionState:
    def __init__(self, entity: str, error_texts: Dict[str, str] | None = None) -> None:
        self.entity = entity
        self.error_texts = dict(error_texts or {})
        self._lock = threading.Lock()
        self._items: List[dict] = []
        self.loaded = False
        self.loading = False
        self.error: str | None = None

    @property
    def items(self) -> List[dict]:
        with self._lock:
            return [dict(item) for item in self._items]

    def clear_error(self) -> None:
        self.error = None

    def invalidate(self) -> None:
        with self._lock:
            self._items = []
            self.loaded = False

    def _fail(self, operation: str, exc: Exception) -> None:
        fallback = self.error_texts.get(operation, DEFAULT_ERROR_TEXT)
        # Backend error text stays in the log; the state only carries user-facing text.
        self.error = exc.user_message() if isinstance(exc, AppError) else fallback
        logger.warning(
            "collection_operation_failed",
            extra={"entity": self.entity, "operation": operation, "details": str(exc)},
        )

    def load(self, fetch: Callable[[], List[dict]]) -> List[dict]:
        self.loading = True
        self.error = None
        try:
            rows = list(fetch())
        except Exception as exc:
            self._fail("load", exc)
            raise
        finally:
            self.loading = False
        with self._lock:
            self._items = [dict(row) for row in rows]
            self.loaded = True
        return self.items

    def create(self, action: Callable[[], dict]) -> dict:
        self.error = None
        try:
            row = action()
        except Exception as exc:
            self._fail("create", exc)
            raise
        with self._lock:
            if self.loaded:
                self._items.append(dict(row))
        return row

    def update(self, record_id: Any, action: Callable[[], dict]) -> dict:
        self.error = None
        try:
            row = action()
        except Exception as exc:
            self._fail("update", exc)
            raise
        key = str(record_id)
        with self._lock:
            self._items = [dict(row) if str(item.get("id")) == key else item for item in self._items]
        return row

    def delete(self, record_id: Any, action: Callable[[], Any]) -> None:
        self.error = None
        try:
            action()
        except Exception as exc:
            self._fail("delete", exc)
            raise
        key = str(record_id)
        with self._lock:
            self._items = [item for item in self._items if str(item.get("id")) != key]

    def query(self, operation: str, action: Callable[[], List[dict]]) -> List[dict]:
        self.error = None
        try:
            return list(action())
        except Exception as exc:
            self._fail(operation, exc)
            raise

    def snapshot(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "loaded": self.loaded,
            "loading": self.loading,
            "error": self.error,
            "count": len(self._items),
        }


PROVIDER_ERROR_TEXTS = {
    "load": "Error al cargar proveedores",
    "create": "Error al crear proveedor",
    "update": "Error al actualizar proveedor",
    "delete": "Error al eliminar proveedor",
    "search": "Error al buscar proveedores",
    "by_type": "Error al obtener proveedores por tipo",
}

PRODUCT_ERROR_TEXTS = {
    "load": "Error al cargar productos",
    "create": "Error al crear producto",
    "update": "Error al actualizar producto",
    "delete": "Error al eliminar producto",
    "search": "Error al buscar productos",
    "by_type": "Error al obtener productos por tipo",
    "by_status": "Error al obtener productos por estado",
}


def collection_states(app) -> Dict[str, CollectionState]:
    states = app.extensions.get("collection_states")
    if states is None:
        states = {
            "providers": CollectionState("providers", PROVIDER_ERROR_TEXTS),
            "products": CollectionState("products", PRODUCT_ERROR_TEXTS),
        }
        app.extensions["collection_states"] = states
    return states
