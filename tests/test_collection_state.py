import unittest

from flask import Flask

from inventarios.application.collection_state import (
    PROVIDER_ERROR_TEXTS,
    CollectionState,
    collection_states,
)
from inventarios.errors import NotFoundError
from inventarios.row_store import RowStoreError


class CollectionStateTest(unittest.TestCase):
    def setUp(self) -> None:
        self.state = CollectionState("providers", PROVIDER_ERROR_TEXTS)
        self.rows = [{"id": 1, "business_name": "Lácteos del Sur"}, {"id": 2, "business_name": "Granja Norte"}]
        self.fetches = 0

    def _fetch(self):
        self.fetches += 1
        return list(self.rows)

    def test_every_load_reads_the_backend(self) -> None:
        self.assertEqual(len(self.state.load(self._fetch)), 2)
        self.assertTrue(self.state.loaded)
        self.assertFalse(self.state.loading)

        self.rows.append({"id": 3, "business_name": "Cooperativa"})
        self.assertEqual(len(self.state.load(self._fetch)), 3)
        self.assertEqual(self.fetches, 2)

    def test_mutations_patch_the_cached_rows(self) -> None:
        self.state.load(self._fetch)

        self.state.create(lambda: {"id": 3, "business_name": "Cooperativa"})
        self.state.update(1, lambda: {"id": 1, "business_name": "Lácteos del Sur S.A."})
        self.state.delete(2, lambda: True)

        self.assertEqual(
            [(row["id"], row["business_name"]) for row in self.state.items],
            [(1, "Lácteos del Sur S.A."), (3, "Cooperativa")],
        )
        self.assertEqual(self.fetches, 1)

    def test_create_before_load_is_not_cached(self) -> None:
        self.state.create(lambda: {"id": 3})
        self.assertEqual(self.state.items, [])
        self.assertFalse(self.state.loaded)

    def test_items_are_copies(self) -> None:
        self.state.load(self._fetch)
        self.state.items[0]["business_name"] = "changed"
        self.assertEqual(self.state.items[0]["business_name"], "Lácteos del Sur")

    def test_failures_record_operation_text_and_reraise(self) -> None:
        def failing():
            raise RowStoreError("Backend HTTP 500: internal detail")

        with self.assertRaises(RowStoreError):
            self.state.load(failing)
        self.assertEqual(self.state.error, "Error al cargar proveedores")
        self.assertFalse(self.state.loading)
        self.assertFalse(self.state.loaded)

        with self.assertRaises(RowStoreError):
            self.state.query("search", failing)
        self.assertEqual(self.state.error, "Error al buscar proveedores")

        with self.assertRaises(RowStoreError):
            self.state.delete(1, failing)
        self.assertEqual(self.state.error, "Error al eliminar proveedor")

        self.state.clear_error()
        self.assertIsNone(self.state.error)

    def test_app_errors_use_their_user_message(self) -> None:
        def missing():
            raise NotFoundError(code="provider_not_found", message_key="provider_not_found")

        with self.assertRaises(NotFoundError):
            self.state.update(9, missing)
        self.assertEqual(self.state.error, "Proveedor no encontrado.")

    def test_unknown_operation_falls_back_to_generic_text(self) -> None:
        def broken():
            raise ValueError("boom")

        state = CollectionState("products")
        with self.assertRaises(ValueError):
            state.query("by_status", broken)
        self.assertEqual(state.error, "Error desconocido")

    def test_invalidate_and_snapshot(self) -> None:
        self.state.load(self._fetch)
        self.assertEqual(
            self.state.snapshot(),
            {"entity": "providers", "loaded": True, "loading": False, "error": None, "count": 2},
        )
        self.state.invalidate()
        self.assertFalse(self.state.loaded)
        self.assertEqual(self.state.items, [])

    def test_states_are_cached_per_app(self) -> None:
        app = Flask("collection_state_test")
        states = collection_states(app)
        self.assertEqual(set(states), {"providers", "products"})
        self.assertIs(collection_states(app), states)
        self.assertIsNot(collection_states(Flask("other")), states)


if __name__ == "__main__":
    unittest.main()
