import unittest
from datetime import date, timedelta

from inventarios import create_app
from inventarios.config import Config
from inventarios.db import close_db
from inventarios.ui_strings import error_message
from tests.helpers.temp_db import TempDbSandbox


def _build_temp_app(temp_db: TempDbSandbox, **overrides):
    attrs = {"PROPAGATE_EXCEPTIONS": False}
    attrs.update(overrides)
    return create_app(temp_db.make_config(Config, **attrs))


class ProcurementApiTestCase(unittest.TestCase):
    app_overrides: dict = {}

    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="procurement_api")
        self.app = _build_temp_app(self._temp_db, **self.app_overrides)
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def _create_provider(self, **overrides) -> dict:
        body = {
            "business_name": "Lácteos del Sur",
            "ruc": "80012345-6",
            "type": "contract",
            "email": "ventas@sur.com.py",
            "phones": ["0981123456"],
        }
        body.update(overrides)
        res = self.client.post("/api/providers", json=body)
        self.assertEqual(res.status_code, 201, res.get_json())
        return res.get_json()

    def _create_product(self, code: str = "LEC-01", name: str = "Leche entera") -> dict:
        res = self.client.post("/api/products", json={"code": code, "name": name, "unit": "litros"})
        self.assertEqual(res.status_code, 201, res.get_json())
        return res.get_json()

    def _create_order(self, provider_id: int, product_id: int, **overrides) -> dict:
        body = {
            "provider_id": provider_id,
            "payment_due_date": (date.today() + timedelta(days=30)).isoformat(),
            "items": [{"product_id": product_id, "quantity": 10, "unit_price": 100000}],
        }
        body.update(overrides)
        res = self.client.post("/api/purchase-orders", json=body)
        self.assertEqual(res.status_code, 201, res.get_json())
        return res.get_json()

    def _advance(self, order_id: int) -> dict:
        res = self.client.post(f"/api/purchase-orders/{order_id}/advance")
        self.assertEqual(res.status_code, 200, res.get_json())
        return res.get_json()

    def _issued_order(self) -> dict:
        provider = self._create_provider()
        product = self._create_product()
        order = self._create_order(provider["id"], product["id"])
        self._advance(order["id"])
        return order


class PurchaseOrderLifecycleTest(ProcurementApiTestCase):
    app_overrides = {"IVA_RATE": 0.0}

    def test_create_order_freezes_totals(self) -> None:
        provider = self._create_provider()
        product = self._create_product()

        order = self._create_order(provider["id"], product["id"], notes="Primera entrega")

        self.assertTrue(order["order_number"].startswith(f"OC-{date.today().year}-"))
        self.assertEqual(order["status"], "pre_order")
        self.assertEqual(order["payment_status"], "unpaid")
        self.assertEqual(order["total_amount"], 1000000.0)
        self.assertEqual(len(order["items"]), 1)
        self.assertEqual(order["items"][0]["total_price"], 1000000.0)
        self.assertEqual(order["flow"]["primary_action"], "advance_status")

        detail = self.client.get(f"/api/purchase-orders/{order['id']}").get_json()
        self.assertEqual(detail["provider_name"], "Lácteos del Sur")
        self.assertEqual(detail["status_label"], "Pre-orden")
        self.assertEqual(detail["items"][0]["product_name"], "Leche entera")
        self.assertEqual(detail["reconciliation"]["remaining"], 1000000.0)
        self.assertEqual(detail["process_steps"][0]["state"], "current")

    def test_advance_walks_the_linear_sequence(self) -> None:
        order = self._issued_order()

        received = self._advance(order["id"])
        self.assertEqual(received["previous_status"], "issued")
        self.assertEqual(received["status"], "received")
        self.assertEqual(received["message"], "Estado actualizado a: Recibida")

        self.assertEqual(self._advance(order["id"])["status"], "paid")

        final = self.client.post(f"/api/purchase-orders/{order['id']}/advance")
        self.assertEqual(final.status_code, 409)
        self.assertEqual(final.get_json()["error"], "order_already_final")

    def test_edit_and_delete_only_in_pre_order(self) -> None:
        provider = self._create_provider()
        product = self._create_product()
        draft = self._create_order(provider["id"], product["id"])

        patched = self.client.patch(f"/api/purchase-orders/{draft['id']}", json={"notes": "Entrega por la mañana"})
        self.assertEqual(patched.status_code, 200)
        self.assertEqual(patched.get_json()["notes"], "Entrega por la mañana")
        self.assertEqual(patched.get_json()["total_amount"], 1000000.0)

        deleted = self.client.delete(f"/api/purchase-orders/{draft['id']}")
        self.assertEqual(deleted.status_code, 200)
        missing = self.client.get(f"/api/purchase-orders/{draft['id']}")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.get_json()["error"], "purchase_order_not_found")

        issued = self._create_order(provider["id"], product["id"])
        self._advance(issued["id"])
        blocked = self.client.patch(f"/api/purchase-orders/{issued['id']}", json={"notes": "tarde"})
        self.assertEqual(blocked.status_code, 409)
        payload = blocked.get_json()
        self.assertEqual(payload["error"], "action_not_allowed_for_status")
        self.assertEqual(payload["status"], "issued")
        self.assertEqual(payload["action"], "edit_order")
        self.assertIn("register_payment", payload["allowed_actions"])

        self.assertEqual(self.client.delete(f"/api/purchase-orders/{issued['id']}").status_code, 409)

    def test_create_order_validation(self) -> None:
        provider = self._create_provider()
        product = self._create_product()

        empty = self.client.post("/api/purchase-orders", json={"provider_id": provider["id"], "items": []})
        self.assertEqual(empty.status_code, 400)
        self.assertEqual(empty.get_json()["error"], "items_required")

        unknown_provider = self.client.post(
            "/api/purchase-orders",
            json={"provider_id": 999, "items": [{"product_id": product["id"], "quantity": 1, "unit_price": 1}]},
        )
        self.assertEqual(unknown_provider.status_code, 404)
        self.assertEqual(unknown_provider.get_json()["error"], "provider_not_found")

        unknown_product = self.client.post(
            "/api/purchase-orders",
            json={"provider_id": provider["id"], "items": [{"product_id": 999, "quantity": 1, "unit_price": 1}]},
        )
        self.assertEqual(unknown_product.status_code, 404)
        self.assertEqual(unknown_product.get_json()["product_ids"], [999])

        self._create_order(provider["id"], product["id"], order_number="OC-2026-0001")
        taken = self.client.post(
            "/api/purchase-orders",
            json={
                "provider_id": provider["id"],
                "order_number": "OC-2026-0001",
                "items": [{"product_id": product["id"], "quantity": 1, "unit_price": 1}],
            },
        )
        self.assertEqual(taken.status_code, 409)
        self.assertEqual(taken.get_json()["error"], "order_number_taken")

    def test_list_filters(self) -> None:
        provider = self._create_provider()
        other = self._create_provider(business_name="Granja Norte", ruc=None, email=None)
        product = self._create_product()
        first = self._create_order(provider["id"], product["id"])
        self._create_order(other["id"], product["id"])
        self._advance(first["id"])

        issued = self.client.get("/api/purchase-orders?status=issued").get_json()["items"]
        self.assertEqual([row["id"] for row in issued], [first["id"]])
        self.assertEqual(issued[0]["reconciliation"]["status"], "pending")

        by_provider = self.client.get(f"/api/purchase-orders?provider_id={other['id']}").get_json()["items"]
        self.assertEqual([row["provider_name"] for row in by_provider], ["Granja Norte"])

        bad = self.client.get("/api/purchase-orders?status=closed")
        self.assertEqual(bad.status_code, 400)
        self.assertEqual(self.client.get("/api/purchase-orders?provider_id=abc").status_code, 400)


class PaymentReconciliationApiTest(ProcurementApiTestCase):
    app_overrides = {"IVA_RATE": 0.0}

    def _pay(self, order_id: int, amount, **extra):
        body = {"amount": amount}
        body.update(extra)
        return self.client.post(f"/api/purchase-orders/{order_id}/payments", json=body)

    def test_payments_reconcile_until_paid(self) -> None:
        order = self._issued_order()

        first = self._pay(order["id"], 400000)
        self.assertEqual(first.status_code, 201, first.get_json())
        body = first.get_json()
        self.assertEqual(body["payment_status"], "unpaid")
        self.assertEqual(body["summary"]["remaining"], 600000.0)
        self.assertEqual(body["summary"]["status"], "partial")
        self.assertTrue(body["payment"]["reference"].startswith("TRF-"))

        too_much = self._pay(order["id"], 700000)
        self.assertEqual(too_much.status_code, 400)
        rejected = too_much.get_json()
        self.assertEqual(rejected["error"], "payment_amount_exceeds_remaining")
        self.assertEqual(rejected["message"], "El monto no puede exceder el saldo pendiente de ₲ 600.000")
        self.assertEqual(rejected["remaining"], 600000.0)
        self.assertIn("amount", rejected["fields"])

        zero = self._pay(order["id"], 0)
        self.assertEqual(zero.status_code, 400)
        self.assertEqual(zero.get_json()["message"], error_message("payment_amount_not_positive"))

        settled = self.client.post(
            "/api/payments",
            json={"purchase_order_id": order["id"], "amount": "600000", "payment_type": "check", "reference": "CHK-123"},
        )
        self.assertEqual(settled.status_code, 201, settled.get_json())
        self.assertEqual(settled.get_json()["payment_status"], "paid")
        self.assertEqual(settled.get_json()["summary"]["remaining"], 0.0)
        self.assertEqual(settled.get_json()["summary"]["status"], "paid")
        self.assertEqual(settled.get_json()["payment"]["reference"], "CHK-123")

        extra = self._pay(order["id"], 1)
        self.assertEqual(extra.status_code, 409)
        self.assertEqual(extra.get_json()["error"], "order_fully_paid")

        detail = self.client.get(f"/api/purchase-orders/{order['id']}").get_json()
        self.assertEqual(detail["payment_status"], "paid")
        self.assertEqual(detail["status"], "issued")
        self.assertEqual(len(detail["payments"]), 2)

        paid_orders = self.client.get("/api/purchase-orders?payment_status=paid").get_json()["items"]
        self.assertEqual([row["id"] for row in paid_orders], [order["id"]])

    def test_payment_accepted_in_any_order_status(self) -> None:
        provider = self._create_provider()
        product = self._create_product()
        draft = self._create_order(provider["id"], product["id"])

        res = self._pay(draft["id"], 400000)
        self.assertEqual(res.status_code, 201, res.get_json())
        self.assertEqual(res.get_json()["summary"]["remaining"], 600000.0)

        advanced = self._create_order(provider["id"], product["id"])
        for _ in range(3):
            self._advance(advanced["id"])
        detail = self.client.get(f"/api/purchase-orders/{advanced['id']}").get_json()
        self.assertEqual(detail["status"], "paid")
        self.assertEqual(detail["reconciliation"]["remaining"], 1000000.0)

        settled = self._pay(advanced["id"], 1000000)
        self.assertEqual(settled.status_code, 201, settled.get_json())
        self.assertEqual(settled.get_json()["payment_status"], "paid")
        self.assertEqual(settled.get_json()["summary"]["remaining"], 0.0)

        self.assertEqual(self._pay(999, 1000).status_code, 404)

    def test_payment_listing_and_delete_reopens_balance(self) -> None:
        order = self._issued_order()
        self._pay(order["id"], 400000)
        settled = self._pay(order["id"], 600000, payment_type="cash").get_json()

        listed = self.client.get(f"/api/payments?purchase_order_id={order['id']}").get_json()["items"]
        self.assertEqual(len(listed), 2)
        self.assertEqual({row["order_number"] for row in listed}, {order["order_number"]})
        self.assertEqual({row["payment_type_label"] for row in listed}, {"Transferencia", "Efectivo"})
        self.assertEqual(len(self.client.get("/api/payments").get_json()["items"]), 2)

        summary = self.client.get(f"/api/purchase-orders/{order['id']}/payments").get_json()
        self.assertEqual(summary["summary"]["payments_count"], 2)
        self.assertEqual(summary["summary"]["paid"], 1000000.0)

        deleted = self.client.delete(f"/api/payments/{settled['payment']['id']}")
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(deleted.get_json()["payment_status"], "unpaid")

        detail = self.client.get(f"/api/purchase-orders/{order['id']}").get_json()
        self.assertEqual(detail["payment_status"], "unpaid")
        self.assertEqual(detail["reconciliation"]["remaining"], 600000.0)

        self.assertEqual(self.client.delete("/api/payments/9999").status_code, 404)


class DispatchAndDocumentApiTest(ProcurementApiTestCase):
    def test_totals_use_configured_iva(self) -> None:
        provider = self._create_provider()
        product = self._create_product()
        order = self._create_order(
            provider["id"],
            product["id"],
            items=[
                {"product_id": product["id"], "quantity": 2, "unit_price": "1500.50"},
                {"product_id": product["id"], "quantity": 3, "unit_price": 1000},
            ],
        )
        self.assertAlmostEqual(order["subtotal"], 6001.0)
        self.assertAlmostEqual(order["tax_amount"], 900.15)
        self.assertAlmostEqual(order["total_amount"], 6901.15)

    def test_dispatch_by_email_and_whatsapp(self) -> None:
        order = self._issued_order()

        email = self.client.post(f"/api/purchase-orders/{order['id']}/dispatch", json={"channel": "email"})
        self.assertEqual(email.status_code, 200, email.get_json())
        payload = email.get_json()
        self.assertTrue(payload["order"]["email_sent"])
        self.assertEqual(payload["dispatched"]["to"], "ventas@sur.com.py")
        self.assertEqual(payload["message"], "Email enviado exitosamente a ventas@sur.com.py")

        whatsapp = self.client.post(f"/api/purchase-orders/{order['id']}/dispatch?channel=whatsapp")
        self.assertEqual(whatsapp.status_code, 200)
        self.assertTrue(whatsapp.get_json()["order"]["whatsapp_sent"])
        self.assertEqual(whatsapp.get_json()["dispatched"]["to"], "0981123456")

        fax = self.client.post(f"/api/purchase-orders/{order['id']}/dispatch", json={"channel": "fax"})
        self.assertEqual(fax.status_code, 400)
        self.assertEqual(fax.get_json()["error"], "option_invalid")

    def test_dispatch_rules(self) -> None:
        provider = self._create_provider(email=None)
        product = self._create_product()
        order = self._create_order(provider["id"], product["id"])

        early = self.client.post(f"/api/purchase-orders/{order['id']}/dispatch", json={"channel": "email"})
        self.assertEqual(early.status_code, 409)

        self._advance(order["id"])
        no_email = self.client.post(f"/api/purchase-orders/{order['id']}/dispatch", json={"channel": "email"})
        self.assertEqual(no_email.status_code, 400)
        self.assertEqual(no_email.get_json()["error"], "email_invalid")

    def test_document_download(self) -> None:
        provider = self._create_provider()
        product = self._create_product()
        order = self._create_order(provider["id"], product["id"])

        res = self.client.get(f"/api/purchase-orders/{order['id']}/document")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.mimetype, "text/plain")
        self.assertIn(f"Orden_Compra_{order['order_number']}.txt", res.headers["Content-Disposition"])
        text = res.get_data(as_text=True)
        self.assertTrue(text.startswith("ORDEN DE COMPRA"))
        self.assertIn("Leche entera: 10 litros - 100.000 ₲", text)
        self.assertIn("TOTAL: 1.150.000 ₲", text)


if __name__ == "__main__":
    unittest.main()
