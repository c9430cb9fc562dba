import unittest
from decimal import Decimal

from inventarios.procurement.documents import (
    document_filename,
    render_order_document,
    render_order_email,
    render_order_whatsapp,
)
from inventarios.procurement.order_totals import compute_order_totals, line_subtotal


class OrderTotalsTest(unittest.TestCase):
    def test_totals_with_default_iva(self) -> None:
        totals = compute_order_totals(
            [
                {"quantity": 2, "unit_price": "1500.50"},
                {"quantity": "3", "unit_price": 1000},
            ]
        )
        self.assertEqual(totals["subtotal"], Decimal("6001.00"))
        self.assertEqual(totals["tax_amount"], Decimal("900.15"))
        self.assertEqual(totals["total_amount"], Decimal("6901.15"))

    def test_custom_rate_and_empty_order(self) -> None:
        totals = compute_order_totals([{"quantity": 10, "unit_price": 100000}], 0)
        self.assertEqual(totals["total_amount"], Decimal("1000000.00"))
        self.assertEqual(compute_order_totals([])["total_amount"], Decimal("0.00"))

    def test_line_subtotal_rounds_half_up(self) -> None:
        self.assertEqual(line_subtotal(Decimal("0.333"), 3), Decimal("1.00"))
        self.assertEqual(line_subtotal("0.005", 1), Decimal("0.01"))


class OrderDocumentsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.order = {
            "order_number": "OC-2026-1234",
            "order_date": "2026-10-17",
            "delivery_date": "2026-10-20",
            "payment_due_date": None,
            "subtotal": 1000000,
            "tax_amount": 150000,
            "total_amount": 1150000,
        }
        self.provider = {
            "business_name": "Lácteos del Sur",
            "ruc": "80012345-6",
            "email": "ventas@sur.com.py",
            "phone": "0981123456",
        }
        self.items = [
            {"product_name": "Leche entera", "product_unit": "litros", "quantity": 100.0, "unit_price": 10000},
        ]

    def test_document_text(self) -> None:
        text = render_order_document(self.order, self.provider, self.items)
        self.assertTrue(text.startswith("ORDEN DE COMPRA\n"))
        self.assertIn("Número: OC-2026-1234", text)
        self.assertIn("Fecha: 17/10/2026", text)
        self.assertIn("RUC: 80012345-6", text)
        self.assertIn("Leche entera: 100 litros - 10.000 ₲", text)
        self.assertIn("SUBTOTAL: 1.000.000 ₲", text)
        self.assertIn("IVA: 150.000 ₲", text)
        self.assertIn("TOTAL: 1.150.000 ₲", text)
        self.assertIn("Fecha estimada de llegada: 20/10/2026", text)
        self.assertIn("Fecha programada de pago: -", text)

    def test_email_message(self) -> None:
        message = render_order_email(self.order, self.provider, self.items)
        self.assertEqual(message["to"], "ventas@sur.com.py")
        self.assertEqual(message["subject"], "Orden de Compra OC-2026-1234 - Inventarios Rossi")
        self.assertIn("Estimado proveedor Lácteos del Sur,", message["body"])
        self.assertIn("- Leche entera: 100 litros", message["body"])
        self.assertIn("por un total de 1.150.000 ₲.", message["body"])

    def test_whatsapp_message(self) -> None:
        message = render_order_whatsapp(self.order, self.provider, self.items)
        self.assertEqual(message["to"], "0981123456")
        self.assertTrue(message["body"].startswith("*Orden de Compra OC-2026-1234*"))
        self.assertIn("*1.150.000 ₲*", message["body"])
        self.assertIn("• Leche entera: 100 litros", message["body"])

    def test_missing_provider_contact_yields_empty_recipient(self) -> None:
        self.assertEqual(render_order_email(self.order, {}, self.items)["to"], "")
        self.assertEqual(render_order_whatsapp(self.order, {}, self.items)["to"], "")

    def test_filename(self) -> None:
        self.assertEqual(document_filename(self.order), "Orden_Compra_OC-2026-1234.txt")


if __name__ == "__main__":
    unittest.main()
