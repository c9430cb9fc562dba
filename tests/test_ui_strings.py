import unittest

from inventarios.procurement.reconciliation import PAYMENT_REFERENCE_PREFIXES
from inventarios.ui_strings import (
    MESSAGES,
    OPTION_GROUPS,
    STATUS_GROUPS,
    error_message,
    frontend_bundle,
    option_label,
    status_label,
    success_message,
)


class UiStringsStatusGroupsTest(unittest.TestCase):
    def test_required_status_groups_exist(self) -> None:
        required_groups = {"orden_compra", "estado_pago", "conciliacion", "notificacion", "registro"}
        self.assertTrue(required_groups.issubset(set(STATUS_GROUPS.keys())))

    def test_status_labels_and_descriptions_are_not_empty(self) -> None:
        for group_name, statuses in STATUS_GROUPS.items():
            self.assertTrue(statuses, f"grupo vacío: {group_name}")
            for status in statuses:
                self.assertTrue((status.get("label") or "").strip(), f"label vacío en {group_name}:{status.get('key')}")
                self.assertTrue(
                    (status.get("description") or "").strip(),
                    f"descripción vacía en {group_name}:{status.get('key')}",
                )

    def test_status_label_falls_back_to_key(self) -> None:
        self.assertEqual(status_label("orden_compra", "received"), "Recibida")
        self.assertEqual(status_label("orden_compra", "cancelled"), "cancelled")


class UiStringsOptionsTest(unittest.TestCase):
    def test_every_payment_type_has_a_reference_prefix(self) -> None:
        self.assertEqual(set(OPTION_GROUPS["payment_type"]), set(PAYMENT_REFERENCE_PREFIXES))

    def test_option_labels(self) -> None:
        self.assertEqual(option_label("provider_type", "contract"), "Por Contrato")
        self.assertEqual(option_label("storage_type", "batch"), "Por Lotes")
        self.assertEqual(option_label("payment_type", "unknown"), "unknown")


class UiStringsMessagesTest(unittest.TestCase):
    def test_messages_are_not_empty(self) -> None:
        for category, messages in MESSAGES.items():
            for key, text in messages.items():
                self.assertTrue(text.strip(), f"mensaje vacío: {category}.{key}")

    def test_message_params(self) -> None:
        self.assertEqual(success_message("order_status_updated", label="Emitida"), "Estado actualizado a: Emitida")
        self.assertEqual(
            error_message("payment_amount_exceeds_remaining"),
            "El monto no puede exceder el saldo pendiente de {remaining}",
        )

    def test_unknown_keys_use_default(self) -> None:
        self.assertEqual(error_message("missing_key", "fallback"), "fallback")
        self.assertEqual(error_message("missing_key"), "missing_key")

    def test_frontend_bundle(self) -> None:
        bundle = frontend_bundle()
        self.assertEqual(set(bundle), {"terms", "status_groups", "options", "messages"})
        self.assertEqual(bundle["terms"]["app_name"], "Inventarios Rossi")


if __name__ == "__main__":
    unittest.main()
