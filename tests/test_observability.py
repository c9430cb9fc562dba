import json
import logging
import unittest

from inventarios import create_app
from inventarios.config import Config
from inventarios.db import close_db
from inventarios.observability import JsonLogFormatter, metrics_snapshot, reset_metrics_for_tests
from tests.helpers.temp_db import TempDbSandbox


class RequestObservabilityTest(unittest.TestCase):
    def setUp(self) -> None:
        reset_metrics_for_tests()
        self._temp_db = TempDbSandbox(prefix="observability")
        self.app = create_app(self._temp_db.make_config(Config, PROPAGATE_EXCEPTIONS=False))
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()
        reset_metrics_for_tests()

    def test_request_id_is_generated_or_echoed(self) -> None:
        generated = self.client.get("/api/product-types")
        self.assertTrue(generated.headers.get("X-Request-Id"))
        self.assertIn("X-Response-Time-Ms", generated.headers)

        echoed = self.client.get("/api/product-types", headers={"X-Request-Id": "abc-123"})
        self.assertEqual(echoed.headers.get("X-Request-Id"), "abc-123")

    def test_metrics_count_requests_and_errors_per_route(self) -> None:
        self.client.get("/api/product-types")
        self.client.get("/api/providers/999")

        snapshot = metrics_snapshot()
        self.assertEqual(snapshot["requests_total"], 2)
        self.assertEqual(snapshot["errors_total"], 1)
        self.assertEqual(snapshot["routes"]["GET /api/product-types"]["requests"], 1)
        self.assertEqual(snapshot["routes"]["GET /api/providers/<int:provider_id>"]["errors"], 1)
        route = snapshot["routes"]["GET /api/product-types"]
        self.assertGreaterEqual(route["latency_max_ms"], route["latency_avg_ms"])

    def test_health_reports_backend_collections_and_metrics(self) -> None:
        self.client.get("/api/providers")
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)

        payload = response.get_json()
        self.assertEqual(payload["status"], "ok")
        self.assertEqual(payload["backend"], "sqlite")
        self.assertTrue(payload["collections"]["providers"]["loaded"])
        self.assertFalse(payload["collections"]["products"]["loaded"])
        self.assertGreaterEqual(payload["metrics"]["http"]["requests_total"], 1)


class JsonLogFormatterTest(unittest.TestCase):
    def test_background_record_carries_extra_fields(self) -> None:
        reset_metrics_for_tests()
        record = logging.LogRecord(
            name="inventarios.application.payment_service",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="payment_recorded",
            args=(),
            exc_info=None,
        )
        record.purchase_order_id = 12
        record.amount = 600000.0

        payload = json.loads(JsonLogFormatter().format(record))

        self.assertEqual(payload["message"], "payment_recorded")
        self.assertEqual(payload["level"], "info")
        self.assertEqual(payload["logger"], "inventarios.application.payment_service")
        self.assertEqual(payload["request_id"], "n/a")
        self.assertEqual(payload["purchase_order_id"], 12)
        self.assertEqual(payload["amount"], 600000.0)
        self.assertTrue(payload["ts"].endswith("Z"))

    def test_json_logging_replaces_root_handlers(self) -> None:
        temp_db = TempDbSandbox(prefix="observability_logging")
        root_logger = logging.getLogger()
        previous_handlers = list(root_logger.handlers)
        previous_level = root_logger.level
        try:
            create_app(temp_db.make_config(Config, LOG_JSON=True, LOG_LEVEL="WARNING"))
            self.assertEqual(len(root_logger.handlers), 1)
            self.assertIsInstance(root_logger.handlers[0].formatter, JsonLogFormatter)
            self.assertEqual(root_logger.level, logging.WARNING)
        finally:
            root_logger.handlers = previous_handlers
            root_logger.setLevel(previous_level)
            temp_db.cleanup()


if __name__ == "__main__":
    unittest.main()
