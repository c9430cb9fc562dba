"""JSON logging, request ids and per-route HTTP metrics.

Every log line is one JSON object. Inside a request it carries the request
id, path, method and matched route; outside a request (``flask backend``
and ``flask db`` commands) the request id falls back to the last one bound
in this context, or ``n/a``. Fields passed through ``extra=`` are copied to
the top level of the object.
"""

from __future__ import annotations

import contextvars
import json
import logging
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Dict

from flask import g, has_request_context, request


_REQUEST_ID: contextvars.ContextVar[str] = contextvars.ContextVar("inventarios_request_id", default="")

_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}


def bind_request_id(request_id: str | None) -> None:
    _REQUEST_ID.set(str(request_id or "").strip())


def current_request_id(default: str = "n/a") -> str:
    if has_request_context():
        request_id = str(getattr(g, "request_id", "") or "").strip()
        if request_id:
            return request_id
    return _REQUEST_ID.get() or default


def ensure_request_id() -> str:
    """Return the id of the current request, taking it from ``X-Request-Id`` or generating one."""
    request_id = str(getattr(g, "request_id", "") or "").strip()
    if not request_id:
        request_id = str(request.headers.get("X-Request-Id") or "").strip() or str(uuid.uuid4())
        g.request_id = request_id
    bind_request_id(request_id)
    return request_id


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, object] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if has_request_context():
            payload["request_id"] = current_request_id()
            payload["path"] = request.path
            payload["method"] = request.method
            if request.url_rule is not None:
                payload["route"] = request.url_rule.rule
        else:
            payload["request_id"] = str(getattr(record, "request_id", "") or "").strip() or current_request_id()

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRIBUTES or key in payload or key.startswith("_"):
                continue
            payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def configure_json_logging(app) -> None:
    if not bool(app.config.get("LOG_JSON", True)):
        return
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).strip().upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)
    app.logger.handlers = []
    app.logger.propagate = True


class RouteMetrics:
    """Request, error and latency counters keyed by ``"METHOD rule"``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._routes: Dict[str, Dict[str, float]] = {}

    def observe(self, method: str, route: str, status_code: int, duration_ms: float) -> None:
        key = f"{str(method or 'GET').upper()} {route or 'unknown'}"
        duration = max(0.0, float(duration_ms))
        with self._lock:
            counters = self._routes.setdefault(key, {"requests": 0, "errors": 0, "latency_sum_ms": 0.0, "latency_max_ms": 0.0})
            counters["requests"] += 1
            if int(status_code) >= 400:
                counters["errors"] += 1
            counters["latency_sum_ms"] += duration
            counters["latency_max_ms"] = max(counters["latency_max_ms"], duration)

    def snapshot(self) -> dict:
        with self._lock:
            routes = {
                key: {
                    "requests": int(counters["requests"]),
                    "errors": int(counters["errors"]),
                    "latency_avg_ms": round(counters["latency_sum_ms"] / counters["requests"], 2),
                    "latency_max_ms": round(counters["latency_max_ms"], 2),
                }
                for key, counters in self._routes.items()
            }
        return {
            "requests_total": sum(route["requests"] for route in routes.values()),
            "errors_total": sum(route["errors"] for route in routes.values()),
            "routes": routes,
        }


_METRICS = RouteMetrics()


def start_request_timer() -> None:
    g.request_started_at = time.perf_counter()


def record_response(response):
    started = getattr(g, "request_started_at", None)
    elapsed_ms = (time.perf_counter() - started) * 1000.0 if started is not None else 0.0
    route = request.url_rule.rule if request.url_rule is not None else request.path
    _METRICS.observe(request.method, route, response.status_code, elapsed_ms)
    response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"
    return response


def metrics_snapshot() -> dict:
    return _METRICS.snapshot()


def reset_metrics_for_tests() -> None:
    _METRICS.reset()
    bind_request_id(None)
