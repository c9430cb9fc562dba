import os

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from inventarios.application.collection_state import collection_states
from inventarios.backend_cli import register_backend_cli
from inventarios.config import Config, backend_kind, missing_backend_settings
from inventarios.db import close_db, init_db
from inventarios.db_migrations import register_db_cli
from inventarios.errors import ConfigurationError
from inventarios.observability import (
    configure_json_logging,
    ensure_request_id,
    metrics_snapshot,
    record_response,
    start_request_timer,
)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_json_logging(app)

    _require_backend_settings(app)
    _ensure_database_dir(app)
    _register_error_handlers(app)
    _register_blueprints(app)
    _register_health(app)
    register_db_cli(app)
    register_backend_cli(app)
    collection_states(app)
    _maybe_init_schema(app)

    app.teardown_appcontext(close_db)
    return app


def _require_backend_settings(app: Flask) -> None:
    missing = missing_backend_settings(app.config)
    if not missing:
        return
    app.logger.critical("backend_settings_missing", extra={"missing_settings": missing})
    raise ConfigurationError(f"Configuración requerida ausente: {', '.join(missing)}")


def _ensure_database_dir(app: Flask) -> None:
    backend_url = str(app.config.get("BACKEND_URL") or "")
    if backend_kind(backend_url) != "sqlite":
        return
    database_dir = os.path.dirname(os.path.abspath(backend_url))
    if database_dir:
        os.makedirs(database_dir, exist_ok=True)


def _maybe_init_schema(app: Flask) -> None:
    if backend_kind(app.config.get("BACKEND_URL")) == "rest":
        return
    auto_init = bool(app.config.get("DB_AUTO_INIT", False))
    if app.testing:
        # Tests build their schema without running migrations.
        auto_init = True
    if not auto_init:
        return

    flask_env = (os.environ.get("FLASK_ENV", "development") or "development").strip().lower()
    if not app.testing and flask_env != "development":
        app.logger.warning("DB_AUTO_INIT ignorado fuera de development.")
        return

    with app.app_context():
        init_db()


def _register_blueprints(app: Flask) -> None:
    from inventarios.routes.catalog_routes import catalog_bp
    from inventarios.routes.notification_routes import notifications_bp
    from inventarios.routes.payment_routes import payments_bp
    from inventarios.routes.purchase_order_routes import purchase_orders_bp

    app.register_blueprint(catalog_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(notifications_bp)


def _register_error_handlers(app: Flask) -> None:
    from inventarios.errors import AppError, BackendError, SystemError, classify_backend_failure
    from inventarios.row_store import RowStoreError

    @app.before_request
    def _ensure_request_id() -> None:
        ensure_request_id()
        start_request_timer()

    @app.after_request
    def _append_request_id(response):
        response.headers["X-Request-Id"] = ensure_request_id()
        return record_response(response)

    def _log_error(error: AppError, request_id: str) -> None:
        log_method = app.logger.error if error.critical else app.logger.warning
        log_method(
            "application_error",
            extra={
                "request_id": request_id,
                "error_code": error.code,
                "http_status": error.http_status,
                "message_key": error.message_key,
                "details": error.details,
                "request_path": request.path,
                "http_method": request.method,
            },
            exc_info=error.critical,
        )

    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        request_id = ensure_request_id()
        _log_error(exc, request_id)
        return jsonify(exc.to_response_payload(request_id)), exc.http_status

    @app.errorhandler(RowStoreError)
    def _handle_row_store_error(exc: RowStoreError):
        request_id = ensure_request_id()
        code, message_key, http_status = classify_backend_failure(str(exc))
        mapped = BackendError(
            code=code,
            message_key=message_key,
            http_status=http_status,
            critical=False,
            details=str(exc),
        )
        _log_error(mapped, request_id)
        return jsonify(mapped.to_response_payload(request_id)), mapped.http_status

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc

        request_id = ensure_request_id()
        mapped = SystemError(
            code="unexpected_error",
            message_key="unexpected_error",
            http_status=500,
            critical=True,
            details=str(exc),
        )
        app.logger.exception(
            "unexpected_exception",
            extra={
                "request_id": request_id,
                "error_code": mapped.code,
                "request_path": request.path,
                "http_method": request.method,
            },
        )
        return jsonify(mapped.to_response_payload(request_id)), mapped.http_status


def _register_health(app: Flask) -> None:
    @app.route("/health")
    def health():
        states = collection_states(app)
        payload = {
            "status": "ok",
            "backend": backend_kind(app.config.get("BACKEND_URL")),
            "collections": {name: state.snapshot() for name, state in states.items()},
            "metrics": {
                "http": metrics_snapshot(),
            },
        }
        return payload, 200
