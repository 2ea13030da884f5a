import os

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from licitacoes.config import Config
from licitacoes.db import close_db, get_db, init_db
from licitacoes.db_migrations import register_db_cli
from licitacoes.observability import (
    configure_json_logging,
    ensure_request_id,
    mark_request_start,
    metrics_snapshot,
    observe_response,
)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_json_logging(app)

    _ensure_database_dir(app)
    _register_error_handlers(app)
    _register_auth(app)
    _register_services(app)
    _register_blueprints(app)
    _register_health(app)
    register_db_cli(app)
    _maybe_init_schema(app)

    app.teardown_appcontext(close_db)
    return app


def _ensure_database_dir(app: Flask) -> None:
    database_dir = app.config.get("DATABASE_DIR")
    if database_dir:
        os.makedirs(database_dir, exist_ok=True)


def _maybe_init_schema(app: Flask) -> None:
    auto_init = bool(app.config.get("DB_AUTO_INIT", False))
    if app.testing:
        # Testes sobem o schema sem depender de migration externa.
        auto_init = True
    if not auto_init:
        return

    flask_env = (os.environ.get("FLASK_ENV", "development") or "development").strip().lower()
    if not app.testing and flask_env != "development":
        app.logger.warning("DB_AUTO_INIT ignorado fora de development.")
        return

    with app.app_context():
        init_db()


def _register_services(app: Flask) -> None:
    from licitacoes.application.document_writer import DocumentWriter
    from licitacoes.application.tender_reader import TenderReader
    from licitacoes.application.tender_writer import TenderWriter
    from licitacoes.infrastructure.storage import LocalBlobStorage, NullBlobStorage

    storage_dir = app.config.get("BLOB_STORAGE_DIR")
    storage = LocalBlobStorage(storage_dir) if storage_dir else NullBlobStorage()
    reader = TenderReader()
    app.extensions["licitacoes"] = {
        "reader": reader,
        "tender_writer": TenderWriter(
            reader=reader,
            blob_storage=storage,
            default_status=app.config.get("DEFAULT_TENDER_STATUS") or "analise_interna",
        ),
        "document_writer": DocumentWriter(reader=reader, blob_storage=storage),
    }


def _register_blueprints(app: Flask) -> None:
    from licitacoes.routes.tender_routes import tenders_bp

    app.register_blueprint(tenders_bp)


def _register_auth(app: Flask) -> None:
    from licitacoes.auth import register_auth

    register_auth(app)


def _register_error_handlers(app: Flask) -> None:
    from licitacoes.errors import AppError, SystemError

    @app.before_request
    def _ensure_request_id() -> None:
        ensure_request_id()
        mark_request_start()

    @app.after_request
    def _append_request_id(response):
        response.headers["X-Request-Id"] = ensure_request_id()
        return observe_response(response)

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
        db_path = app.config.get("DB_PATH") or "unknown"
        backend = "postgres" if str(db_path).startswith("postgres") else "sqlite"
        payload = {
            "status": "ok",
            "db": backend,
            "env": app.config.get("ENV", "unknown"),
            "metrics": {
                "http": metrics_snapshot(),
            },
        }
        try:
            get_db().execute("SELECT 1").fetchone()
        except Exception as exc:
            app.logger.warning("health_db_unavailable", extra={"details": str(exc)})
            payload["status"] = "degraded"
        return payload, 200
