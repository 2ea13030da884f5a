import unittest
from unittest.mock import patch

from licitacoes.application.transactions import atomic
from licitacoes.db import close_db, get_db
from licitacoes.errors import (
    NotFoundError,
    StorageCollaboratorError,
    TransactionFailure,
    ValidationError,
)
from licitacoes.observability import metrics_snapshot, reset_metrics_for_tests
from licitacoes.ui_strings import error_message
from tests.helpers.temp_db import TempDbSandbox, build_temp_app


class ErrorPayloadTest(unittest.TestCase):
    def test_non_critical_error_exposes_details(self) -> None:
        error = ValidationError(details="Campos obrigatorios: titulo", payload={"missing_fields": ["titulo"]})
        payload = error.to_response_payload("req-1")
        self.assertEqual(payload["error"], "validation_error")
        self.assertEqual(payload["message"], error_message("required_fields_missing"))
        self.assertEqual(payload["details"], "Campos obrigatorios: titulo")
        self.assertEqual(payload["missing_fields"], ["titulo"])
        self.assertEqual(payload["request_id"], "req-1")

    def test_critical_error_hides_details(self) -> None:
        payload = TransactionFailure(details="FOREIGN KEY constraint failed").to_response_payload("req-2")
        self.assertEqual(payload["error"], "transaction_failed")
        self.assertNotIn("details", payload)

    def test_defaults(self) -> None:
        self.assertEqual(NotFoundError().http_status, 404)
        self.assertEqual(StorageCollaboratorError().http_status, 502)
        self.assertFalse(StorageCollaboratorError().critical)


class AtomicBlockTest(unittest.TestCase):
    def setUp(self) -> None:
        reset_metrics_for_tests()
        self._temp_db = TempDbSandbox(prefix="atomic_block")
        self.app = build_temp_app(self._temp_db)

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def _organization_count(self, db) -> int:
        return int(db.execute("SELECT COUNT(*) FROM organizations").fetchone()[0])

    def test_driver_error_becomes_transaction_failure(self) -> None:
        with self.app.app_context():
            db = get_db()
            before = self._organization_count(db)
            with self.assertRaises(TransactionFailure) as ctx:
                with atomic(db, "test_insert"):
                    db.execute("INSERT INTO organizations (id, name) VALUES (?, ?)", ("org-novo", "Novo"))
                    db.execute("INSERT INTO organizations (id, name) VALUES (?, ?)", ("org-novo", "Duplicado"))
            self.assertEqual(ctx.exception.payload["operation"], "test_insert")
            self.assertEqual(self._organization_count(db), before)
            self.assertFalse(db.in_transaction)
        self.assertEqual(metrics_snapshot()["transaction_rollback_total"], 1)

    def test_app_error_propagates_unchanged_after_rollback(self) -> None:
        with self.app.app_context():
            db = get_db()
            before = self._organization_count(db)
            with self.assertRaises(NotFoundError):
                with atomic(db, "test_not_found"):
                    db.execute("INSERT INTO organizations (id, name) VALUES (?, ?)", ("org-x", "X"))
                    raise NotFoundError()
            self.assertEqual(self._organization_count(db), before)

    def test_nested_blocks_join_outer_transaction(self) -> None:
        with self.app.app_context():
            db = get_db()
            before = self._organization_count(db)
            with self.assertRaises(TransactionFailure):
                with atomic(db, "outer"):
                    with db.transaction():
                        db.execute("INSERT INTO organizations (id, name) VALUES (?, ?)", ("org-inner", "Inner"))
                    raise RuntimeError("falha depois do bloco interno")
            self.assertEqual(self._organization_count(db), before)


class ErrorHandlingApiTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="error_api")
        self.app = build_temp_app(self._temp_db)
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def test_unexpected_exception_returns_generic_500(self) -> None:
        reader = self.app.extensions["licitacoes"]["reader"]
        with patch.object(reader, "list", side_effect=RuntimeError("segredo interno")):
            response = self.client.get("/api/tenders")

        self.assertEqual(response.status_code, 500)
        payload = response.get_json()
        self.assertEqual(payload["error"], "unexpected_error")
        self.assertEqual(payload["message"], error_message("unexpected_error"))
        self.assertNotIn("details", payload)
        self.assertNotIn("segredo interno", response.get_data(as_text=True))
        self.assertEqual(response.headers.get("X-Request-Id"), payload["request_id"])

    def test_request_id_is_echoed(self) -> None:
        response = self.client.get("/api/tenders/nao-existe", headers={"X-Request-Id": "req-abc"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.headers.get("X-Request-Id"), "req-abc")
        self.assertEqual(response.get_json()["request_id"], "req-abc")

    def test_unknown_route_keeps_http_status(self) -> None:
        response = self.client.get("/api/nao-existe")
        self.assertEqual(response.status_code, 404)

    def test_health_reports_degraded_database(self) -> None:
        with patch("licitacoes.get_db", side_effect=RuntimeError("banco fora")):
            response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["status"], "degraded")


if __name__ == "__main__":
    unittest.main()
