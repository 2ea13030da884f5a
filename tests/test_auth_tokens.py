import unittest
from unittest.mock import patch

from itsdangerous import TimestampSigner, URLSafeTimedSerializer

from licitacoes.auth import issue_access_token, verify_access_token
from licitacoes.db import close_db
from licitacoes.errors import AuthExpiredError
from licitacoes.ui_strings import error_message
from tests.helpers.temp_db import TempDbSandbox, build_temp_app


class AuthTokenApiTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="auth_tokens")
        self.app = build_temp_app(
            self._temp_db,
            TESTING=False,
            AUTH_ENABLED=True,
            DB_AUTO_INIT=True,
            ACCESS_TOKEN_TTL_SECONDS=60,
        )
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def _token(self, subject: str = "user-ana") -> str:
        with self.app.app_context():
            return issue_access_token(subject)

    def test_missing_token_returns_401(self) -> None:
        response = self.client.get("/api/tenders")
        self.assertEqual(response.status_code, 401)
        payload = response.get_json()
        self.assertEqual(payload["error"], "auth_required")
        self.assertEqual(payload["message"], error_message("auth_required"))
        self.assertTrue((payload.get("request_id") or "").strip())

    def test_valid_token_is_accepted(self) -> None:
        response = self.client.get("/api/tenders", headers={"Authorization": f"Bearer {self._token()}"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), [])

    def test_tampered_token_is_rejected(self) -> None:
        response = self.client.get("/api/tenders", headers={"Authorization": f"Bearer {self._token()}x"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["error"], "token_invalid")

    def test_token_signed_with_other_key_is_rejected(self) -> None:
        forged = URLSafeTimedSerializer("outra-chave", salt="licitacoes-access-token").dumps({"sub": "user-ana"})
        response = self.client.get("/api/tenders", headers={"Authorization": f"Bearer {forged}"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["error"], "token_invalid")

    def test_expired_token_returns_token_expired(self) -> None:
        token = self._token()
        with patch.object(TimestampSigner, "get_timestamp", return_value=10**10):
            response = self.client.get("/api/tenders", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["error"], "token_expired")

    def test_health_is_public(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["status"], "ok")

    def test_issue_token_cli(self) -> None:
        result = self.app.test_cli_runner().invoke(args=["issue-token", "user-bruno"])
        self.assertEqual(result.exit_code, 0, msg=result.output)
        with self.app.app_context():
            claims = verify_access_token(result.output.strip())
        self.assertEqual(claims["sub"], "user-bruno")


class VerifyAccessTokenTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="auth_verify")
        self.app = build_temp_app(self._temp_db, seed=False)

    def tearDown(self) -> None:
        self._temp_db.cleanup()

    def test_claims_round_trip(self) -> None:
        with self.app.app_context():
            token = issue_access_token("user-carla", papel="Coordenadora")
            claims = verify_access_token(token)
        self.assertEqual(claims, {"sub": "user-carla", "papel": "Coordenadora"})

    def test_garbage_token(self) -> None:
        with self.app.app_context():
            with self.assertRaises(AuthExpiredError) as ctx:
                verify_access_token("nao-e-um-token")
        self.assertEqual(ctx.exception.code, "token_invalid")


if __name__ == "__main__":
    unittest.main()
