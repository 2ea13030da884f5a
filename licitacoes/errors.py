from __future__ import annotations

from typing import Any, Dict

from licitacoes.ui_strings import error_message


class AppError(Exception):
    default_code = "system_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True

    def __init__(
        self,
        code: str | None = None,
        message_key: str | None = None,
        http_status: int | None = None,
        critical: bool | None = None,
        details: str | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        self.code = (code or self.default_code).strip()
        self.message_key = (message_key or self.default_message_key).strip()
        self.http_status = int(http_status or self.default_http_status)
        self.critical = bool(self.default_critical if critical is None else critical)
        self.details = (details or "").strip() or None
        self.payload = dict(payload or {})
        super().__init__(self.details or self.code)

    def user_message(self) -> str:
        fallback = error_message("unexpected_error", "Nao foi possivel concluir a operacao.")
        return error_message(self.message_key, fallback)

    def to_response_payload(self, request_id: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": self.code,
            "message": self.user_message(),
            "request_id": request_id,
        }
        # Critical failures keep driver details in the logs only.
        if self.details and not self.critical:
            payload["details"] = self.details
        if self.payload:
            payload.update(self.payload)
        return payload


class UserActionError(AppError):
    default_code = "action_invalid"
    default_message_key = "payload_invalid"
    default_http_status = 400
    default_critical = False


class ValidationError(UserActionError):
    default_code = "validation_error"
    default_message_key = "required_fields_missing"
    default_http_status = 400
    default_critical = False


class NotFoundError(UserActionError):
    default_code = "not_found"
    default_message_key = "tender_not_found"
    default_http_status = 404
    default_critical = False


class AuthExpiredError(AppError):
    default_code = "token_expired"
    default_message_key = "token_expired"
    default_http_status = 401
    default_critical = False


class SessionExpiredError(AuthExpiredError):
    default_code = "session_expired"
    default_message_key = "session_expired"


class TransactionFailure(AppError):
    default_code = "transaction_failed"
    default_message_key = "transaction_failed"
    default_http_status = 500
    default_critical = True


class StorageCollaboratorError(AppError):
    default_code = "storage_delete_failed"
    default_message_key = "storage_delete_failed"
    default_http_status = 502
    default_critical = False


class ApiRequestError(AppError):
    default_code = "api_request_failed"
    default_message_key = "api_request_failed"
    default_http_status = 502
    default_critical = False


class SystemError(AppError):
    default_code = "system_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True
