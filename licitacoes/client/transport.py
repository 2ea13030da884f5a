from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Callable, Dict

from licitacoes.errors import ApiRequestError, AuthExpiredError, SessionExpiredError


LOGGER = logging.getLogger(__name__)


class HttpTransport:
    """JSON over HTTP against the tenders API.

    401 responses raise AuthExpiredError; every other failure raises
    ApiRequestError carrying the server's error code and details.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], str | None] | None = None,
        timeout: float = 20,
        opener: Callable[..., Any] | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url obrigatoria para o cliente de licitacoes.")
        self.base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self.timeout = timeout
        self._open = opener or urllib.request.urlopen

    def _url(self, path: str, params: Dict[str, Any] | None) -> str:
        url = f"{self.base_url}/{path.lstrip('/')}"
        query = {key: value for key, value in (params or {}).items() if value not in (None, "")}
        if query:
            url = f"{url}?{urllib.parse.urlencode(query)}"
        return url

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        payload: Any = None,
    ) -> Any:
        headers = {"Accept": "application/json"}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        data = None
        if payload is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(payload, separators=(",", ":"), ensure_ascii=True).encode("utf-8")

        request = urllib.request.Request(self._url(path, params), data=data, headers=headers, method=method.upper())
        try:
            with self._open(request, timeout=self.timeout) as response:
                body = response.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            raise self._map_http_error(exc) from exc
        except urllib.error.URLError as exc:
            raise ApiRequestError(details=f"falha de conexao: {exc.reason}") from exc

        if not body:
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise ApiRequestError(details="Resposta invalida da API (JSON).") from exc

    @staticmethod
    def _map_http_error(exc: urllib.error.HTTPError) -> Exception:
        raw = exc.read().decode("utf-8", errors="replace") if exc.fp is not None else ""
        try:
            body = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        details = body.get("details") or body.get("message") or raw[:300] or f"HTTP {exc.code}"
        if exc.code == 401:
            return AuthExpiredError(details=str(details))
        return ApiRequestError(
            code=str(body.get("error") or "api_request_failed"),
            http_status=exc.code,
            details=str(details),
            payload={"server_message": body.get("message")} if body.get("message") else None,
        )


class AuthRetryTransport:
    """Refresh the access token once and retry once on AuthExpiredError.

    A failed refresh, or a second auth failure, ends the session. Other errors
    from either attempt propagate unchanged.
    """

    def __init__(
        self,
        inner,
        refresh_fn: Callable[[], Any],
        on_session_expired: Callable[[], Any] | None = None,
    ) -> None:
        self._inner = inner
        self._refresh = refresh_fn
        self._on_session_expired = on_session_expired

    def request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            return self._inner.request(method, path, **kwargs)
        except AuthExpiredError as exc:
            first_failure = exc

        LOGGER.info("access_token_refresh", extra={"http_method": method, "request_path": path})
        try:
            self._refresh()
        except Exception as exc:
            raise self._end_session(f"refresh falhou: {exc}") from exc

        try:
            return self._inner.request(method, path, **kwargs)
        except AuthExpiredError as exc:
            raise self._end_session(exc.details or first_failure.details or "token rejeitado apos refresh") from exc

    def _end_session(self, details: str) -> SessionExpiredError:
        LOGGER.warning("session_expired", extra={"details": details})
        if self._on_session_expired is not None:
            self._on_session_expired()
        return SessionExpiredError(details=details)
