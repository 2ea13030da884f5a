from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, List, Mapping
from urllib.parse import quote

from licitacoes.client.cache import RequestCache
from licitacoes.client.debounce import Debouncer
from licitacoes.client.transport import AuthRetryTransport, HttpTransport
from licitacoes.domain.contracts import TenderFilters
from licitacoes.errors import AppError


LOGGER = logging.getLogger(__name__)

STATISTICS_CACHE_PREFIX = "estatisticas"
DEFAULT_PERIOD = "mes"


def statistics_cache_key(period: str) -> str:
    return f"{STATISTICS_CACHE_PREFIX}:{period}"


def _as_filters(filters: TenderFilters | Mapping[str, Any] | None) -> TenderFilters:
    if isinstance(filters, TenderFilters):
        return filters
    return TenderFilters.from_mapping(filters)


def _completed(value: Any) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


def _tender_path(tender_id: str, suffix: str = "") -> str:
    return f"/tenders/{quote(str(tender_id), safe='')}{suffix}"


class TenderSyncClient:
    """Client-side view of the tender list and statistics.

    Reads go through the cache; list reads that miss are debounced. Every
    successful write drops the whole cache and reloads list and statistics.
    """

    def __init__(self, transport, cache: RequestCache | None = None, debouncer: Debouncer | None = None) -> None:
        self.transport = transport
        self.cache = cache if cache is not None else RequestCache()
        self.debouncer = debouncer if debouncer is not None else Debouncer()
        self.tenders: List[dict] = []
        self.statistics: dict | None = None
        self.last_error: AppError | None = None
        self.filters = TenderFilters()
        self.period = DEFAULT_PERIOD
        self._state_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        *,
        token_provider: Callable[[], str | None],
        refresh_fn: Callable[[], Any],
        on_session_expired: Callable[[], Any] | None = None,
    ) -> "TenderSyncClient":
        http = HttpTransport(
            config.get("TENDERS_API_BASE_URL") or "",
            token_provider=token_provider,
            timeout=int(config.get("TENDERS_API_TIMEOUT_SECONDS") or 20),
        )
        return cls(
            AuthRetryTransport(http, refresh_fn=refresh_fn, on_session_expired=on_session_expired),
            cache=RequestCache(ttl_seconds=int(config.get("CLIENT_CACHE_TTL_SECONDS") or 300)),
            debouncer=Debouncer(delay_seconds=int(config.get("CLIENT_DEBOUNCE_MS") or 300) / 1000.0),
        )

    # Reads

    def load_tenders(self, filters: TenderFilters | Mapping[str, Any] | None = None) -> Future:
        """Cached list for ``filters``; a miss is fetched after the debounce window."""
        normalized = _as_filters(filters)
        self.filters = normalized
        key = normalized.cache_key()
        cached = self.cache.get(key)
        if cached is not None:
            # A pending fetch for older filters must not overwrite this result.
            self.debouncer.cancel()
            self._set_tenders(cached)
            return _completed(cached)
        return self.debouncer.submit(self._fetch_tenders, normalized)

    def load_statistics(self, period: str | None = None) -> dict:
        self.period = (period or self.period or DEFAULT_PERIOD).strip() or DEFAULT_PERIOD
        key = statistics_cache_key(self.period)
        cached = self.cache.get(key)
        if cached is not None:
            self.statistics = cached
            return cached
        data = self._request("GET", "/tenders", params={"estatisticas": "true", "periodo": self.period})
        self.cache.set(key, data)
        self.statistics = data
        return data

    def load_initial(self) -> dict:
        tenders = self.load_tenders(self.filters).result()
        return {"tenders": tenders, "statistics": self.load_statistics(self.period)}

    def reload_all(self) -> dict:
        """Fetch list and statistics now, bypassing cache and debounce."""
        self.debouncer.cancel()
        self.cache.invalidate_all()
        tenders = self._fetch_tenders(self.filters)
        return {"tenders": tenders, "statistics": self.load_statistics(self.period)}

    def get_tender(self, tender_id: str) -> dict:
        return self._request("GET", _tender_path(tender_id))

    # Writes

    def create_tender(self, payload: Mapping[str, Any]) -> dict:
        return self._write("POST", "/tenders", payload=dict(payload))

    def update_tender(self, tender_id: str, payload: Mapping[str, Any]) -> dict:
        return self._write("PUT", _tender_path(tender_id), payload=dict(payload))

    def patch_tender(self, tender_id: str, payload: Mapping[str, Any]) -> dict:
        return self._write("PATCH", _tender_path(tender_id), payload=dict(payload))

    def update_status(self, tender_id: str, status: str) -> dict:
        return self._write("PATCH", _tender_path(tender_id, "/status"), payload={"status": status})

    def delete_tender(self, tender_id: str) -> dict:
        return self._write("DELETE", _tender_path(tender_id))

    # Internals

    def _fetch_tenders(self, filters: TenderFilters) -> List[dict]:
        data = self._request("GET", "/tenders", params=filters.to_query_params())
        tenders = list(data or [])
        self.cache.set(filters.cache_key(), tenders)
        self._set_tenders(tenders)
        return tenders

    def _write(self, method: str, path: str, payload: Any = None) -> Any:
        result = self._request(method, path, payload=payload)
        self.cache.invalidate_all()
        try:
            self.reload_all()
        except AppError as exc:
            # The write itself succeeded; the stale view is reported through last_error.
            LOGGER.warning("tender_reload_failed", extra={"error_code": exc.code, "details": exc.details})
        return result

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            result = self.transport.request(method, path, **kwargs)
        except AppError as exc:
            self.last_error = exc
            raise
        self.last_error = None
        return result

    def _set_tenders(self, tenders: List[dict]) -> None:
        with self._state_lock:
            self.tenders = list(tenders)
