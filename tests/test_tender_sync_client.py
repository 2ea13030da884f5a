import unittest

from licitacoes.client.cache import RequestCache
from licitacoes.client.debounce import Debouncer
from licitacoes.client.tender_client import TenderSyncClient, statistics_cache_key
from licitacoes.domain.contracts import TenderFilters
from licitacoes.errors import ApiRequestError, SessionExpiredError


class _ImmediateTimer:
    def __init__(self, interval, function, args=None, kwargs=None) -> None:
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}

    def start(self) -> None:
        self.function(*self.args, **self.kwargs)

    def cancel(self) -> None:
        return None


class _ManualTimer(_ImmediateTimer):
    instances = []

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        _ManualTimer.instances.append(self)

    def start(self) -> None:
        return None

    def fire(self) -> None:
        self.function(*self.args, **self.kwargs)


class _FakeApi:
    def __init__(self) -> None:
        self.calls = []
        self.tenders = [{"id": "t1", "titulo": "Pregao"}]
        self.statistics = {"total": 1}
        self.failures = {}

    def request(self, method, path, *, params=None, payload=None):
        self.calls.append((method, path, dict(params or {}), payload))
        failure = self.failures.get((method, path))
        if failure is not None:
            raise failure
        if method == "GET" and path == "/tenders":
            if (params or {}).get("estatisticas") == "true":
                return dict(self.statistics)
            return [dict(item) for item in self.tenders]
        if method == "POST":
            created = {"id": "t2", **(payload or {})}
            self.tenders.append(created)
            return created
        if method == "DELETE":
            return {"id": path.rsplit("/", 1)[-1]}
        return {"id": path.split("/")[2], **(payload or {})}

    def count(self, method, path, **params) -> int:
        return sum(
            1
            for call in self.calls
            if call[0] == method and call[1] == path and all(call[2].get(k) == v for k, v in params.items())
        )


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TenderSyncClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.api = _FakeApi()
        self.clock = _Clock()
        self.client = TenderSyncClient(
            self.api,
            cache=RequestCache(ttl_seconds=300, clock=self.clock),
            debouncer=Debouncer(delay_seconds=0.3, timer_factory=_ImmediateTimer),
        )

    def _list_fetches(self) -> int:
        return sum(
            1
            for call in self.api.calls
            if call[0] == "GET" and call[1] == "/tenders" and "estatisticas" not in call[2]
        )

    def test_list_is_cached_per_filter_set(self) -> None:
        first = self.client.load_tenders().result(timeout=0)
        second = self.client.load_tenders().result(timeout=0)
        self.assertEqual(first, second)
        self.assertEqual(self._list_fetches(), 1)
        self.assertEqual(self.client.tenders, first)

        self.client.load_tenders({"status": "negociacao"}).result(timeout=0)
        self.assertEqual(self._list_fetches(), 2)
        self.assertEqual(self.api.calls[-1][2], {"status": "negociacao"})
        self.assertEqual(self.client.filters, TenderFilters(status="negociacao"))

    def test_injected_cache_and_debouncer_are_kept(self) -> None:
        cache = RequestCache(ttl_seconds=5, clock=lambda: 0.0)
        debouncer = Debouncer(delay_seconds=0.1, timer_factory=_ImmediateTimer)
        client = TenderSyncClient(self.api, cache=cache, debouncer=debouncer)
        self.assertIs(client.cache, cache)
        self.assertIs(client.debouncer, debouncer)
        self.assertIs(self.client.cache._clock, self.clock)

    def test_from_config_applies_client_settings(self) -> None:
        client = TenderSyncClient.from_config(
            {
                "TENDERS_API_BASE_URL": "http://localhost:5000/api",
                "CLIENT_CACHE_TTL_SECONDS": 10,
                "CLIENT_DEBOUNCE_MS": 50,
            },
            token_provider=lambda: "token",
            refresh_fn=lambda: None,
        )
        self.assertEqual(client.cache.ttl_seconds, 10.0)
        self.assertAlmostEqual(client.debouncer.delay_seconds, 0.05)

    def test_cache_expires_after_ttl(self) -> None:
        self.client.load_tenders().result(timeout=0)
        self.clock.now += 301
        self.client.load_tenders().result(timeout=0)
        self.assertEqual(self._list_fetches(), 2)

    def test_statistics_cached_by_period(self) -> None:
        self.assertEqual(self.client.load_statistics("ano"), {"total": 1})
        self.client.load_statistics("ano")
        self.assertEqual(self.api.count("GET", "/tenders", estatisticas="true", periodo="ano"), 1)
        self.assertIsNotNone(self.client.cache.get(statistics_cache_key("ano")))

        self.client.load_statistics("semana")
        self.assertEqual(self.api.count("GET", "/tenders", estatisticas="true", periodo="semana"), 1)
        self.assertEqual(self.client.period, "semana")

    def test_write_invalidates_cache_and_reloads(self) -> None:
        self.client.load_initial()
        self.assertEqual(self._list_fetches(), 1)

        created = self.client.create_tender({"titulo": "Novo"})
        self.assertEqual(created["id"], "t2")
        self.assertEqual(self._list_fetches(), 2)
        self.assertEqual([item["id"] for item in self.client.tenders], ["t1", "t2"])
        self.assertEqual(self.api.count("GET", "/tenders", estatisticas="true", periodo="mes"), 2)

    def test_each_write_operation_hits_expected_route(self) -> None:
        self.client.update_tender("t1", {"titulo": "A"})
        self.client.patch_tender("t1", {"objeto": "B"})
        self.client.update_status("t1", "negociacao")
        self.client.delete_tender("t1")

        writes = [(method, path, payload) for method, path, _, payload in self.api.calls if method != "GET"]
        self.assertEqual(
            writes,
            [
                ("PUT", "/tenders/t1", {"titulo": "A"}),
                ("PATCH", "/tenders/t1", {"objeto": "B"}),
                ("PATCH", "/tenders/t1/status", {"status": "negociacao"}),
                ("DELETE", "/tenders/t1", None),
            ],
        )

    def test_failed_write_keeps_cache_and_records_error(self) -> None:
        self.client.load_tenders().result(timeout=0)
        self.api.failures[("PUT", "/tenders/t1")] = ApiRequestError(code="tender_not_found", http_status=404)

        with self.assertRaises(ApiRequestError):
            self.client.update_tender("t1", {"titulo": "X"})
        self.assertEqual(self.client.last_error.code, "tender_not_found")
        self.assertIsNotNone(self.client.cache.get("all"))

        self.client.get_tender("t1")
        self.assertIsNone(self.client.last_error)

    def test_reload_failure_after_write_is_reported_not_raised(self) -> None:
        self.api.failures[("GET", "/tenders")] = ApiRequestError(details="fora do ar")
        result = self.client.patch_tender("t1", {"objeto": "B"})
        self.assertEqual(result["objeto"], "B")
        self.assertEqual(self.client.last_error.details, "fora do ar")

    def test_session_expired_propagates(self) -> None:
        self.api.failures[("GET", "/tenders")] = SessionExpiredError()
        future = self.client.load_tenders()
        with self.assertRaises(SessionExpiredError):
            future.result(timeout=0)
        self.assertIsInstance(self.client.last_error, SessionExpiredError)


class TenderSyncClientDebounceTest(unittest.TestCase):
    def setUp(self) -> None:
        _ManualTimer.instances = []
        self.api = _FakeApi()
        self.client = TenderSyncClient(
            self.api,
            cache=RequestCache(),
            debouncer=Debouncer(delay_seconds=0.3, timer_factory=_ManualTimer),
        )

    def test_burst_of_filter_changes_fetches_once(self) -> None:
        first = self.client.load_tenders({"termo": "no"})
        second = self.client.load_tenders({"termo": "note"})
        last = self.client.load_tenders({"termo": "notebook"})
        self.assertEqual(self.api.calls, [])

        _ManualTimer.instances[-1].fire()
        self.assertTrue(first.cancelled())
        self.assertTrue(second.cancelled())
        self.assertEqual(last.result(timeout=0), self.api.tenders)
        self.assertEqual([call[2] for call in self.api.calls], [{"termo": "notebook"}])

    def test_cache_hit_cancels_pending_fetch_for_older_filters(self) -> None:
        self.client.load_tenders()
        _ManualTimer.instances[-1].fire()
        self.assertEqual(len(self.api.calls), 1)

        pending = self.client.load_tenders({"termo": "x"})
        stale_timer = _ManualTimer.instances[-1]
        cached = self.client.load_tenders()
        self.assertTrue(pending.cancelled())
        self.assertEqual(cached.result(timeout=0), self.api.tenders)

        self.api.tenders = [{"id": "filtrado"}]
        stale_timer.fire()
        self.assertEqual(len(self.api.calls), 1)
        self.assertEqual(self.client.filters, TenderFilters())
        self.assertEqual(self.client.tenders, [{"id": "t1", "titulo": "Pregao"}])
        self.assertFalse(self.client.debouncer.pending)

    def test_reload_all_bypasses_debounce(self) -> None:
        pending = self.client.load_tenders({"termo": "x"})
        snapshot = self.client.reload_all()
        self.assertTrue(pending.cancelled())
        self.assertEqual(snapshot["tenders"], self.api.tenders)
        self.assertEqual(snapshot["statistics"], {"total": 1})


if __name__ == "__main__":
    unittest.main()
