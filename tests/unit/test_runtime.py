"""
Unit tests for the runtime: parking, correlation and resumption.
"""

import logging
import threading

from quoted.app import Application, create_app
from quoted.config import AppConfig
from quoted.core import ThreadPool
from quoted.http import HTTPStatus
from quoted.interop import InteropHost, default_host
from quoted.router import Router
from quoted.routes import Home
from quoted.runtime import Runtime

from conftest import StubHost, make_request


def app_with_home(app, handler) -> Application:
    """Copy of ``app`` whose GET / runs ``handler``."""
    router = Router()
    router.add("GET", Home, handler)
    return Application(app.config, app.pipeline, app.routes, router)


class TestInlineRuntime:
    """Runtime without a pool: every call resolves before handle returns."""

    def test_synchronous_route(self, runtime, host):
        response = runtime.handle(make_request("GET", "/?q=1"))

        assert response.status == HTTPStatus.OK
        assert response.text == 'Home: {"q": "1"}'
        assert host.calls == []
        assert runtime.parked == []

    def test_number(self, runtime, host):
        response = runtime.handle(make_request("GET", "/number"))

        assert response.status == HTTPStatus.OK
        assert response.json() == 42
        assert host.calls == [("getRandom", 1_000_000_000)]
        assert runtime.parked == []

    def test_quote_two_round_trips(self, runtime, host):
        response = runtime.handle(make_request("GET", "/quote/en"))

        assert response.json() == {"lang": "en", "quote": "third"}
        assert host.calls == [("fetchQuotes", "en"), ("getRandomUnit", None)]

    def test_quote_all(self, runtime, host):
        response = runtime.handle(make_request("GET", "/quote/en?all"))

        assert response.json() == ["first", "second", "third", "fourth"]
        assert [name for name, _ in host.calls] == ["fetchQuotes"]

    def test_unauthorized_issues_no_calls(self, runtime, host):
        response = runtime.handle(make_request("GET", "/number", auth=False))

        assert response.status == HTTPStatus.UNAUTHORIZED
        assert host.calls == []

    def test_host_error_becomes_500(self, app):
        host = InteropHost()
        host.register("getRandom", lambda upper: 1 // 0)

        response = Runtime(app, host).handle(make_request("GET", "/number"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "Interop call failed: getRandom"

    def test_wrong_result_type_becomes_500(self, app):
        host = InteropHost()
        host.register("getRandom", lambda upper: "not a number")

        response = Runtime(app, host).handle(make_request("GET", "/number"))

        assert response.text == "Interop call failed: getRandom"

    def test_unknown_call_becomes_500(self, app):
        response = Runtime(app, InteropHost()).handle(make_request("GET", "/number"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_handler_exception_becomes_500(self, app, host):
        def broken(conn):
            raise RuntimeError("boom")

        runtime = Runtime(app_with_home(app, broken), host)
        response = runtime.handle(make_request("GET", "/"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "Internal Server Error"
        assert runtime.parked == []

    def test_stranded_conn_stays_parked(self, app, host, caplog):
        """A handler that neither responds nor issues calls never finishes."""
        runtime = Runtime(app_with_home(app, lambda conn: []), host)

        with caplog.at_level(logging.WARNING, logger="quoted.runtime"):
            pending = runtime.submit(make_request("GET", "/"))

        assert not pending.done
        assert pending.wait(timeout=0.05) is None
        assert runtime.parked == [pending.conn_id]
        assert "no response and no interop calls in flight" in caplog.text

    def test_resume_after_finish_is_dropped(self, runtime):
        pending = runtime.submit(make_request("GET", "/number"))

        assert pending.done
        assert runtime.resume(pending.conn_id, object()) is False

    def test_host_covers_every_call(self, runtime):
        assert runtime.unhandled_calls() == []

    def test_missing_host_functions_reported(self, app, caplog):
        host = InteropHost()
        host.register("getRandom", lambda upper: 1)

        with caplog.at_level(logging.WARNING, logger="quoted.runtime"):
            runtime = Runtime(app, host)

        assert runtime.unhandled_calls() == ["getRandomUnit", "fetchQuotes"]
        assert "no function for fetchQuotes" in caplog.text

    def test_access_log(self, runtime, caplog):
        with caplog.at_level(logging.INFO, logger="quoted.access"):
            runtime.handle(make_request("GET", "/number"))

        record = [r for r in caplog.records if r.name == "quoted.access"][0]
        assert '"GET /number" 200' in record.getMessage()
        assert "calls=1" in record.getMessage()


class TestPooledRuntime:
    """Runtime with a worker pool: calls complete on other threads."""

    def test_conn_waits_for_its_call(self, app, app_config):
        release = threading.Event()
        host = StubHost(app_config)
        host.register("getRandom", lambda upper: release.wait(5) and 7)

        with Runtime(app, host, ThreadPool(min_workers=1, max_workers=2)) as runtime:
            pending = runtime.submit(make_request("GET", "/number"))

            assert pending.wait(timeout=0.1) is None
            assert runtime.parked == [pending.conn_id]

            release.set()
            response = pending.wait(timeout=5)

        assert response.json() == 7
        assert runtime.parked == []

    def test_concurrent_conns_get_their_own_results(self):
        """Each conn is resumed with the results of the calls it issued."""
        languages = {f"l{i}": [f"quote {i}"] for i in range(20)}
        config = AppConfig.from_dict({"auth": {"enabled": False}, "quotes": languages})
        app = create_app(config)

        with Runtime(app, default_host(config), ThreadPool(min_workers=2, max_workers=4)) as runtime:
            pending = {
                lang: runtime.submit(make_request("GET", f"/quote/{lang}", auth=False))
                for lang in languages
            }
            responses = {lang: p.wait(timeout=5) for lang, p in pending.items()}

        for lang, response in responses.items():
            assert response.status == HTTPStatus.OK
            assert response.json() == {"lang": lang, "quote": languages[lang][0]}

    def test_synchronous_routes_skip_the_pool(self, app, host):
        runtime = Runtime(app, host, ThreadPool(min_workers=1, max_workers=1))

        # never started: any attempt to use the pool would raise
        response = runtime.handle(make_request("GET", "/buggy"), timeout=1)

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "bugs, bugs, bugs"
