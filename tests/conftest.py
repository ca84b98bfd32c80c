"""
pytest configuration and fixtures.
"""

from typing import Dict, Generator, List

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from quoted import AppConfig, HTTPRequest, Runtime, Server, ServerConfig, create_app
from quoted.config import AuthConfig
from quoted.interop import InteropHost


AUTH = {"Authorization": "Bearer test"}


def make_request(method: str, target: str, headers: Dict[str, str] = None, auth: bool = True) -> HTTPRequest:
    """Helper to build a request, authorized by default."""
    merged = dict(AUTH) if auth else {}
    merged.update(headers or {})
    return HTTPRequest.from_target(method, target, headers=merged.items())


class StubHost(InteropHost):
    """
    Interop host with fixed answers that records every call it receives.
    """

    def __init__(self, config: AppConfig, number: int = 42, unit: float = 0.5):
        super().__init__()
        self.calls: List[tuple] = []

        def record(name, result):
            def func(arg):
                self.calls.append((name, arg))
                return result(arg)
            return func

        self.register("getRandom", record("getRandom", lambda upper: number))
        self.register("getRandomUnit", record("getRandomUnit", lambda _: unit))
        self.register("fetchQuotes", record("fetchQuotes", lambda lang: list(config.quotes.get(lang, ()))))


@pytest.fixture
def app_config() -> AppConfig:
    """Config with a small, known quote catalog."""
    return AppConfig.from_dict({
        "quotes": {
            "en": ["first", "second", "third", "fourth"],
            "fr": ["premier"],
            "xx": [],
        },
    })


@pytest.fixture
def app(app_config):
    return create_app(app_config)


@pytest.fixture
def host(app_config) -> StubHost:
    return StubHost(app_config)


@pytest.fixture
def runtime(app, host) -> Runtime:
    """Runtime without a pool: interop calls run inline."""
    return Runtime(app, host)


@pytest.fixture
def open_config(app_config) -> AppConfig:
    """Same catalog, auth disabled."""
    return AppConfig(auth=AuthConfig(enabled=False), cors=app_config.cors, quotes=app_config.quotes)


@pytest.fixture
def test_server(app_config) -> Generator[Server, None, None]:
    """A real server on a free port, running in a background thread."""
    server = Server(
        app_config,
        ServerConfig(host="127.0.0.1", port=0, min_workers=2, max_workers=4, log_level="WARNING"),
    )
    server.start()

    yield server

    server.stop()
