"""
Unit tests for the command line entry point.
"""

import pytest

from quoted.__main__ import build_parser, load_configs, main
from quoted.server import Server


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ["QUOTED_HOST", "QUOTED_PORT", "QUOTED_WORKERS", "QUOTED_LOG_LEVEL", "QUOTED_CONFIG"]:
        monkeypatch.delenv(name, raising=False)


def configs(*argv):
    return load_configs(build_parser().parse_args(list(argv)))


class TestLoadConfigs:
    """Tests for flag and environment resolution."""

    def test_defaults(self):
        app_config, server_config = configs()

        assert app_config.auth.enabled
        assert server_config.port == 8080
        assert server_config.config_path is None

    def test_flags(self):
        _, server_config = configs("--host", "0.0.0.0", "-p", "3000", "-w", "1", "-l", "DEBUG")

        assert server_config.host == "0.0.0.0"
        assert server_config.port == 3000
        assert server_config.max_workers == 1
        assert server_config.min_workers == 1
        assert server_config.log_level == "DEBUG"

    def test_single_worker_from_env(self, monkeypatch):
        monkeypatch.setenv("QUOTED_WORKERS", "1")

        _, server_config = configs()

        assert server_config.max_workers == 1
        assert server_config.min_workers == 1

    def test_flag_overrides_env(self, monkeypatch):
        monkeypatch.setenv("QUOTED_PORT", "9000")

        assert configs()[1].port == 9000
        assert configs("--port", "9001")[1].port == 9001

    def test_no_auth(self):
        app_config, _ = configs("--no-auth")

        assert not app_config.auth.enabled

    def test_config_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"auth": {"secret": "s3cret"}, "quotes": {"de": ["eins"]}}', encoding="utf-8")

        app_config, server_config = configs("--config", str(path), "--no-auth")

        assert server_config.config_path == str(path)
        assert tuple(app_config.quotes) == ("de",)
        assert app_config.auth.secret == "s3cret"
        assert not app_config.auth.enabled


class TestMain:
    """Tests for main()'s exit status on bad configuration."""

    def test_undecodable_config(self, tmp_path, capsys):
        path = tmp_path / "config.json"
        path.write_text('{"cors": {"max_age": "soon"}}', encoding="utf-8")

        assert main(["--config", str(path)]) == 2
        assert "cors.max_age" in capsys.readouterr().err

    def test_missing_config(self, tmp_path):
        assert main(["--config", str(tmp_path / "missing.json")]) == 2

    def test_invalid_port(self, capsys):
        assert main(["--port", "70000"]) == 2
        assert "Invalid port" in capsys.readouterr().err

    def test_single_worker_from_env_starts(self, monkeypatch):
        started = []
        monkeypatch.setenv("QUOTED_WORKERS", "1")
        monkeypatch.setattr(Server, "run", lambda self: started.append(self.config))

        assert main([]) == 0
        assert started[0].min_workers == started[0].max_workers == 1
