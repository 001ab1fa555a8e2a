"""Tests for the command line entry point."""

import os
from pathlib import Path

import pytest

from trivial_drive import __main__ as cli

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "products.yaml"


@pytest.fixture
def clean_env(monkeypatch):
    """Start from an empty environment for every variable the CLI reads or writes."""
    for name in ("HOST", "PORT", "LOG_LEVEL", "LOG_FORMAT", "CONFIG_PATH"):
        # setenv first so the value main() exports is undone after the test
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


@pytest.fixture
def uvicorn_calls(clean_env):
    calls = []
    clean_env.setattr(cli.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    return calls


class TestParser:
    """Test flag defaults."""

    def test_defaults(self, clean_env):
        args = cli.build_parser().parse_args([])
        assert (args.host, args.port) == ("127.0.0.1", 8080)
        assert (args.log_level, args.log_format) == ("INFO", "json")
        assert args.config == "config/products.yaml"
        assert args.reload is False

    def test_environment_supplies_defaults(self, clean_env):
        clean_env.setenv("PORT", "9000")
        clean_env.setenv("LOG_LEVEL", "debug")
        args = cli.build_parser().parse_args([])
        assert args.port == 9000
        assert args.log_level == "DEBUG"

    def test_unknown_log_level_rejected(self, clean_env):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--log-level", "LOUD"])


class TestMain:
    """Test starting the server."""

    def test_runs_app_factory(self, uvicorn_calls):
        cli.main(["--port", "9123", "--config", str(CONFIG_PATH), "--log-format", "console"])

        [(app, kwargs)] = uvicorn_calls
        assert app == "trivial_drive.main:create_app"
        assert kwargs["factory"] is True
        assert kwargs["port"] == 9123
        assert kwargs["log_level"] == "info"

    def test_exports_settings_for_app_factory(self, uvicorn_calls):
        cli.main(["--config", str(CONFIG_PATH), "--log-level", "WARNING"])

        assert os.environ["CONFIG_PATH"] == str(CONFIG_PATH)
        assert os.environ["LOG_LEVEL"] == "WARNING"
        assert os.environ["LOG_FORMAT"] == "json"

    def test_invalid_config_exits_before_serving(self, uvicorn_calls, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["--config", str(tmp_path / "missing.yaml")])

        assert excinfo.value.code == 1
        assert uvicorn_calls == []
