"""Unit tests for the command line interface."""

from unittest.mock import Mock

import orjson
import pytest
from click.testing import CliRunner
from structlog.testing import capture_logs

from ai_rate_limiter import __version__
from ai_rate_limiter import cli as cli_module
from ai_rate_limiter.cli import cli
from ai_rate_limiter.config import get_settings


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def no_keys(monkeypatch, tmp_path):
    for var in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "MOONSHOT_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("ENABLE_METRICS", "false")
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_version_text(runner):
    result = runner.invoke(cli, ["version"])
    assert result.exit_code == 0
    assert result.output.strip() == f"v{__version__}"


def test_version_json(runner):
    result = runner.invoke(cli, ["version", "--format", "json"])
    assert result.exit_code == 0
    assert orjson.loads(result.output) == {"version": __version__}


def test_presets(runner):
    result = runner.invoke(cli, ["presets"])

    assert result.exit_code == 0
    payload = orjson.loads(result.output)
    assert set(payload) == {"openai", "anthropic", "moonshot"}
    assert payload["openai"]["priority"] == 1
    assert payload["anthropic"]["rate_limit"]["requests_per_minute"] == 100
    assert payload["moonshot"]["rate_limit"]["tokens_per_minute"] is None


def test_health_without_providers_exits_nonzero(runner, no_keys, monkeypatch):
    setup_logging = Mock()
    monkeypatch.setattr(cli_module, "setup_logging", setup_logging)

    with capture_logs() as logs:
        result = runner.invoke(cli, ["health", "--log-level", "error"])

    setup_logging.assert_called_once_with(level="error", json_output=False)
    assert result.exit_code == 1
    report = orjson.loads(result.output)
    assert report["checks"] == {}
    assert report["is_healthy"] is False
    assert report["rate_limit_stats"]["total_providers"] == 0
    assert any(entry["event"] == "No provider API keys configured" for entry in logs)
