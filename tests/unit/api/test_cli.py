"""Tests for the ask-on-slack CLI."""

import pytest
from typer.testing import CliRunner

from ask_on_slack import __version__
from ask_on_slack.api.cli.main import app, build_settings
from ask_on_slack.core.domain.errors import ConfigError

runner = CliRunner()


@pytest.fixture
def captured_settings(monkeypatch):
    """Replace both transports with recorders of the settings they get."""
    seen = []

    async def fake_run_stdio(settings):
        seen.append(("stdio", settings))

    def fake_run_http(settings):
        seen.append(("http", settings))

    monkeypatch.setattr("ask_on_slack.api.stdio.run_stdio", fake_run_stdio)
    monkeypatch.setattr("ask_on_slack.api.server.run_http", fake_run_http)
    for name in ("PORT", "HOST", "ASK_SLACK_BOT", "ASK_SLACK_APP", "ASK_SLACK_ROLE"):
        monkeypatch.delenv(name, raising=False)
    return seen


def test_version_command() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_roles_command_lists_tools() -> None:
    result = runner.invoke(app, ["roles"])

    assert result.exit_code == 0
    assert "ask_the_boss_on_slack" in result.stdout
    assert "clarify_with_the_expert_on_slack" in result.stdout
    assert "acknowledge_the_human_on_slack" in result.stdout


def test_stdio_runs_with_resolved_settings(captured_settings) -> None:
    result = runner.invoke(
        app,
        ["--role", "expert", "--timeout", "30", "stdio"],
        env={"ASK_SLACK_CHANNEL": "C42"},
    )

    assert result.exit_code == 0
    transport, settings = captured_settings[0]
    assert transport == "stdio"
    assert settings.role == "expert"
    assert settings.reply_timeout == 30.0
    assert settings.slack_channel_id == "C42"


def test_serve_applies_http_options(captured_settings) -> None:
    result = runner.invoke(app, ["serve", "--port", "8080", "--json-response"])

    assert result.exit_code == 0
    transport, settings = captured_settings[0]
    assert transport == "http"
    assert settings.port == 8080
    assert settings.host == "0.0.0.0"
    assert settings.json_response is True


def test_invalid_timeout_exits_with_error(captured_settings) -> None:
    result = runner.invoke(app, ["--timeout", "0", "stdio"])

    assert result.exit_code == 1
    assert captured_settings == []


def test_transport_failure_exits_with_error(monkeypatch) -> None:
    async def failing_run_stdio(settings):
        raise RuntimeError("stdin closed")

    monkeypatch.setattr("ask_on_slack.api.stdio.run_stdio", failing_run_stdio)

    result = runner.invoke(app, ["stdio"])

    assert result.exit_code == 1


def test_build_settings_reports_invalid_fields() -> None:
    with pytest.raises(ConfigError, match="reply_timeout"):
        build_settings({"reply_timeout": -1})
