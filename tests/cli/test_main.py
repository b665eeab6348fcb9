"""Command-line entrypoint behaviour."""

from __future__ import annotations

import json

import pytest

from kustomcp.cli import main as cli_main
from kustomcp.config.serving_models import ServingConfig
from tests._helpers.expect import expect_equal


def test_config_command_prints_effective_configuration(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """The config command prints validated configuration as JSON."""
    monkeypatch.setenv("QUERY_TIMEOUT_QUERY", "45000")
    exit_code = cli_main.main(["config"])
    expect_equal(exit_code, 0)
    payload = json.loads(capsys.readouterr().out)
    expect_equal(payload["query_timeout"]["query"], 45_000)
    expect_equal(payload["query_limits"]["hard_limit"], 50_000)
    expect_equal(payload["enable_beta_tools"], False)


def test_invalid_configuration_returns_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    """Configuration errors are reported and yield exit code 1."""
    monkeypatch.setenv("QUERY_SOFT_LIMIT", "999999")
    expect_equal(cli_main.main(["config"]), 1)


def test_serve_passes_transport_and_port(monkeypatch: pytest.MonkeyPatch) -> None:
    """The serve command forwards transport, host and port to the server."""
    captured: dict[str, object] = {}

    def _fake_main(transport: str, *, cfg: ServingConfig, host: str, port: int) -> None:
        captured.update(transport=transport, cfg=cfg, host=host, port=port)

    monkeypatch.setattr(cli_main.server, "main", _fake_main)
    monkeypatch.setenv("PORT", "8123")
    exit_code = cli_main.main(
        ["serve", "--transport", "streamable-http", "--host", "0.0.0.0", "-v"]
    )
    expect_equal(exit_code, 0)
    expect_equal(captured["transport"], "streamable-http")
    expect_equal(captured["host"], "0.0.0.0")
    expect_equal(captured["port"], 8123)


def test_serve_defaults_to_stdio_on_port_3000(monkeypatch: pytest.MonkeyPatch) -> None:
    """Without flags the server uses stdio and the default port."""
    captured: dict[str, object] = {}

    def _fake_main(transport: str, *, cfg: ServingConfig, host: str, port: int) -> None:
        captured.update(transport=transport, port=port)

    monkeypatch.setattr(cli_main.server, "main", _fake_main)
    expect_equal(cli_main.main(["serve"]), 0)
    expect_equal(captured, {"transport": "stdio", "port": 3000})


def test_missing_command_is_a_usage_error() -> None:
    """A subcommand is required."""
    with pytest.raises(SystemExit):
        cli_main.main([])
