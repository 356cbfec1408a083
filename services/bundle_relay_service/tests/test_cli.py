"""Tests for the command-line entrypoint."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from typer.testing import CliRunner

from services.bundle_relay_service import cli
from services.bundle_relay_service.config import Settings

runner = CliRunner()


@pytest.fixture
def served(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    """Replace the server loop so the command returns once configuration is built."""
    serve = AsyncMock()
    monkeypatch.setattr(cli, "serve", serve)
    monkeypatch.setattr(cli, "configure_service_logging", lambda *args, **kwargs: None)
    return serve


def served_config(serve: AsyncMock) -> Settings:
    serve.assert_awaited_once()
    return serve.await_args.args[0]


class TestParseBackendUrls:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("http://a:8545", ["http://a:8545"]),
            ("http://a:8545,http://b:8545", ["http://a:8545", "http://b:8545"]),
            (" http://a:8545 , ,http://b:8545,", ["http://a:8545", "http://b:8545"]),
            ("", []),
            (" , ", []),
        ],
    )
    def test_splits_and_drops_empty_entries(self, value: str, expected: list[str]) -> None:
        assert cli.parse_backend_urls(value) == expected


class TestMain:
    def test_default_ports(self, served: AsyncMock) -> None:
        result = runner.invoke(cli.app, ["http://a:8545,http://b:8545"])

        assert result.exit_code == 0, result.output
        config = served_config(served)
        assert config.BACKEND_URLS == ["http://a:8545", "http://b:8545"]
        assert config.HTTP_PORT == 18545
        assert config.METRICS_PORT == 9090

    def test_explicit_port_and_options(self, served: AsyncMock) -> None:
        result = runner.invoke(
            cli.app, ["http://a:8545", "28545", "--metrics-port", "9191", "--host", "127.0.0.1"]
        )

        assert result.exit_code == 0, result.output
        config = served_config(served)
        assert config.HTTP_PORT == 28545
        assert config.METRICS_PORT == 9191
        assert config.HTTP_HOST == "127.0.0.1"

    @pytest.mark.parametrize("port", ["70000", "-1"])
    def test_out_of_range_port_is_fatal(self, served: AsyncMock, port: str) -> None:
        result = runner.invoke(cli.app, ["http://a:8545", "--", port])

        assert result.exit_code != 0
        assert "invalid port specified for PORT" in result.output
        served.assert_not_awaited()

    def test_non_numeric_port_is_fatal(self, served: AsyncMock) -> None:
        result = runner.invoke(cli.app, ["http://a:8545", "not-a-port"])

        assert result.exit_code != 0
        served.assert_not_awaited()

    def test_invalid_metrics_port_is_fatal(self, served: AsyncMock) -> None:
        result = runner.invoke(cli.app, ["http://a:8545", "--metrics-port", "65536"])

        assert result.exit_code != 0
        assert "--metrics-port" in result.output
        served.assert_not_awaited()

    @pytest.mark.parametrize("backends", ["", ",,"])
    def test_empty_backend_list_is_fatal(self, served: AsyncMock, backends: str) -> None:
        result = runner.invoke(cli.app, [backends])

        assert result.exit_code != 0
        assert "no valid backend urls" in result.output
        served.assert_not_awaited()

    def test_missing_backends_argument(self, served: AsyncMock) -> None:
        result = runner.invoke(cli.app, [])

        assert result.exit_code != 0
        served.assert_not_awaited()
