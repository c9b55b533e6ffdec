"""Tests for CLI commands."""

from typing import Any

import pytest

from mailgate.cli.app import app
from mailgate.config import TransportConfig, TransportMode
from mailgate.network import (
    AddressFamily,
    BindError,
    BindOutcome,
    SocketBinder,
    StackAvailability,
    StackProber,
)
from mailgate.rpc import RPCRouter, ToolTable


def make_core() -> ToolTable:
    return ToolTable()


class TestConfigCommand:
    """Tests for 'mailgate config' command."""

    def test_no_action_shows_help(self, cli_runner):
        result = cli_runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "validate" in result.stdout

    def test_show_local_defaults(self, cli_runner):
        result = cli_runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "Transport Configuration" in result.stdout
        assert "point-to-point" in result.stdout

    def test_show_with_overrides(self, cli_runner, monkeypatch):
        monkeypatch.setenv("NODE_ENV", "development")
        monkeypatch.setenv("CORS_ORIGINS", "https://app.example.com")

        result = cli_runner.invoke(
            app, ["config", "show", "--mode", "http", "--port", "4100"]
        )

        assert result.exit_code == 0
        assert "network" in result.stdout
        assert "4100" in result.stdout
        assert "Configured origins:" in result.stdout
        assert "https://app.example.com" in result.stdout

    def test_port_flag_keeps_local_environment(self, cli_runner):
        result = cli_runner.invoke(app, ["config", "validate", "--port", "4100"])

        assert result.exit_code == 0
        assert "Configuration is valid (local, point-to-point mode)" in result.stdout
        assert "RAILWAY_ENVIRONMENT not set" not in result.stdout

    def test_show_invalid_environment(self, cli_runner, monkeypatch):
        monkeypatch.setenv("MCP_SERVER_MODE", "smoke-signals")
        result = cli_runner.invoke(app, ["config", "show"])
        assert result.exit_code == 1
        assert "smoke-signals" in result.stdout

    def test_validate_success(self, cli_runner):
        result = cli_runner.invoke(app, ["config", "validate"])
        assert result.exit_code == 0
        assert "Configuration is valid (local, point-to-point mode)" in result.stdout
        assert "Gmail credential paths not specified" in result.stdout

    def test_validate_reports_every_error(self, cli_runner, monkeypatch):
        monkeypatch.setenv("RAILWAY_ENVIRONMENT", "production")
        monkeypatch.setenv("IPV6_PREFER", "maybe")

        result = cli_runner.invoke(app, ["config", "validate"])

        assert result.exit_code == 1
        assert "Found 2 configuration error(s):" in result.stdout
        assert "PORT environment variable is required" in result.stdout
        assert "IPV6_PREFER" in result.stdout

    def test_validate_invalid_port(self, cli_runner):
        result = cli_runner.invoke(app, ["config", "validate", "--port", "0"])
        assert result.exit_code == 1
        assert "Invalid PORT value: 0" in result.stdout

    def test_unknown_action(self, cli_runner):
        result = cli_runner.invoke(app, ["config", "unknown"])
        assert result.exit_code == 1
        assert "Unknown action" in result.stdout


class TestNetworkCommand:
    """Tests for 'mailgate network' command."""

    @pytest.fixture(autouse=True)
    def ipv4_only_host(self, monkeypatch):
        async def probe(self) -> StackAvailability:
            return StackAvailability.from_probes(ipv4=True, ipv6=False)

        monkeypatch.setattr(StackProber, "probe", probe)

    def test_shows_stack_and_plan(self, cli_runner):
        result = cli_runner.invoke(app, ["network"])

        assert result.exit_code == 0
        assert "Network Stack" in result.stdout
        assert "Bind Plan (port 3000)" in result.stdout
        assert "0.0.0.0" in result.stdout
        assert "ipv4-only" in result.stdout
        assert "IPv6 is not available on this system." in result.stdout

    def test_bind_success_releases_socket(self, cli_runner, monkeypatch):
        closed: list[bool] = []

        class _Sock:
            def close(self) -> None:
                closed.append(True)

        async def bind(self, candidates, port: int) -> BindOutcome:
            return BindOutcome(
                success=True,
                address="0.0.0.0",
                port=port,
                family=AddressFamily.IPV4,
                sock=_Sock(),
            )

        monkeypatch.setattr(SocketBinder, "bind", bind)

        result = cli_runner.invoke(app, ["network", "--bind", "--port", "4200"])

        assert result.exit_code == 0
        assert "Bound 0.0.0.0:4200 (IPv4 only)" in result.stdout
        assert "Socket released" in result.stdout
        assert closed == [True]

    def test_bind_failure(self, cli_runner, monkeypatch):
        async def bind(self, candidates, port: int) -> BindOutcome:
            return BindOutcome.failed(OSError("Address already in use"), port=port)

        monkeypatch.setattr(SocketBinder, "bind", bind)

        result = cli_runner.invoke(app, ["network", "--bind"])

        assert result.exit_code == 1
        assert "Binding failed: Address already in use" in result.stdout


class TestServeCommand:
    """Tests for 'mailgate serve' command."""

    @pytest.fixture
    def served(self, monkeypatch) -> list[tuple[TransportConfig, RPCRouter]]:
        calls: list[tuple[TransportConfig, RPCRouter]] = []

        async def run_server(config: TransportConfig, router: RPCRouter) -> None:
            calls.append((config, router))

        monkeypatch.setattr("mailgate.cli.commands.serve._run_server", run_server)
        monkeypatch.setattr(
            "mailgate.logging.configure_logging", lambda **kwargs: None
        )
        return calls

    def test_serves_configured_mode(self, cli_runner, served, monkeypatch):
        monkeypatch.setenv("NODE_ENV", "development")

        result = cli_runner.invoke(app, ["serve", "--mode", "dual", "--port", "4100"])

        assert result.exit_code == 0
        [(config, router)] = served
        assert config.mode is TransportMode.BOTH
        assert config.port == 4100
        assert isinstance(router.core, ToolTable)

    def test_loads_dispatch_core(self, cli_runner, served):
        result = cli_runner.invoke(app, ["serve", "--core", f"{__name__}:make_core"])

        assert result.exit_code == 0
        [(config, router)] = served
        assert config.mode is TransportMode.POINT_TO_POINT
        assert isinstance(router.core, ToolTable)

    @pytest.mark.parametrize(
        "target", ["not_a_target", "mailgate_missing_module:core"]
    )
    def test_bad_dispatch_core(self, cli_runner, served, target):
        result = cli_runner.invoke(app, ["serve", "--core", target])
        assert result.exit_code == 1
        assert served == []

    def test_invalid_mode(self, cli_runner, served):
        result = cli_runner.invoke(app, ["serve", "--mode", "pigeon"])
        assert result.exit_code == 1
        assert served == []

    def test_bind_error_exits_nonzero(self, cli_runner, monkeypatch):
        async def run_server(config: Any, router: Any) -> None:
            raise BindError(
                "Network binding failed: in use", BindOutcome.failed(OSError())
            )

        monkeypatch.setattr("mailgate.cli.commands.serve._run_server", run_server)
        monkeypatch.setattr(
            "mailgate.logging.configure_logging", lambda **kwargs: None
        )

        result = cli_runner.invoke(app, ["serve", "--mode", "http"])

        assert result.exit_code == 1

    def test_keyboard_interrupt_exits_cleanly(self, cli_runner, monkeypatch):
        async def run_server(config: Any, router: Any) -> None:
            raise KeyboardInterrupt

        monkeypatch.setattr("mailgate.cli.commands.serve._run_server", run_server)
        monkeypatch.setattr(
            "mailgate.logging.configure_logging", lambda **kwargs: None
        )

        result = cli_runner.invoke(app, ["serve"])

        assert result.exit_code == 0
