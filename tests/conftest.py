"""Shared test fixtures and factories."""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from mailgate.config import CredentialsConfig, TransportConfig, TransportMode
from mailgate.network import AddressFamily, BindOutcome, StackAvailability
from mailgate.rpc import RPCRouter, ToolTable

# Variables read by the config loader; cleared so the host cannot leak in
TRANSPORT_ENV_VARS = (
    "MCP_SERVER_MODE",
    "PORT",
    "BIND_ADDRESS",
    "ENABLE_IPV6",
    "IPV6_PREFER",
    "IPV6_DUAL_STACK",
    "CORS_ORIGINS",
    "ALLOW_PRIVATE_NETWORK_ACCESS",
    "RAILWAY_INTERNAL_ACCESS",
    "RAILWAY_ENVIRONMENT",
    "RAILWAY_SERVICE_NAME",
    "NODE_ENV",
    "GMAIL_CREDENTIALS_PATH",
    "GMAIL_OAUTH_PATH",
    "MAILGATE_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path: Path) -> None:
    for name in TRANSPORT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MAILGATE_HOME", str(tmp_path / "mailgate-home"))


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def credentials_config(tmp_path: Path) -> CredentialsConfig:
    """Credential paths inside the test's temp dir (files not created)."""
    return CredentialsConfig(
        credentials_path=tmp_path / "credentials.json",
        oauth_keys_path=tmp_path / "gcp-oauth.keys.json",
    )


@pytest.fixture
def make_config(
    credentials_config: CredentialsConfig,
) -> Callable[..., TransportConfig]:
    """Factory for network-mode configs bound to loopback on an ephemeral port."""

    def _make(**overrides: Any) -> TransportConfig:
        values: dict[str, Any] = {
            "mode": TransportMode.NETWORK,
            "port": 0,
            "bind_address": "127.0.0.1",
            "allow_private_network_access": True,
            "credentials": credentials_config,
        }
        values.update(overrides)
        return TransportConfig(**values)

    return _make


# =============================================================================
# Dispatch Fixtures
# =============================================================================


@pytest.fixture
def tool_table() -> ToolTable:
    """Dispatch core with a single echo tool."""

    async def echo(arguments: dict[str, Any]) -> str:
        return str(arguments.get("text", ""))

    table = ToolTable()
    table.register(
        "echo",
        echo,
        description="Echo the given text",
        input_schema={
            "type": "object",
            "properties": {"text": {"type": "string"}},
        },
    )
    return table


@pytest.fixture
def router(tool_table: ToolTable) -> RPCRouter:
    return RPCRouter(tool_table)


class FailingCore:
    """Dispatch core whose every call blows up."""

    def recognizes(self, method: str) -> bool:
        return method.startswith("tools/")

    async def handle(self, method: str, params: Any) -> Any:
        raise RuntimeError("gmail backend unreachable")


# =============================================================================
# Network and Credential Fakes
# =============================================================================


@dataclass
class FakeCredentials:
    credentials: bool = True
    oauth_keys: bool = True

    def credentials_present(self) -> bool:
        return self.credentials

    def oauth_keys_present(self) -> bool:
        return self.oauth_keys


@pytest.fixture
def bound_outcome() -> BindOutcome:
    """A successful IPv4 bind without a real socket."""
    return BindOutcome(
        success=True, address="0.0.0.0", port=3000, family=AddressFamily.IPV4
    )


@pytest.fixture
def dual_stack() -> StackAvailability:
    return StackAvailability.from_probes(ipv4=True, ipv6=True)


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
