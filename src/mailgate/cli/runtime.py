"""Shared bootstrap helpers for CLI entrypoints."""

import logging

from mailgate.config import TransportConfig, load_config
from mailgate.rpc import DispatchCore, RPCRouter, ToolTable, load_dispatch_core

logger = logging.getLogger(__name__)


def cli_overrides(
    *, mode: str | None = None, port: int | None = None
) -> dict[str, str]:
    """Express command-line flags as environment variable overrides."""
    overrides: dict[str, str] = {}
    if mode is not None:
        overrides["MCP_SERVER_MODE"] = mode
    if port is not None:
        overrides["PORT"] = str(port)
    return overrides


def load_cli_config(
    *, mode: str | None = None, port: int | None = None
) -> TransportConfig:
    """Load configuration, with flags taking precedence over the environment."""
    return load_config(overrides=cli_overrides(mode=mode, port=port))


def build_router(core_target: str | None = None) -> RPCRouter:
    """Create the shared router around the configured dispatch core."""
    core: DispatchCore
    if core_target:
        core = load_dispatch_core(core_target)
        logger.info(f"Using dispatch core {core_target}")
    else:
        core = ToolTable()
        logger.warning("No dispatch core configured, serving an empty tool list")
    return RPCRouter(core)
