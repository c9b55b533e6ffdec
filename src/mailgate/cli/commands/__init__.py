"""CLI command modules."""

from mailgate.cli.commands import config, network, serve

__all__ = ["config", "network", "serve"]
