"""Network transport and origin access control for a Gmail MCP tool server."""

__version__ = "0.1.0"
