"""Configuration models using Pydantic."""

import logging
from enum import StrEnum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from mailgate.config.paths import get_credentials_path, get_oauth_keys_path
from mailgate.network.types import IPV4_WILDCARD, IPV6_WILDCARD, NetworkPreferences

logger = logging.getLogger(__name__)


class TransportMode(StrEnum):
    """Which transports the service exposes."""

    POINT_TO_POINT = "point-to-point"
    NETWORK = "network"
    BOTH = "both"

    @property
    def uses_point_to_point(self) -> bool:
        return self in (TransportMode.POINT_TO_POINT, TransportMode.BOTH)

    @property
    def uses_network(self) -> bool:
        return self in (TransportMode.NETWORK, TransportMode.BOTH)


# Accepted spellings of MCP_SERVER_MODE
MODE_ALIASES: dict[str, TransportMode] = {
    "stdio": TransportMode.POINT_TO_POINT,
    "point-to-point": TransportMode.POINT_TO_POINT,
    "http": TransportMode.NETWORK,
    "network": TransportMode.NETWORK,
    "dual": TransportMode.BOTH,
    "both": TransportMode.BOTH,
}


class ConfigError(Exception):
    """Configuration error."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class CredentialsConfig(BaseModel):
    """Locations of the Gmail credential files (checked for presence only)."""

    model_config = ConfigDict(frozen=True)

    credentials_path: Path = Field(default_factory=get_credentials_path)
    oauth_keys_path: Path = Field(default_factory=get_oauth_keys_path)


class TransportConfig(BaseModel):
    """Root configuration, constructed once at startup.

    Components receive this object by reference and never consult the
    process environment themselves.
    """

    model_config = ConfigDict(frozen=True)

    environment: Literal["local", "railway"] = "local"
    mode: TransportMode = TransportMode.POINT_TO_POINT
    port: int | None = None
    bind_address: str | None = None
    enable_ipv6: bool = False
    prefer_ipv6: bool = False
    dual_stack: bool = False
    allowed_origins: tuple[str, ...] = ()
    allow_private_network_access: bool = False
    allow_platform_internal_access: bool = False
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)

    @field_validator("port")
    @classmethod
    def _validate_port(cls, value: int | None) -> int | None:
        # Port 0 asks the OS for an ephemeral port
        if value is not None and not 0 <= value <= 65535:
            raise ValueError(f"Invalid port: {value}. Must be between 0 and 65535")
        return value

    @model_validator(mode="after")
    def _require_port_for_network(self) -> "TransportConfig":
        if self.mode.uses_network and self.port is None:
            raise ValueError(f"A port is required for {self.mode.value} mode")
        return self

    def network_preferences(self) -> NetworkPreferences:
        """Derive the listener preferences for the network transport."""
        if self.bind_address:
            bind_address = self.bind_address
        else:
            bind_address = IPV6_WILDCARD if self.prefer_ipv6 else IPV4_WILDCARD
        return NetworkPreferences(
            prefer_ipv6=self.prefer_ipv6,
            dual_stack=self.dual_stack,
            bind_address=bind_address,
            port=self.port or 0,
        )
