"""Types for stack probing and socket binding."""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

IPV4_WILDCARD = "0.0.0.0"
IPV6_WILDCARD = "::"
IPV4_LOOPBACK = "127.0.0.1"


class AddressFamily(StrEnum):
    """IP protocol family of a listener."""

    IPV4 = "IPv4"
    IPV6 = "IPv6"

    @property
    def socket_family(self) -> socket.AddressFamily:
        if self is AddressFamily.IPV6:
            return socket.AF_INET6
        return socket.AF_INET


class PreferredStack(StrEnum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"
    DUAL = "dual"


@dataclass(frozen=True, slots=True)
class NetworkPreferences:
    """Desired listener shape, derived once from configuration."""

    prefer_ipv6: bool
    dual_stack: bool
    bind_address: str
    port: int


@dataclass(frozen=True, slots=True)
class StackAvailability:
    """Which IP families the host can bind.

    Computed once at startup. A restart is required to re-probe.
    """

    ipv4: bool
    ipv6: bool
    preferred: PreferredStack

    @classmethod
    def from_probes(cls, ipv4: bool, ipv6: bool) -> StackAvailability:
        if ipv4 and ipv6:
            preferred = PreferredStack.DUAL
        elif ipv6:
            preferred = PreferredStack.IPV6
        else:
            # Also the inert default when neither family works
            preferred = PreferredStack.IPV4
        return cls(ipv4=ipv4, ipv6=ipv6, preferred=preferred)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ipv4Available": self.ipv4,
            "ipv6Available": self.ipv6,
            "preferredStack": self.preferred.value,
        }


@dataclass(frozen=True, slots=True)
class BindCandidate:
    """A single address to attempt, in cascade order."""

    address: str
    family: AddressFamily
    strategy: str

    @property
    def is_ipv6_wildcard(self) -> bool:
        return self.family is AddressFamily.IPV6 and self.address == IPV6_WILDCARD

    def __str__(self) -> str:
        return f"{self.address} ({self.family})"


@dataclass(slots=True)
class BindOutcome:
    """Result of running a bind cascade.

    Produced exactly once per listener. On success the bound, listening
    socket is handed to the HTTP server which owns it from then on.
    """

    success: bool
    address: str
    port: int
    family: AddressFamily
    sock: socket.socket | None = field(default=None, repr=False)
    error: BaseException | None = None
    dual_stack: bool = False

    @classmethod
    def failed(
        cls,
        error: BaseException,
        *,
        address: str = "",
        port: int = 0,
        family: AddressFamily = AddressFamily.IPV4,
    ) -> BindOutcome:
        return cls(
            success=False, address=address, port=port, family=family, error=error
        )

    @property
    def mode(self) -> str:
        if not self.success:
            return "unbound"
        if self.dual_stack:
            return "IPv6 dual-stack"
        return f"{self.family} only"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "address": self.address,
            "port": self.port,
            "family": self.family.value,
            "dualStack": self.dual_stack,
        }
        if self.error is not None:
            data["error"] = str(self.error)
        return data
