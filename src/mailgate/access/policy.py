"""Access policy records and the default origin pattern sets."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from mailgate.access.matcher import PRIVATE_NETWORK_PATTERN

if TYPE_CHECKING:
    from mailgate.config import TransportConfig

DEFAULT_METHODS: tuple[str, ...] = ("GET", "POST", "OPTIONS")
DEFAULT_HEADERS: tuple[str, ...] = (
    "Content-Type",
    "Authorization",
    "X-Requested-With",
    "Accept",
    "Origin",
)
DEFAULT_MAX_AGE = 86400  # 24 hours


# Loopback and RFC 1918 / unique-local hosts, matched by parsed address
PRIVATE_NETWORK_PATTERNS: tuple[str, ...] = (PRIVATE_NETWORK_PATTERN,)

# Railway public and private networking hostnames
PLATFORM_INTERNAL_PATTERNS: tuple[str, ...] = (
    "https://*.railway.app",
    "https://*.up.railway.app",
    "http://*.railway.internal",
    "https://*.railway.internal",
)


def merge_origins(*groups: Iterable[str]) -> tuple[str, ...]:
    """Concatenate pattern groups, dropping duplicates but keeping order."""
    return tuple(dict.fromkeys(origin for group in groups for origin in group))


@dataclass(frozen=True, slots=True)
class AccessPolicy:
    """Complete cross-origin policy.

    Instances are immutable. The gate swaps whole policies, so a request
    always sees one policy in full.
    """

    origins: tuple[str, ...] = ()
    methods: tuple[str, ...] = DEFAULT_METHODS
    allowed_headers: tuple[str, ...] = DEFAULT_HEADERS
    credentials: bool = False
    max_age: int | None = DEFAULT_MAX_AGE

    def __post_init__(self) -> None:
        object.__setattr__(self, "origins", merge_origins(self.origins))

    def with_origins(self, origins: Iterable[str]) -> AccessPolicy:
        """Return a copy of this policy with a different origin list."""
        return replace(self, origins=tuple(origins))

    def summary(self, sample_size: int = 5) -> dict[str, Any]:
        return {
            "configuredOrigins": len(self.origins),
            "samplePatterns": list(self.origins[:sample_size]),
            "allowedMethods": list(self.methods),
            "allowedHeaders": len(self.allowed_headers),
            "credentials": self.credentials,
            "maxAge": self.max_age,
        }


def build_policy(config: TransportConfig) -> AccessPolicy:
    """Build the startup policy: configured origins first, then generated ones."""
    generated: list[str] = []
    if config.allow_private_network_access:
        generated.extend(PRIVATE_NETWORK_PATTERNS)
    if config.allow_platform_internal_access:
        generated.extend(PLATFORM_INTERNAL_PATTERNS)
    return AccessPolicy(
        origins=merge_origins(config.allowed_origins, generated),
    )
