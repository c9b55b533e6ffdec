"""Origin-based access control for the HTTP transport."""

from mailgate.access.gate import AccessGate, OriginVerdict, PreflightResponse
from mailgate.access.matcher import (
    PRIVATE_NETWORK_PATTERN,
    OriginMatcher,
    compile_pattern,
    is_private_network,
    parse_origin,
)
from mailgate.access.policy import (
    DEFAULT_HEADERS,
    DEFAULT_MAX_AGE,
    DEFAULT_METHODS,
    PLATFORM_INTERNAL_PATTERNS,
    PRIVATE_NETWORK_PATTERNS,
    AccessPolicy,
    build_policy,
    merge_origins,
)

__all__ = [
    "DEFAULT_HEADERS",
    "DEFAULT_MAX_AGE",
    "DEFAULT_METHODS",
    "PLATFORM_INTERNAL_PATTERNS",
    "PRIVATE_NETWORK_PATTERN",
    "PRIVATE_NETWORK_PATTERNS",
    "AccessGate",
    "AccessPolicy",
    "OriginMatcher",
    "OriginVerdict",
    "PreflightResponse",
    "build_policy",
    "compile_pattern",
    "is_private_network",
    "merge_origins",
    "parse_origin",
]
