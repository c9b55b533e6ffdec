"""Origin pattern matching and private-network classification."""

import ipaddress
import re
from collections.abc import Iterable
from functools import lru_cache
from urllib.parse import SplitResult, urlsplit

ALLOWED_SCHEMES = frozenset({"http", "https"})

# Range pattern: matches any origin whose host is loopback or a private address
PRIVATE_NETWORK_PATTERN = "private-network"

PRIVATE_IPV4_NETWORKS = (
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
)
IPV4_LOOPBACK = ipaddress.IPv4Address("127.0.0.1")
IPV6_LOOPBACK = ipaddress.IPv6Address("::1")
IPV6_UNIQUE_LOCAL = ipaddress.IPv6Network("fc00::/7")


def parse_origin(origin: str | None) -> SplitResult | None:
    """Parse an Origin header value, or return None if it is malformed.

    A well-formed origin is ``scheme://host[:port]`` with an http(s) scheme,
    no credentials, and no path, query or fragment. Browsers send the
    literal ``null`` for opaque origins; that is treated as malformed.
    """
    if not origin or origin == "null":
        return None
    try:
        parts = urlsplit(origin)
        # Accessing .port validates it
        _ = parts.port
    except ValueError:
        return None
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.hostname:
        return None
    if parts.username is not None or parts.password is not None:
        return None
    if parts.path not in ("", "/") or parts.query or parts.fragment:
        return None
    return parts


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a wildcard pattern; ``*`` matches any run of characters."""
    body = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.compile(body, re.IGNORECASE)


def is_private_network(origin: str | None) -> bool:
    """Whether an origin's host is loopback or in a private address range.

    True for 10.0.0.0/8, 172.16.0.0/12, 192.168.0.0/16, ``localhost``,
    ``127.0.0.1``, ``::1`` and IPv6 unique-local addresses (fc00::/7).
    Malformed origins are never private.
    """
    parts = parse_origin(origin)
    if parts is None:
        return False

    host = parts.hostname or ""
    if host == "localhost":
        return True

    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False

    if isinstance(ip, ipaddress.IPv4Address):
        return ip == IPV4_LOOPBACK or any(ip in net for net in PRIVATE_IPV4_NETWORKS)
    return ip == IPV6_LOOPBACK or ip in IPV6_UNIQUE_LOCAL


class OriginMatcher:
    """Evaluates origins against allow-list patterns.

    Three pattern forms are supported: exact string equality, wildcard
    patterns where ``*`` matches any run of characters, and the
    ``private-network`` range. Wildcards are case-insensitive and anchored
    at both ends, so ``https://*.example.com`` matches
    ``https://a.example.com`` but not ``https://example.com``. The range
    matches by parsed host address, never by text, so ``http://10.evil.com``
    is not private.
    """

    def matches(self, origin: str | None, pattern: str) -> bool:
        if parse_origin(origin) is None:
            return False
        if pattern == PRIVATE_NETWORK_PATTERN:
            return is_private_network(origin)
        if origin == pattern:
            return True
        if "*" in pattern:
            return compile_pattern(pattern).fullmatch(origin or "") is not None
        return False

    def matches_any(self, origin: str | None, patterns: Iterable[str]) -> bool:
        return any(self.matches(origin, pattern) for pattern in patterns)

    def is_private_network(self, origin: str | None) -> bool:
        return is_private_network(origin)
