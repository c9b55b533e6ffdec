"""Selection of the ordered bind cascade."""

import ipaddress
import logging

from mailgate.network.types import (
    IPV4_LOOPBACK,
    IPV4_WILDCARD,
    IPV6_WILDCARD,
    AddressFamily,
    BindCandidate,
    NetworkPreferences,
    StackAvailability,
)

logger = logging.getLogger(__name__)

WILDCARD_ADDRESSES = frozenset({IPV4_WILDCARD, IPV6_WILDCARD})


def _pinned_candidate(bind_address: str) -> BindCandidate | None:
    """Return a candidate for an explicit, non-wildcard IP address."""
    if bind_address in WILDCARD_ADDRESSES:
        return None
    try:
        ip = ipaddress.ip_address(bind_address.strip("[]"))
    except ValueError:
        return None
    family = AddressFamily.IPV6 if ip.version == 6 else AddressFamily.IPV4
    return BindCandidate(address=str(ip), family=family, strategy="pinned")


class BindingPlanner:
    """Turns preferences and stack availability into bind candidates.

    The table is evaluated top to bottom and the first matching row wins:

    1. dual-stack requested, IPv6 available: ``::`` then ``0.0.0.0`` then
       ``127.0.0.1``
    2. IPv6 preferred and available: ``::``
    3. only IPv6 available: ``::``
    4. IPv4 available: ``0.0.0.0``
    5. otherwise: ``::``, which will most likely fail and make startup fail
       loudly instead of silently not listening

    An explicit, non-wildcard bind address pins the plan to that address.
    """

    def plan(
        self, prefs: NetworkPreferences, avail: StackAvailability
    ) -> list[BindCandidate]:
        if pinned := _pinned_candidate(prefs.bind_address):
            candidates = [pinned]
        elif prefs.dual_stack and avail.ipv6:
            candidates = [
                BindCandidate(IPV6_WILDCARD, AddressFamily.IPV6, "ipv6-dual"),
                BindCandidate(IPV4_WILDCARD, AddressFamily.IPV4, "ipv4-only"),
                BindCandidate(IPV4_LOOPBACK, AddressFamily.IPV4, "localhost"),
            ]
        elif prefs.prefer_ipv6 and avail.ipv6:
            candidates = [BindCandidate(IPV6_WILDCARD, AddressFamily.IPV6, "ipv6-only")]
        elif avail.ipv6 and not avail.ipv4:
            candidates = [BindCandidate(IPV6_WILDCARD, AddressFamily.IPV6, "ipv6-only")]
        elif avail.ipv4:
            candidates = [BindCandidate(IPV4_WILDCARD, AddressFamily.IPV4, "ipv4-only")]
        else:
            candidates = [BindCandidate(IPV6_WILDCARD, AddressFamily.IPV6, "ipv6-only")]

        logger.info(
            f"Selected binding strategy: {candidates[0].strategy} "
            f"({', '.join(str(c) for c in candidates)})"
        )
        return candidates
