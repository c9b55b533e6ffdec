"""Diagnostics for network binding decisions and failures."""

import logging

from mailgate.network.types import (
    IPV6_WILDCARD,
    BindOutcome,
    NetworkPreferences,
    StackAvailability,
)

logger = logging.getLogger(__name__)


class BindError(Exception):
    """The whole bind cascade was exhausted.

    Fatal to transport startup; never retried by the listener itself.
    """

    def __init__(
        self,
        message: str,
        outcome: BindOutcome,
        recommendations: list[str] | None = None,
    ):
        super().__init__(message)
        self.outcome = outcome
        self.recommendations = recommendations or []


def get_network_recommendations(
    stack: StackAvailability, prefs: NetworkPreferences | None = None
) -> list[str]:
    """Suggest configuration changes based on what the host supports.

    When preferences are given, only settings that would change the bind
    plan are suggested.
    """
    if not stack.ipv4 and not stack.ipv6:
        return [
            "No network stacks appear to be available. "
            "Check system network configuration.",
            "Ensure the application has permission to bind to network interfaces.",
        ]
    if not stack.ipv6:
        recommendations = ["IPv6 is not available on this system."]
        bind_address = prefs.bind_address if prefs is not None else IPV6_WILDCARD
        if bind_address != IPV6_WILDCARD and ":" in bind_address:
            recommendations.append(
                f"BIND_ADDRESS={bind_address} pins an IPv6 address. "
                "Unset it or use an IPv4 address."
            )
            return recommendations
        if prefs is not None and (prefs.prefer_ipv6 or prefs.dual_stack):
            recommendations.append(
                "IPV6_PREFER and IPV6_DUAL_STACK are ignored on this host. "
                "Set them to false to match."
            )
        recommendations.append(
            "IPv6 candidates are skipped, so the server binds IPv4 only."
        )
        return recommendations
    if not stack.ipv4:
        return [
            "IPv4 is not available on this system.",
            "The server will use IPv6-only mode.",
            "Ensure clients can connect via IPv6.",
        ]
    return [
        "Both IPv4 and IPv6 are available.",
        "Consider enabling dual-stack mode for maximum compatibility.",
    ]


def build_bind_error(
    outcome: BindOutcome,
    prefs: NetworkPreferences,
    stack: StackAvailability,
) -> BindError:
    """Wrap an exhausted cascade in an error with detailed diagnostics."""
    recommendations = get_network_recommendations(stack, prefs)
    cause = outcome.error or OSError("Unknown network binding error")

    lines = [
        f"Network binding failed: {cause}",
        "",
        "Configuration:",
        f"  - Preferred IPv6: {prefs.prefer_ipv6}",
        f"  - Dual-stack: {prefs.dual_stack}",
        f"  - Bind address: {prefs.bind_address}",
        f"  - Port: {prefs.port}",
        "",
        "System capabilities:",
        f"  - IPv4 available: {stack.ipv4}",
        f"  - IPv6 available: {stack.ipv6}",
        f"  - Preferred stack: {stack.preferred}",
        "",
        "Recommendations:",
    ]
    lines.extend(f"  {i}. {rec}" for i, rec in enumerate(recommendations, 1))

    return BindError("\n".join(lines), outcome, recommendations)


def log_network_configuration(
    outcome: BindOutcome,
    prefs: NetworkPreferences,
    stack: StackAvailability,
) -> None:
    """Log a summary of what was requested, available, and achieved."""
    logger.info(
        f"Requested: prefer_ipv6={prefs.prefer_ipv6} dual_stack={prefs.dual_stack} "
        f"bind_address={prefs.bind_address} port={prefs.port}"
    )
    logger.info(
        f"Capabilities: ipv4={stack.ipv4} ipv6={stack.ipv6} "
        f"preferred={stack.preferred}"
    )
    if outcome.success:
        logger.info(
            f"Listening on {outcome.address}:{outcome.port}, "
            f"network mode: {outcome.mode}"
        )
    else:
        logger.error(f"Binding failed: {outcome.error}")
