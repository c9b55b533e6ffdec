"""Tests for bind recommendations and failure diagnostics."""

from mailgate.network import (
    BindOutcome,
    NetworkPreferences,
    StackAvailability,
    build_bind_error,
    get_network_recommendations,
)

IPV4_ONLY = StackAvailability.from_probes(ipv4=True, ipv6=False)


def _prefs(
    *,
    prefer_ipv6: bool = False,
    dual_stack: bool = False,
    bind_address: str = "0.0.0.0",
) -> NetworkPreferences:
    return NetworkPreferences(
        prefer_ipv6=prefer_ipv6,
        dual_stack=dual_stack,
        bind_address=bind_address,
        port=3000,
    )


class TestRecommendations:
    def test_ipv4_only_host_with_default_preferences(self):
        recommendations = get_network_recommendations(IPV4_ONLY, _prefs())

        assert recommendations == [
            "IPv6 is not available on this system.",
            "IPv6 candidates are skipped, so the server binds IPv4 only.",
        ]

    def test_never_suggests_enable_ipv6(self):
        for prefs in (None, _prefs(), _prefs(prefer_ipv6=True, dual_stack=True)):
            recommendations = get_network_recommendations(IPV4_ONLY, prefs)
            assert not any("ENABLE_IPV6" in r for r in recommendations)

    def test_ipv6_preferences_are_named(self):
        recommendations = get_network_recommendations(
            IPV4_ONLY, _prefs(prefer_ipv6=True, dual_stack=True, bind_address="::")
        )

        assert any("IPV6_PREFER and IPV6_DUAL_STACK" in r for r in recommendations)
        assert recommendations[-1] == (
            "IPv6 candidates are skipped, so the server binds IPv4 only."
        )

    def test_pinned_ipv6_address_is_named(self):
        recommendations = get_network_recommendations(
            IPV4_ONLY, _prefs(bind_address="fd00::10")
        )

        assert recommendations == [
            "IPv6 is not available on this system.",
            "BIND_ADDRESS=fd00::10 pins an IPv6 address. "
            "Unset it or use an IPv4 address.",
        ]

    def test_no_stacks(self):
        stack = StackAvailability.from_probes(ipv4=False, ipv6=False)
        recommendations = get_network_recommendations(stack)
        assert recommendations[0].startswith("No network stacks appear")


class TestBuildBindError:
    def test_message_lists_configuration_and_recommendations(self):
        outcome = BindOutcome.failed(OSError("Address already in use"), port=3000)

        err = build_bind_error(outcome, _prefs(dual_stack=True), IPV4_ONLY)

        message = str(err)
        assert message.startswith("Network binding failed: Address already in use")
        assert "  - Dual-stack: True" in message
        assert "  - IPv6 available: False" in message
        assert "  1. IPv6 is not available on this system." in message
        assert err.outcome is outcome
        assert err.recommendations[1].startswith("IPV6_PREFER and IPV6_DUAL_STACK")
