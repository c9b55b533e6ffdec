"""Tests for health aggregation."""

from datetime import datetime

import pytest

from mailgate.access import AccessGate, AccessPolicy
from mailgate.network import BindOutcome, StackAvailability
from mailgate.server import HealthMonitor
from mailgate.server.health import CORS_SAMPLE_ORIGINS, aggregate_status
from tests.conftest import FakeCredentials


class _BrokenCredentials:
    def credentials_present(self) -> bool:
        raise PermissionError("credentials directory unreadable")

    def oauth_keys_present(self) -> bool:
        return True


@pytest.fixture
def monitor_factory(make_config, tool_table, bound_outcome, dual_stack):
    def _make(
        *,
        outcome: BindOutcome | None = bound_outcome,
        stack: StackAvailability | None = dual_stack,
        credentials=None,
        origins: tuple[str, ...] = ("https://app.example.com",),
        core=tool_table,
    ) -> HealthMonitor:
        return HealthMonitor(
            config=make_config(),
            gate=AccessGate(AccessPolicy(origins=origins)),
            credentials=credentials or FakeCredentials(),
            core=core,
            listener=lambda: outcome,
            stack=lambda: stack,
        )

    return _make


class TestAggregateStatus:
    def test_worst_status_wins(self):
        assert aggregate_status(["healthy", "healthy"]) == "healthy"
        assert aggregate_status(["healthy", "degraded"]) == "degraded"
        assert aggregate_status(["degraded", "unhealthy", "healthy"]) == "unhealthy"
        assert aggregate_status([]) == "healthy"


class TestHealthMonitor:
    def test_everything_healthy(self, monitor_factory):
        report = monitor_factory().report()
        assert report.status == "healthy"
        assert report.http_status == 200
        assert set(report.checks) == {
            "server",
            "dispatch",
            "credentials",
            "network",
            "cors",
        }
        assert isinstance(report.timestamp, datetime)

    def test_unbound_listener_is_unhealthy(self, monitor_factory):
        report = monitor_factory(outcome=None).report()
        assert report.status == "unhealthy"
        assert report.http_status == 503
        assert report.checks["server"].status == "unhealthy"
        assert report.checks["network"].details["currentBinding"] is None

    def test_failed_outcome_is_unhealthy(self, monitor_factory):
        failed = BindOutcome.failed(OSError("in use"), address="::", port=3000)
        report = monitor_factory(outcome=failed).report()
        assert report.checks["server"].status == "unhealthy"

    def test_bound_listener_details(self, monitor_factory):
        details = monitor_factory().report().checks["server"].details
        assert details["port"] == 3000
        assert details["address"] == "0.0.0.0"
        assert details["family"] == "IPv4"
        assert details["mode"] == "network"

    @pytest.mark.parametrize(
        ("credentials", "oauth_keys", "message"),
        [
            (False, True, "OAuth keys available, user credentials missing"),
            (True, False, "User credentials available, OAuth keys missing"),
            (False, False, "Gmail credentials not found"),
        ],
    )
    def test_missing_credentials_degrade(
        self, monitor_factory, credentials, oauth_keys, message
    ):
        report = monitor_factory(
            credentials=FakeCredentials(credentials=credentials, oauth_keys=oauth_keys)
        ).report()
        check = report.checks["credentials"]
        assert check.status == "degraded"
        assert check.message is not None
        assert check.message.startswith(message)
        assert report.status == "degraded"
        assert report.http_status == 200

    def test_no_ip_family_degrades(self, monitor_factory):
        stack = StackAvailability.from_probes(ipv4=False, ipv6=False)
        report = monitor_factory(stack=stack).report()
        assert report.checks["network"].status == "degraded"
        assert report.checks["network"].details["ipv4Available"] is False

    def test_unprobed_stack_degrades(self, monitor_factory):
        report = monitor_factory(stack=None).report()
        assert report.checks["network"].status == "degraded"

    def test_empty_policy_degrades(self, monitor_factory):
        report = monitor_factory(origins=()).report()
        cors = report.checks["cors"]
        assert cors.status == "degraded"
        assert cors.details["configuredOrigins"] == 0
        assert cors.details["testResults"]["tested"] == len(CORS_SAMPLE_ORIGINS)
        assert cors.details["testResults"]["rejected"] == len(CORS_SAMPLE_ORIGINS)

    def test_missing_core_is_unhealthy(self, monitor_factory):
        report = monitor_factory(core=None).report()
        assert report.checks["dispatch"].status == "unhealthy"
        assert report.status == "unhealthy"

    def test_raising_check_is_unhealthy(self, monitor_factory):
        report = monitor_factory(credentials=_BrokenCredentials()).report()
        check = report.checks["credentials"]
        assert check.status == "unhealthy"
        assert "credentials directory unreadable" in (check.message or "")
        assert report.status == "unhealthy"

    def test_report_serializes_to_json(self, monitor_factory):
        data = monitor_factory().report().model_dump(mode="json", exclude_none=True)
        assert data["status"] == "healthy"
        assert isinstance(data["timestamp"], str)
        assert data["checks"]["dispatch"] == {
            "status": "healthy",
            "details": {"available": True, "transport": "http"},
        }
