"""Health aggregation for the HTTP transport."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from mailgate.access import AccessGate
from mailgate.config import TransportConfig
from mailgate.credentials import CredentialStatus
from mailgate.network import BindOutcome, StackAvailability
from mailgate.rpc import DispatchCore

logger = logging.getLogger(__name__)

HealthStatus = Literal["healthy", "degraded", "unhealthy"]

# Origins used to exercise the live policy in the cors check
CORS_SAMPLE_ORIGINS = (
    "http://localhost:3000",
    "http://192.168.1.100:8080",
    "http://10.0.0.1:3000",
    "https://myapp.railway.app",
)


class CheckResult(BaseModel):
    """Outcome of one health check."""

    status: HealthStatus
    message: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class HealthReport(BaseModel):
    """Aggregated health of the service."""

    status: HealthStatus
    timestamp: datetime
    checks: dict[str, CheckResult]

    @property
    def http_status(self) -> int:
        return 503 if self.status == "unhealthy" else 200


def aggregate_status(statuses: list[HealthStatus]) -> HealthStatus:
    """Worst status wins: unhealthy, then degraded, then healthy."""
    if "unhealthy" in statuses:
        return "unhealthy"
    if "degraded" in statuses:
        return "degraded"
    return "healthy"


class HealthMonitor:
    """Combines independent checks into one report.

    Checks: ``server`` (listener bound), ``dispatch`` (core attached),
    ``credentials`` (credential files present), ``network`` (startup probe
    results) and ``cors`` (current policy). A check that raises is reported
    as unhealthy rather than failing the whole report.
    """

    def __init__(
        self,
        *,
        config: TransportConfig,
        gate: AccessGate,
        credentials: CredentialStatus,
        core: DispatchCore | None,
        listener: Callable[[], BindOutcome | None],
        stack: Callable[[], StackAvailability | None],
    ):
        self._config = config
        self._gate = gate
        self._credentials = credentials
        self._core = core
        self._listener = listener
        self._stack = stack
        self._checks: dict[str, Callable[[], CheckResult]] = {
            "server": self.check_server,
            "dispatch": self.check_dispatch,
            "credentials": self.check_credentials,
            "network": self.check_network,
            "cors": self.check_cors,
        }

    def report(self) -> HealthReport:
        checks: dict[str, CheckResult] = {}
        for name, check in self._checks.items():
            try:
                checks[name] = check()
            except Exception as e:
                logger.exception(f"Health check {name} failed")
                checks[name] = CheckResult(
                    status="unhealthy", message=f"{name} check failed: {e}"
                )

        status = aggregate_status([c.status for c in checks.values()])
        if status != "healthy":
            logger.warning(
                f"Health {status}: "
                + ", ".join(f"{n}={c.status}" for n, c in checks.items())
            )
        return HealthReport(status=status, timestamp=datetime.now(UTC), checks=checks)

    def check_server(self) -> CheckResult:
        outcome = self._listener()
        details: dict[str, Any] = {
            "mode": self._config.mode.value,
            "ipv6": self._config.enable_ipv6,
        }
        if outcome is None or not outcome.success:
            details["port"] = self._config.port
            return CheckResult(
                status="unhealthy", message="Listener is not bound", details=details
            )
        details.update(
            port=outcome.port,
            address=outcome.address,
            family=outcome.family.value,
            dualStack=outcome.dual_stack,
        )
        return CheckResult(status="healthy", details=details)

    def check_dispatch(self) -> CheckResult:
        available = self._core is not None
        return CheckResult(
            status="healthy" if available else "unhealthy",
            details={"available": available, "transport": "http"},
        )

    def check_credentials(self) -> CheckResult:
        has_credentials = self._credentials.credentials_present()
        has_oauth_keys = self._credentials.oauth_keys_present()
        details = {"credentials": has_credentials, "oauthKeys": has_oauth_keys}

        if has_credentials and has_oauth_keys:
            return CheckResult(
                status="healthy", message="All credentials available", details=details
            )
        if has_oauth_keys:
            message = "OAuth keys available, user credentials missing"
        elif has_credentials:
            message = "User credentials available, OAuth keys missing"
        else:
            message = "Gmail credentials not found, authentication may be required"
        return CheckResult(status="degraded", message=message, details=details)

    def check_network(self) -> CheckResult:
        stack = self._stack()
        outcome = self._listener()
        details: dict[str, Any] = {
            "currentBinding": (
                {
                    "address": outcome.address,
                    "port": outcome.port,
                    "family": outcome.family.value,
                }
                if outcome is not None and outcome.success
                else None
            )
        }
        if stack is None:
            return CheckResult(
                status="degraded", message="Network stack not probed", details=details
            )
        details.update(stack.to_dict())
        if not stack.ipv4 and not stack.ipv6:
            return CheckResult(
                status="degraded",
                message="No IP family was available at startup",
                details=details,
            )
        return CheckResult(status="healthy", details=details)

    def check_cors(self) -> CheckResult:
        policy = self._gate.policy
        results = self._gate.validate_origins(CORS_SAMPLE_ORIGINS)
        details = policy.summary()
        details["testResults"] = {
            "tested": len(CORS_SAMPLE_ORIGINS),
            "allowed": len(results["allowed"]),
            "rejected": len(results["rejected"]),
        }
        if not policy.origins:
            return CheckResult(
                status="degraded",
                message="No origins allowed; cross-origin requests will be rejected",
                details=details,
            )
        return CheckResult(status="healthy", details=details)
