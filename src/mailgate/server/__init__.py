"""HTTP transport: listener lifecycle, FastAPI app, health.

Public API:
- ProtocolBridge: binds the listener and serves the app on it
- create_app: builds the FastAPI app for a bridge
- HealthMonitor, HealthReport: health aggregation
"""

from mailgate.server.app import create_app
from mailgate.server.bridge import BridgeState, ProtocolBridge
from mailgate.server.guard import OriginRejected, origin_guard
from mailgate.server.health import CheckResult, HealthMonitor, HealthReport

__all__ = [
    "BridgeState",
    "CheckResult",
    "HealthMonitor",
    "HealthReport",
    "OriginRejected",
    "ProtocolBridge",
    "create_app",
    "origin_guard",
]
