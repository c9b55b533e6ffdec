"""Stack probing, bind planning, and socket binding.

Public API:
- StackProber: detects which IP families the host can bind
- BindingPlanner: orders bind candidates from preferences and availability
- SocketBinder: runs the cascade and returns a BindOutcome
- BindError: raised by callers when the whole cascade failed
"""

from mailgate.network.binder import SocketBinder, dual_stack_capable, is_dual_stack
from mailgate.network.diagnostics import (
    BindError,
    build_bind_error,
    get_network_recommendations,
    log_network_configuration,
)
from mailgate.network.planner import BindingPlanner
from mailgate.network.probe import StackProber
from mailgate.network.types import (
    IPV4_LOOPBACK,
    IPV4_WILDCARD,
    IPV6_WILDCARD,
    AddressFamily,
    BindCandidate,
    BindOutcome,
    NetworkPreferences,
    PreferredStack,
    StackAvailability,
)

__all__ = [
    "IPV4_LOOPBACK",
    "IPV4_WILDCARD",
    "IPV6_WILDCARD",
    "AddressFamily",
    "BindCandidate",
    "BindError",
    "BindOutcome",
    "BindingPlanner",
    "NetworkPreferences",
    "PreferredStack",
    "SocketBinder",
    "StackAvailability",
    "StackProber",
    "build_bind_error",
    "dual_stack_capable",
    "get_network_recommendations",
    "is_dual_stack",
    "log_network_configuration",
]
