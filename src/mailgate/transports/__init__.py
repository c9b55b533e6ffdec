"""Transports and their supervisor.

Public API:
- StdioTransport: newline-delimited JSON-RPC over stdin/stdout
- TransportSupervisor: starts and stops the transports a mode requires
"""

from mailgate.transports.stdio import StdioTransport, open_stdin_reader
from mailgate.transports.supervisor import (
    SupervisorStatus,
    TransportShutdownError,
    TransportState,
    TransportSupervisor,
)

__all__ = [
    "StdioTransport",
    "SupervisorStatus",
    "TransportShutdownError",
    "TransportState",
    "TransportSupervisor",
    "open_stdin_reader",
]
