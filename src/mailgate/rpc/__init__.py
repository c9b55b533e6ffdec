"""JSON-RPC framing and routing to the tool-dispatch core.

Public API:
- RPCRouter: shared by the stdio and HTTP transports
- DispatchCore: contract of the external core; ToolTable is an in-process one
- RPCRequest, RPCResponse, RPCError, ErrorCode: JSON-RPC 2.0 message types
- parse_envelope, decode_envelope: validation at the parse boundary
"""

from mailgate.rpc.dispatch import (
    DispatchCore,
    DispatchError,
    ToolTable,
    load_dispatch_core,
)
from mailgate.rpc.protocol import (
    EnvelopeError,
    ErrorCode,
    RPCError,
    RPCRequest,
    RPCResponse,
    decode_envelope,
    parse_envelope,
)
from mailgate.rpc.router import PROTOCOL_VERSION, RPCRouter

__all__ = [
    "PROTOCOL_VERSION",
    "DispatchCore",
    "DispatchError",
    "EnvelopeError",
    "ErrorCode",
    "RPCError",
    "RPCRequest",
    "RPCResponse",
    "RPCRouter",
    "ToolTable",
    "decode_envelope",
    "load_dispatch_core",
    "parse_envelope",
]
