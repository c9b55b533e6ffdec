"""JSON-RPC 2.0 envelope types.

Envelopes are validated once, at the parse boundary. Everything past
``parse_envelope`` can rely on a string ``method`` being present.
"""

import json
import math
from dataclasses import dataclass, field
from typing import Any

RequestId = int | float | str | None


# JSON-RPC 2.0 error codes
class ErrorCode:
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class EnvelopeError(Exception):
    """The request body is not a usable JSON-RPC envelope."""

    def __init__(self, message: str, code: int = ErrorCode.INVALID_REQUEST):
        super().__init__(message)
        self.code = code


@dataclass
class RPCRequest:
    """JSON-RPC 2.0 request.

    ``notification`` is set when the envelope carried no ``id`` at all; the
    id itself is then normalized to None.
    """

    method: str
    params: dict[str, Any] | list[Any] | None = None
    id: RequestId = None
    jsonrpc: str = "2.0"
    notification: bool = field(default=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "id": self.id,
        }
        if self.params is not None:
            data["params"] = self.params
        return data


@dataclass
class RPCError:
    """JSON-RPC 2.0 error."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            d["data"] = self.data
        return d


@dataclass
class RPCResponse:
    """JSON-RPC 2.0 response."""

    id: RequestId
    result: Any = None
    error: RPCError | None = None
    jsonrpc: str = "2.0"

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            d["error"] = self.error.to_dict()
        else:
            d["result"] = self.result
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def success(cls, id: RequestId, result: Any) -> "RPCResponse":
        return cls(id=id, result=result)

    @classmethod
    def error_response(
        cls, id: RequestId, code: int, message: str, data: Any = None
    ) -> "RPCResponse":
        return cls(id=id, error=RPCError(code=code, message=message, data=data))


def _valid_id(value: Any) -> bool:
    # NaN and Infinity cannot be echoed back as JSON
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int | str)


def parse_envelope(payload: Any) -> RPCRequest:
    """Validate a decoded JSON value as a request envelope.

    Raises:
        EnvelopeError: If the payload is not an object, or ``method`` is
            missing or not a non-empty string, or ``params``/``id`` have the
            wrong type.
    """
    if not isinstance(payload, dict):
        raise EnvelopeError("Invalid MCP request format: expected a JSON object")

    method = payload.get("method")
    if not method:
        raise EnvelopeError("Invalid MCP request format: missing method")
    if not isinstance(method, str):
        raise EnvelopeError("Invalid MCP request format: method must be a string")

    params = payload.get("params")
    if params is not None and not isinstance(params, dict | list):
        raise EnvelopeError("Invalid MCP request format: params must be structured")

    request_id = payload.get("id")
    if request_id is not None and not _valid_id(request_id):
        raise EnvelopeError("Invalid MCP request format: id must be a string or number")

    return RPCRequest(
        method=method,
        params=params,
        id=request_id,
        jsonrpc=str(payload.get("jsonrpc", "2.0")),
        notification="id" not in payload,
    )


def decode_envelope(data: bytes | str) -> RPCRequest:
    """Decode raw JSON and validate it as an envelope.

    Raises:
        EnvelopeError: With PARSE_ERROR for invalid JSON, INVALID_REQUEST for
            a malformed envelope.
    """
    try:
        payload = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise EnvelopeError(f"Parse error: {e}", ErrorCode.PARSE_ERROR) from e
    return parse_envelope(payload)
