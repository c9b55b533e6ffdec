"""The dispatch core boundary.

The tool-dispatch core (tool registry and execution) lives outside this
package. Both transports reach it through one call contract:
``handle(method, params)``. ``ToolTable`` is a small in-process core for
running the service standalone and for tests.
"""

import importlib
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from mailgate.rpc.protocol import ErrorCode, RPCError

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]


@runtime_checkable
class DispatchCore(Protocol):
    """Contract of the external tool-dispatch core."""

    def recognizes(self, method: str) -> bool: ...

    async def handle(self, method: str, params: Any) -> Any: ...


class DispatchError(Exception):
    """A JSON-RPC error raised by the dispatch core itself.

    Relayed to the caller unchanged, unlike other exceptions which are
    reported as internal errors.
    """

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_rpc_error(self) -> RPCError:
        return RPCError(code=self.code, message=self.message, data=self.data)


@dataclass
class ToolSpec:
    name: str
    handler: ToolHandler
    description: str = ""
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


def _as_tool_result(result: Any) -> dict[str, Any]:
    """Shape a handler's return value as MCP tool-call content."""
    if isinstance(result, dict) and "content" in result:
        return result
    text = result if isinstance(result, str) else json.dumps(result, indent=2)
    return {"content": [{"type": "text", "text": text}]}


class ToolTable:
    """In-process dispatch core answering ``tools/list`` and ``tools/call``."""

    METHODS = frozenset({"tools/list", "tools/call"})

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def register(
        self,
        name: str,
        handler: ToolHandler,
        *,
        description: str = "",
        input_schema: dict[str, Any] | None = None,
    ) -> None:
        if name in self._tools:
            raise ValueError(f"Tool '{name}' already registered")
        spec = ToolSpec(name=name, handler=handler, description=description)
        if input_schema is not None:
            spec.input_schema = input_schema
        self._tools[name] = spec
        logger.debug(f"Registered tool: {name}")

    @property
    def names(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def recognizes(self, method: str) -> bool:
        return method in self.METHODS

    async def handle(self, method: str, params: Any) -> Any:
        if method == "tools/list":
            return {"tools": [spec.describe() for spec in self._tools.values()]}

        if method == "tools/call":
            if not isinstance(params, dict) or not isinstance(params.get("name"), str):
                raise DispatchError(
                    ErrorCode.INVALID_PARAMS, "tools/call requires a tool name"
                )
            name = params["name"]
            spec = self._tools.get(name)
            if spec is None:
                raise DispatchError(ErrorCode.INVALID_PARAMS, f"Unknown tool: {name}")
            arguments = params.get("arguments") or {}
            return _as_tool_result(await spec.handler(arguments))

        raise DispatchError(ErrorCode.METHOD_NOT_FOUND, f"Method not found: {method}")


def load_dispatch_core(target: str) -> DispatchCore:
    """Import a dispatch core from a ``module.path:attribute`` string.

    The attribute may be a core instance or a zero-argument factory.

    Raises:
        ValueError: If the target string is malformed or the object does not
            implement the dispatch contract.
        ImportError: If the module cannot be imported.
    """
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Dispatch target must look like 'module:attribute': {target}")

    module = importlib.import_module(module_name)
    try:
        obj: Any = getattr(module, attribute)
    except AttributeError as e:
        raise ValueError(
            f"Module '{module_name}' has no attribute '{attribute}'"
        ) from e

    # Classes satisfy the protocol structurally, so instantiate them too
    if isinstance(obj, type) or (not isinstance(obj, DispatchCore) and callable(obj)):
        obj = obj()
    if not isinstance(obj, DispatchCore):
        raise ValueError(f"{target} does not implement recognizes()/handle()")
    return obj
