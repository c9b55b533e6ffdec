"""Method routing shared by every transport."""

import logging
from collections.abc import Callable
from typing import Any

from mailgate import __version__
from mailgate.rpc.dispatch import DispatchCore, DispatchError
from mailgate.rpc.protocol import ErrorCode, RPCRequest, RPCResponse

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "mcp-server-gmail"

LocalHandler = Callable[[Any], Any]


class RPCRouter:
    """Routes parsed requests to local handlers or the dispatch core.

    ``initialize`` and ``ping`` are protocol handshakes answered here. Any
    method the core recognizes is forwarded verbatim and its result, or its
    DispatchError, is relayed unchanged. Anything else the core raises is
    reported as -32603 with the original message as auxiliary data.
    """

    def __init__(
        self,
        core: DispatchCore,
        *,
        server_name: str = SERVER_NAME,
        server_version: str = __version__,
    ):
        self._core = core
        self._server_name = server_name
        self._server_version = server_version
        self._local: dict[str, LocalHandler] = {
            "initialize": self._initialize,
            "ping": self._ping,
        }

    @property
    def core(self) -> DispatchCore:
        return self._core

    def _initialize(self, _params: Any) -> dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {
                "name": self._server_name,
                "version": self._server_version,
            },
        }

    def _ping(self, _params: Any) -> dict[str, Any]:
        return {}

    async def route(self, request: RPCRequest) -> RPCResponse:
        local = self._local.get(request.method)
        if local is not None:
            return RPCResponse.success(request.id, local(request.params))

        try:
            if not self._core.recognizes(request.method):
                return RPCResponse.error_response(
                    request.id,
                    ErrorCode.METHOD_NOT_FOUND,
                    f"Method not found: {request.method}",
                )
            result = await self._core.handle(request.method, request.params)
        except DispatchError as e:
            logger.info(f"{request.method} returned error {e.code}: {e.message}")
            return RPCResponse(id=request.id, error=e.to_rpc_error())
        except Exception as e:
            logger.exception(f"Dispatch failed for {request.method}")
            return RPCResponse.error_response(
                request.id, ErrorCode.INTERNAL_ERROR, "Internal error", data=str(e)
            )

        logger.debug(f"{request.method} dispatched")
        return RPCResponse.success(request.id, result)
