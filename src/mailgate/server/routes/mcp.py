"""JSON-RPC over HTTP."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response

from mailgate.access import OriginVerdict
from mailgate.rpc import EnvelopeError, ErrorCode, decode_envelope
from mailgate.server.guard import (
    error_body,
    get_bridge,
    origin_guard,
    preflight_response,
)

router = APIRouter()
logger = logging.getLogger(__name__)

McpGuard = Annotated[OriginVerdict | None, Depends(origin_guard(sensitive=True))]


@router.post("/mcp")
async def mcp_request(
    request: Request, response: Response, _verdict: McpGuard
) -> dict[str, Any]:
    """Route one JSON-RPC envelope through the shared router."""
    body = await request.body()
    try:
        rpc_request = decode_envelope(body)
    except EnvelopeError as e:
        logger.warning(f"Rejected MCP request body: {e}")
        response.status_code = 400
        if e.code == ErrorCode.PARSE_ERROR:
            return error_body("Invalid JSON in request body", str(e))
        return error_body("Invalid MCP request format", str(e))

    logger.debug(f"MCP request: {rpc_request.method} (id={rpc_request.id})")
    rpc_response = await get_bridge(request).router.route(rpc_request)
    return rpc_response.to_dict()


@router.options("/mcp")
async def mcp_preflight(request: Request) -> Response:
    return preflight_response(request)
