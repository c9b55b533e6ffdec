"""Per-route origin checks and the shared error body shape."""

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from mailgate.access import OriginVerdict

if TYPE_CHECKING:
    from mailgate.server.bridge import ProtocolBridge

logger = logging.getLogger(__name__)


class OriginRejected(Exception):
    """A security-sensitive route refused a request's declared origin."""

    def __init__(self, verdict: OriginVerdict, headers: dict[str, str]):
        super().__init__(verdict.reason or "Origin not allowed")
        self.verdict = verdict
        self.headers = headers


def error_body(error: str, message: str) -> dict[str, str]:
    """The stable shape of every non-RPC error response."""
    return {"error": error, "message": message}


def get_bridge(request: Request) -> "ProtocolBridge":
    return request.app.state.bridge


def origin_guard(
    *, sensitive: bool
) -> Callable[[Request, Response], Awaitable[OriginVerdict | None]]:
    """Build a dependency that checks the request's Origin header.

    Requests without an Origin are not cross-origin and always pass. An
    allowed origin gets CORS headers on the response. A rejected origin is
    a 403 on sensitive routes; elsewhere it is logged and the request goes
    through without CORS headers.
    """

    async def guard(request: Request, response: Response) -> OriginVerdict | None:
        origin = request.headers.get("origin")
        if origin is None:
            return None

        gate = get_bridge(request).gate
        policy = gate.policy
        verdict = gate.evaluate(origin, request.method)
        headers = gate.cors_headers(verdict, policy)

        if verdict.allowed:
            response.headers.update(headers)
            return verdict

        if sensitive:
            logger.warning(
                f"Rejected {request.method} {request.url.path}: {verdict.reason}"
            )
            raise OriginRejected(verdict, headers)

        logger.info(
            f"Origin check failed for {request.method} {request.url.path} "
            f"(allowed anyway): {verdict.reason}"
        )
        return verdict

    return guard


def preflight_response(request: Request) -> Response:
    """Answer an OPTIONS request from the current access policy."""
    result = get_bridge(request).gate.handle_preflight(
        request.headers.get("origin"),
        request.headers.get("access-control-request-method"),
    )
    if result.body is None:
        return Response(status_code=result.status_code, headers=result.headers)
    return JSONResponse(
        status_code=result.status_code, content=result.body, headers=result.headers
    )
