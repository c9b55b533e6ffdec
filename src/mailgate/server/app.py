"""FastAPI application for the network transport."""

from http import HTTPStatus
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mailgate import __version__
from mailgate.server.guard import OriginRejected, error_body
from mailgate.server.routes import health, mcp

if TYPE_CHECKING:
    from mailgate.server.bridge import ProtocolBridge


async def _origin_rejected(request: Request, exc: OriginRejected) -> JSONResponse:
    return JSONResponse(
        status_code=403,
        content=error_body("CORS policy violation", str(exc)),
        headers=exc.headers,
    )


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        message = f"Route {request.method} {request.url.path} not found"
    elif exc.status_code == 405:
        message = f"Method {request.method} not allowed for {request.url.path}"
    else:
        message = str(exc.detail)
    try:
        error = HTTPStatus(exc.status_code).phrase
    except ValueError:
        error = "HTTP Error"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(error, message),
        headers=exc.headers,
    )


def create_app(bridge: "ProtocolBridge") -> FastAPI:
    """Create the FastAPI app served by a bridge."""
    app = FastAPI(
        title="mailgate",
        description="Gmail MCP network transport",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Routes reach the bridge (gate, router, health) through app state
    app.state.bridge = bridge

    app.add_exception_handler(OriginRejected, _origin_rejected)
    app.add_exception_handler(StarletteHTTPException, _http_error)

    app.include_router(health.router, tags=["health"])
    app.include_router(mcp.router, tags=["mcp"])

    return app
