"""Health check routes."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response

from mailgate.access import OriginVerdict
from mailgate.server.guard import get_bridge, origin_guard, preflight_response

router = APIRouter()

# Health degrades gracefully: a bad origin is logged, not refused
HealthGuard = Annotated[OriginVerdict | None, Depends(origin_guard(sensitive=False))]


@router.api_route("/health", methods=["GET", "POST"])
async def health_check(
    request: Request, response: Response, _verdict: HealthGuard
) -> dict[str, Any]:
    """Aggregate health of the listener, core, credentials, network and CORS.

    Returns:
        The health report; 503 when any check is unhealthy.
    """
    report = get_bridge(request).health()
    response.status_code = report.http_status
    return report.model_dump(mode="json", exclude_none=True)


@router.options("/health")
async def health_preflight(request: Request) -> Response:
    return preflight_response(request)
