"""
Signature Relay - Health Check Route
======================================

What:  Health check endpoint for container probes and load balancers.
How:   Reports whether ServiceM8 credentials are configured. It makes no
       outbound call: probing ServiceM8 every few seconds would spend the
       account's API quota.

    Status levels:
    - healthy:   API key configured
    - degraded:  API key missing (every relay call would fail with 401)
"""

import time

from fastapi import APIRouter, Request

from signature_relay import __version__
from signature_relay.schemas.signature import HealthResponse

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    settings = request.app.state.settings

    if settings.has_api_key:
        servicem8_status = "configured"
        overall = "healthy"
    else:
        servicem8_status = "missing_api_key"
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        servicem8=servicem8_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
