"""
Signature Relay - CORS Middleware
===================================

What:  Stamps a fixed set of CORS headers on every response and answers every
       OPTIONS request with an empty 200.
Why:   The signature widget runs on arbitrary customer pages and some embeds
       send OPTIONS without a full preflight. Starlette's CORSMiddleware
       negotiates per request: it adds nothing when there is no Origin header,
       passes bare OPTIONS through to routing, and answers preflights for
       unlisted methods with 400. The relay's contract is unconditional, so
       the headers here are static.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

ALLOWED_METHODS = "POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Accept"


class RelayCORSMiddleware(BaseHTTPMiddleware):
    """
    Args:
        allow_origin: value of Access-Control-Allow-Origin (settings.cors_allow_origin)
    """

    def __init__(self, app: ASGIApp, allow_origin: str = "*"):
        super().__init__(app)
        self.cors_headers = {
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        }

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=self.cors_headers)

        response = await call_next(request)
        response.headers.update(self.cors_headers)
        return response
