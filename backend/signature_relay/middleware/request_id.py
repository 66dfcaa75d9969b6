"""
Signature Relay - Request ID Middleware
=========================================

What:  Assigns a short correlation ID to each incoming request and returns it
       in the X-Request-ID response header.
Why:   A relay failure produces log lines in three places (our access log, the
       ServiceM8 client, the exception handler). The ID ties them together.
How:   Reuses a client-provided X-Request-ID when it is a plain token of at
       most 64 characters, otherwise generates one. The ID is stored in a
       ContextVar for loggers and in request.state for handlers.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Echoed into response headers and every log line for the request
ACCEPTED_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,64}")


def resolve_request_id(supplied: Optional[str]) -> str:
    """The client's ID when it is safe to echo and log, else a fresh 8-char one."""
    if supplied and ACCEPTED_REQUEST_ID.fullmatch(supplied):
        return supplied
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Accept the client's X-Request-ID if it passes resolve_request_id()
        2. Otherwise generate an 8-character ID
        3. Store in ContextVar and request.state
        4. Echo it on the response
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get("X-Request-ID"))
        token = request_id_var.set(rid)
        request.state.request_id = rid

        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
