"""
Signature Relay - FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes settings injection, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app(settings, servicem8_client) returns a
       configured FastAPI instance.
Who:   Called by uvicorn (uvicorn signature_relay.main:app) and by tests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────┐ ┌─────────────────────┐  │
    │  │  Req ID  │→│ Logging  │→│ CORS (OPTIONS → 200)│  │
    │  └──────────┘ └──────────┘ └─────────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌───────────────────────────┐ ┌─────────────────┐  │
    │  │ POST /api/signature-upload│ │ GET /health     │  │
    │  └───────────────────────────┘ └─────────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Validation→400 │ TooLarge→413 │ Method→405   │   │
    │  │ Upstream→remote status │ Unexpected→500      │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check
    Shutdown: close the ServiceM8 connection pool
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from signature_relay import __version__
from signature_relay.config import Settings, settings as default_settings
from signature_relay.exceptions import (
    MethodNotAllowedError,
    PayloadTooLargeError,
    SignatureRelayError,
    UnexpectedError,
    UpstreamError,
    ValidationError,
)
from signature_relay.middleware.cors import RelayCORSMiddleware
from signature_relay.middleware.logging import RequestLoggingMiddleware
from signature_relay.middleware.request_id import RequestIDMiddleware, request_id_var
from signature_relay.routes import health, signature
from signature_relay.services.servicem8_client import ServiceM8Client
from signature_relay.services.signature_relay import SignatureRelay

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once from the lifespan, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # These log every request/connection at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: configure logging and report missing credentials.
    Shutdown: close the shared ServiceM8 httpx client.
    """
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Signature Relay starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: /health reports the problem and each relay call surfaces
        # ServiceM8's 401 to the client
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    logger.info("ServiceM8 API: %s", settings.servicem8_base_url)
    logger.info(
        "Signature size limit: %d bytes (%.1fMB)",
        settings.max_signature_bytes,
        settings.max_signature_megabytes,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Signature Relay shutting down...")
    await app.state.servicem8_client.aclose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(exc: SignatureRelayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map relay exceptions to `{"error": message}` responses.

    Handler hierarchy:
        ValidationError       → 400
        PayloadTooLargeError  → 413
        HTTPException         → its status (router 405 → MethodNotAllowedError body)
        UpstreamError         → ServiceM8's status (remote body logged, not returned)
        UnexpectedError       → 500 with the original exception message
        SignatureRelayError   → its status_code (catch-all for custom)
        Exception (fallback)  → 500 with the exception message
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return _error_response(exc)

    @app.exception_handler(PayloadTooLargeError)
    async def handle_payload_too_large(request: Request, exc: PayloadTooLargeError):
        rid = request_id_var.get("")
        logger.warning(
            "[%s] Signature too large: %s bytes (limit %d)",
            rid,
            exc.actual_bytes,
            exc.limit_bytes,
        )
        return _error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        """
        Router-level errors (unknown path, method not routed) in the relay's
        `{"error": ...}` shape. Every non-POST method on the relay path ends up
        here as a 405.
        """
        if exc.status_code == 405:
            response = _error_response(MethodNotAllowedError(method=request.method))
            if exc.headers:
                response.headers.update(exc.headers)
            return response
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=exc.headers,
        )

    @app.exception_handler(UpstreamError)
    async def handle_upstream_error(request: Request, exc: UpstreamError):
        """ServiceM8 rejected a call - propagate its status, keep its body in the logs."""
        rid = request_id_var.get("")
        logger.error("[%s] ServiceM8 error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(exc)

    @app.exception_handler(UnexpectedError)
    async def handle_wrapped_unexpected_error(request: Request, exc: UnexpectedError):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, exc.message)
        return _error_response(exc)

    @app.exception_handler(SignatureRelayError)
    async def handle_relay_error(request: Request, exc: SignatureRelayError):
        rid = request_id_var.get("")
        logger.error("[%s] Relay error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Backstop for exceptions raised outside the signature route.

        Starlette runs this handler outside the user middleware stack, so
        these responses carry no CORS or request-ID headers; the signature
        route wraps its own failures in UnexpectedError to avoid that.
        """
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": f"Internal server error: {exc}"},
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    servicem8_client: Optional[ServiceM8Client] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Explicit configuration. Defaults to the environment-loaded
            `signature_relay.config.settings`.
        servicem8_client: Substitute ServiceM8 client (tests pass one backed by
            httpx.MockTransport). Built from settings when omitted.
    """
    settings = settings or default_settings
    servicem8_client = servicem8_client or ServiceM8Client.from_settings(settings)

    app = FastAPI(
        title="Signature Relay API",
        description=(
            "Relays customer signatures captured as base64 data URIs to ServiceM8 "
            "as job attachments."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.servicem8_client = servicem8_client
    app.state.signature_relay = SignatureRelay(settings=settings, client=servicem8_client)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute: RequestID → Logging → CORS
    app.add_middleware(RelayCORSMiddleware, allow_origin=settings.cors_allow_origin)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(signature.router)
    app.include_router(health.router)

    return app


# uvicorn expects `signature_relay.main:app` to be importable
app = create_app()
