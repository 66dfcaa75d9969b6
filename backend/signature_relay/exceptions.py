"""
Signature Relay - Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for each failure class of the relay.
Why:   Each exception carries its HTTP status, so route handlers never build
       error responses by hand and the remote error body never leaks to clients.
How:   Each exception class carries a user-safe message and an optional
       context dict. Global exception handlers (registered in main.py) turn
       them into `{"error": message}` responses.
Who:   Raised by the relay service, the ServiceM8 client, and the routes.

Exception Hierarchy:
    SignatureRelayError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── PayloadTooLargeError     → 413 Payload Too Large
    ├── MethodNotAllowedError    → 405 Method Not Allowed
    ├── UpstreamError            → status propagated from ServiceM8
    └── UnexpectedError          → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class SignatureRelayError(Exception):
    """
    Base exception for all relay errors.

    Attributes:
        message:     User-facing error description (returned as `error`)
        context:     Additional debug info (logged but NOT returned to client)
        status_code: HTTP status the global handler responds with
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SignatureRelayError):
    """
    Raised when the request body fails validation.

    When:    Missing jobUUID, missing or non-image signature, undecodable base64.
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class PayloadTooLargeError(SignatureRelayError):
    """
    Raised when the decoded signature exceeds the configured size limit.

    Checked after decoding and before any outbound call.
    HTTP:    413 Payload Too Large
    """

    status_code = 413

    def __init__(
        self,
        limit_bytes: int = 1_048_576,
        actual_bytes: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        limit_mb = limit_bytes / (1024 * 1024)
        message = f"Attachment exceeds file size limit ({limit_mb:g}MB)."
        ctx = context or {}
        ctx["limit_bytes"] = limit_bytes
        if actual_bytes is not None:
            ctx["actual_bytes"] = actual_bytes
        super().__init__(message=message, context=ctx)
        self.limit_bytes = limit_bytes
        self.actual_bytes = actual_bytes


class MethodNotAllowedError(SignatureRelayError):
    """
    Built for any method other than POST when the router rejects it with 405
    (OPTIONS is answered by the CORS middleware).

    HTTP:    405 Method Not Allowed
    """

    status_code = 405

    def __init__(
        self,
        method: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if method:
            ctx["method"] = method
        super().__init__(
            message="Method not allowed. Use POST for this endpoint.",
            context=ctx,
        )
        self.method = method


class UpstreamError(SignatureRelayError):
    """
    Raised when ServiceM8 answers one of the attachment calls with a non-2xx status.

    What:    The remote status is propagated to our client; the remote body is
             kept in context for logging only.
    HTTP:    Same status ServiceM8 returned (502 when the failure is ours to name,
             e.g. a create response without an attachment uuid).

    Recovery:
        None. A metadata record created before a failed upload is left in
        ServiceM8; no compensating delete is issued.
    """

    def __init__(
        self,
        message: str = "ServiceM8 request failed.",
        status_code: int = 502,
        upstream_body: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["upstream_status"] = status_code
        if upstream_body is not None:
            ctx["upstream_body"] = upstream_body
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
        self.upstream_body = upstream_body


class UnexpectedError(SignatureRelayError):
    """
    Wraps any exception the relay did not anticipate (parse failure, network error).

    Unlike the other errors, the message of the original exception IS returned
    to the client, prefixed with "Internal server error: ".
    HTTP:    500 Internal Server Error
    """

    status_code = 500

    def __init__(
        self,
        original: BaseException,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["error_type"] = type(original).__name__
        super().__init__(message=f"Internal server error: {original}", context=ctx)
        self.original = original
