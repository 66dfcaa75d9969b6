"""
Signature Relay - Signature Upload Route Handler
==================================================

What:  Handles /api/signature-upload, the relay's only business endpoint.
Why:   Entry point for the signature widget once a customer has signed a job.
How:   Parses the JSON body, delegates to SignatureRelay, returns its result.

Request Flow:
    1. OPTIONS never reaches this module (answered by RelayCORSMiddleware)
    2. Non-POST methods never reach the handler: the router raises 405 and
       the global HTTPException handler answers with MethodNotAllowedError
    3. POST body parsed as JSON and normalised into SignatureUploadRequest
    4. SignatureRelay validates, creates the attachment, uploads the binary
    5. Return 200 with SignatureUploadResponse

Error responses (handled by global exception handlers):
    HTTP 400: ValidationError
    HTTP 413: PayloadTooLargeError
    HTTP 4xx/5xx: UpstreamError (ServiceM8's own status)
    HTTP 500: UnexpectedError (anything else, message included)
"""

import logging

from fastapi import APIRouter, Depends, Request

from signature_relay.exceptions import SignatureRelayError, UnexpectedError
from signature_relay.schemas.signature import (
    ErrorResponse,
    SignatureUploadRequest,
    SignatureUploadResponse,
)
from signature_relay.services.signature_relay import SignatureRelay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Signature"])

SIGNATURE_UPLOAD_PATH = "/signature-upload"


def get_signature_relay(request: Request) -> SignatureRelay:
    """Dependency: the SignatureRelay built by create_app()."""
    return request.app.state.signature_relay


@router.post(
    SIGNATURE_UPLOAD_PATH,
    response_model=SignatureUploadResponse,
    responses={
        200: {"description": "Signature uploaded to ServiceM8", "model": SignatureUploadResponse},
        400: {"description": "Missing jobUUID or invalid signature", "model": ErrorResponse},
        413: {"description": "Decoded signature exceeds the size limit", "model": ErrorResponse},
        500: {"description": "Unexpected server error", "model": ErrorResponse},
    },
    summary="Relay a signature to a ServiceM8 job",
    description=(
        "Accepts `{jobUUID, signature}` where `signature` is a base64 image data URI, "
        "creates a ServiceM8 attachment on the job, and uploads the image to it. "
        "ServiceM8 failures are returned with ServiceM8's status code."
    ),
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {
                    "schema": SignatureUploadRequest.model_json_schema(by_alias=True),
                },
            },
        },
    },
)
async def upload_signature(
    request: Request,
    relay: SignatureRelay = Depends(get_signature_relay),
) -> SignatureUploadResponse:
    """
    Relay one signature to ServiceM8.

    The body is read manually instead of through a Pydantic body parameter:
    FastAPI would answer a missing field with 422, the contract requires 400
    with a field-specific message.
    """
    try:
        payload = await request.json()
        upload = SignatureUploadRequest.from_payload(payload)
        return await relay.relay(upload)

    except SignatureRelayError:
        # Already carries its status; the global handlers format it
        raise
    except Exception as e:
        logger.error("Server error while relaying signature: %s", str(e), exc_info=True)
        raise UnexpectedError(e)

