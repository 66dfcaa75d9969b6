"""
Signature Relay - Relay Service (Business Logic Orchestrator)
===============================================================

What:  Validates a signature upload request, decodes the data URI, and runs
       the two ServiceM8 calls in order.
Why:   Keeps the route handler thin and lets the whole workflow be tested
       without HTTP on our side.
Who:   Called by the POST /api/signature-upload route.

Orchestration Flow:
    ┌──────────┐    ┌─────────────┐    ┌──────────────────┐    ┌──────────────┐
    │ Request  │───▶│  Validate   │───▶│ Create metadata  │───▶│ Upload file  │
    │ (Route)  │    │  & Decode   │    │ (Attachment.json)│    │ ({uuid}.file)│
    └──────────┘    └─────────────┘    └──────────────────┘    └──────────────┘

    Validation order (first failure wins):
        1. jobUUID present               → ValidationError (400)
        2. signature is a data:image URI → ValidationError (400)
        3. decoded size within limit     → PayloadTooLargeError (413)

    A validation failure never reaches ServiceM8. An upstream failure stops
    the sequence; a record created by step 1 is left in place if step 2 fails.
"""

import base64
import binascii
import logging
import re

from signature_relay.config import Settings
from signature_relay.exceptions import PayloadTooLargeError, ValidationError
from signature_relay.schemas.signature import (
    AttachmentMetadata,
    SignatureUploadRequest,
    SignatureUploadResponse,
)
from signature_relay.services.servicem8_client import ServiceM8Client

logger = logging.getLogger(__name__)

SIGNATURE_MIME_TYPE = "image/png"
DATA_URI_MARKER = "data:image"

# Strips "data:image/png;base64," style prefixes; anything else is left as-is
DATA_URI_PREFIX = re.compile(r"^data:image/\w+;base64,")
NON_BASE64_CHARS = re.compile(r"[^A-Za-z0-9+/]")
# base64url alphabet ("-", "_") decodes as "+", "/"
URL_SAFE_TO_STANDARD = str.maketrans("-_", "+/")


def build_filename(job_uuid: str) -> str:
    """Deterministic attachment filename for a job."""
    return f"signature-{job_uuid}.png"


def decode_signature(data_uri: str) -> bytes:
    """
    Strip the data URI prefix and base64-decode the remainder.

    URL-safe characters are mapped onto the standard alphabet. Anything else
    outside it (padding included) is discarded and padding is recomputed, so
    only a payload whose length cannot be base64 (4n + 1 characters) raises.

    Raises:
        ValidationError: payload cannot be decoded as base64.
    """
    payload = DATA_URI_PREFIX.sub("", data_uri, count=1)
    payload = NON_BASE64_CHARS.sub("", payload.translate(URL_SAFE_TO_STANDARD))
    payload += "=" * (-len(payload) % 4)
    try:
        return base64.b64decode(payload)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(
            message="Signature payload is not valid base64.",
            field="signature",
            context={"decode_error": str(e)},
        )


class SignatureRelay:
    """
    Relays one signature to ServiceM8 per call to `relay()`.

    Stateless apart from its collaborators: the immutable Settings and the
    shared ServiceM8Client. Safe to share across concurrent requests.
    """

    def __init__(self, settings: Settings, client: ServiceM8Client):
        self.settings = settings
        self.client = client

    def validate(self, request: SignatureUploadRequest) -> bytes:
        """
        Run the validation chain and return the decoded signature bytes.

        Raises:
            ValidationError: missing jobUUID, bad signature, undecodable base64
            PayloadTooLargeError: decoded bytes exceed max_signature_bytes
        """
        if not request.job_uuid:
            raise ValidationError(
                message="Missing 'jobUUID' in request body.",
                field="jobUUID",
            )

        if not request.signature or not request.signature.startswith(DATA_URI_MARKER):
            raise ValidationError(
                message="Invalid or missing 'signature' in base64 image format.",
                field="signature",
            )

        content = decode_signature(request.signature)

        if len(content) > self.settings.max_signature_bytes:
            raise PayloadTooLargeError(
                limit_bytes=self.settings.max_signature_bytes,
                actual_bytes=len(content),
                context={"job_uuid": request.job_uuid},
            )

        return content

    async def relay(self, request: SignatureUploadRequest) -> SignatureUploadResponse:
        """
        Validate, then create the attachment record and upload its binary.

        Raises:
            ValidationError / PayloadTooLargeError: before any outbound call
            UpstreamError: ServiceM8 rejected one of the two calls
            httpx.HTTPError: network failure (wrapped by the route)
        """
        content = self.validate(request)
        filename = build_filename(request.job_uuid)

        logger.info(
            "Relaying signature for job %s: %s (%d bytes)",
            request.job_uuid,
            filename,
            len(content),
        )

        metadata = AttachmentMetadata(
            job_uuid=request.job_uuid,
            filename=filename,
            mime_type=SIGNATURE_MIME_TYPE,
        )
        attachment_uuid = await self.client.create_attachment(metadata)

        await self.client.upload_attachment_file(
            attachment_uuid=attachment_uuid,
            filename=filename,
            content=content,
            mime_type=SIGNATURE_MIME_TYPE,
        )

        return SignatureUploadResponse()
