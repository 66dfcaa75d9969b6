"""
Signature Relay - Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models for the relay's inbound contract and the ServiceM8
       attachment metadata it sends outbound.
Why:   One place defines field names on both sides of the relay
       (camelCase for our clients, snake_case for ServiceM8).
How:   The inbound body is normalised into SignatureUploadRequest by
       `from_payload()` rather than by FastAPI body validation, because a bad
       body must produce our own 400 messages instead of FastAPI's 422.
"""

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models - What the client sends
# ══════════════════════════════════════════════════════════════════════════


class SignatureUploadRequest(BaseModel):
    """
    What:  Body of POST /api/signature-upload.
    Who:   Sent by the signature pad widget once the customer has signed.

    Fields are Optional on purpose: presence and format are checked by
    SignatureRelay so that each failure gets its specific message.
    """

    model_config = ConfigDict(populate_by_name=True)

    job_uuid: Optional[str] = Field(
        default=None,
        alias="jobUUID",
        description="ServiceM8 job UUID the signature belongs to",
    )
    signature: Optional[str] = Field(
        default=None,
        description="Signature image as a data URI (data:image/png;base64,...)",
    )

    @classmethod
    def from_payload(cls, payload: Any) -> "SignatureUploadRequest":
        """
        Build a request from an already-decoded JSON body.

        Non-object bodies become an empty request. A number or boolean jobUUID
        is rendered as its JSON literal (42, true); a falsy, object or array
        jobUUID counts as missing. A non-string signature is dropped.
        """
        if not isinstance(payload, dict):
            return cls()

        job_uuid = payload.get("jobUUID")
        if not job_uuid:
            job_uuid = None
        elif isinstance(job_uuid, (bool, int, float)):
            job_uuid = json.dumps(job_uuid)
        elif not isinstance(job_uuid, str):
            job_uuid = None

        signature = payload.get("signature")
        if not isinstance(signature, str):
            signature = None

        return cls(job_uuid=job_uuid, signature=signature)


# ══════════════════════════════════════════════════════════════════════════
# Outbound Models - What we send to ServiceM8
# ══════════════════════════════════════════════════════════════════════════


class AttachmentMetadata(BaseModel):
    """
    What:  Body of POST /Attachment.json.
    How:   Serialised with `by_alias=True` so `mime_type` goes out as `type`.
    """

    model_config = ConfigDict(populate_by_name=True)

    job_uuid: str
    filename: str
    mime_type: str = Field(default="image/png", alias="type")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


# ══════════════════════════════════════════════════════════════════════════
# Response Models - What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class SignatureUploadResponse(BaseModel):
    """Returned with HTTP 200 once both ServiceM8 calls succeeded."""

    success: bool = Field(default=True)
    message: str = Field(
        default="Signature file uploaded to ServiceM8 successfully.",
        description="Human-readable success message",
    )


class ErrorResponse(BaseModel):
    """
    What:  Error body for every non-2xx response.
    Why:   The signature widget only reads `error`; the request ID travels in
           the X-Request-ID header instead of the body.
    """

    error: str = Field(description="Human-readable error description")


class HealthResponse(BaseModel):
    """Returned by GET /health for container probes."""

    status: str = Field(description="Overall service status: healthy, degraded")
    version: str = Field(description="Application version")
    servicem8: str = Field(description="ServiceM8 credentials: configured, missing_api_key")
    uptime_seconds: float = Field(description="Seconds since service started")
