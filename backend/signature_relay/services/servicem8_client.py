"""
Signature Relay - ServiceM8 Attachment Client
===============================================

What:  Thin async client for the two ServiceM8 attachment endpoints we use.
Why:   Keeps URL layout, auth headers, and remote error translation out of
       the relay orchestration.
How:   One shared httpx.AsyncClient (connection pool) with the API key set as
       a default header. Non-2xx answers become UpstreamError carrying the
       remote status; the remote body is logged here and never returned.
Who:   Created by create_app(); called by SignatureRelay for each request.

Endpoints:
    POST /Attachment.json          → create the attachment record (JSON)
    POST /Attachment/{uuid}.file   → upload the binary (multipart, part "file")

Resilience:
    None on purpose: no retry, no backoff. A failed call fails the request.
"""

import logging
from typing import Optional

import httpx

from signature_relay.config import Settings
from signature_relay.exceptions import UpstreamError
from signature_relay.schemas.signature import AttachmentMetadata

logger = logging.getLogger(__name__)

METADATA_ERROR_MESSAGE = "Failed to create attachment metadata in ServiceM8."
UPLOAD_ERROR_MESSAGE = "Failed to upload the signature file to ServiceM8."

# ServiceM8 echoes the UUID of a newly created record in this header
RECORD_UUID_HEADER = "x-record-uuid"


class ServiceM8Client:
    """
    Async client for ServiceM8 attachment creation.

    The underlying httpx client is created eagerly so the object is usable
    without the app lifespan (e.g. under httpx.ASGITransport in tests).
    Call `aclose()` on shutdown.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.servicem8.com/api_1.0",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"X-Api-Key": api_key},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ServiceM8Client":
        return cls(
            api_key=settings.servicem8_api_key,
            base_url=settings.servicem8_base_url,
            timeout=settings.servicem8_timeout,
            transport=transport,
        )

    async def create_attachment(self, metadata: AttachmentMetadata) -> str:
        """
        Register attachment metadata and return the new attachment UUID.

        Raises:
            UpstreamError: ServiceM8 answered non-2xx (its status is kept), or
                the answer carried no attachment UUID (502).
        """
        response = await self._client.post(
            "/Attachment.json",
            json=metadata.to_payload(),
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

        if not response.is_success:
            logger.error(
                "Error creating attachment metadata (HTTP %d): %s",
                response.status_code,
                response.text,
            )
            raise UpstreamError(
                message=METADATA_ERROR_MESSAGE,
                status_code=response.status_code,
                upstream_body=response.text,
                context={"step": "create_attachment", "job_uuid": metadata.job_uuid},
            )

        attachment_uuid = self._extract_attachment_uuid(response)
        if not attachment_uuid:
            logger.error(
                "Attachment metadata created for job %s but no uuid was returned: %s",
                metadata.job_uuid,
                response.text,
            )
            raise UpstreamError(
                message=METADATA_ERROR_MESSAGE,
                status_code=502,
                upstream_body=response.text,
                context={"step": "create_attachment", "job_uuid": metadata.job_uuid},
            )

        logger.info(
            "Attachment %s created for job %s (%s)",
            attachment_uuid,
            metadata.job_uuid,
            metadata.filename,
        )
        return attachment_uuid

    async def upload_attachment_file(
        self,
        attachment_uuid: str,
        filename: str,
        content: bytes,
        mime_type: str = "image/png",
    ) -> None:
        """
        Upload the binary for an existing attachment as multipart part "file".

        httpx sets the multipart Content-Type (with boundary) itself.
        """
        response = await self._client.post(
            f"/Attachment/{attachment_uuid}.file",
            files={"file": (filename, content, mime_type)},
        )

        if not response.is_success:
            logger.error(
                "Error uploading file binary for attachment %s (HTTP %d): %s",
                attachment_uuid,
                response.status_code,
                response.text,
            )
            raise UpstreamError(
                message=UPLOAD_ERROR_MESSAGE,
                status_code=response.status_code,
                upstream_body=response.text,
                context={"step": "upload_attachment_file", "attachment_uuid": attachment_uuid},
            )

        logger.info(
            "Uploaded %d bytes to attachment %s",
            len(content),
            attachment_uuid,
        )

    @staticmethod
    def _extract_attachment_uuid(response: httpx.Response) -> Optional[str]:
        """Prefer the `uuid` field of the JSON body, fall back to x-record-uuid."""
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("uuid"):
            return str(body["uuid"])
        return response.headers.get(RECORD_UUID_HEADER) or None

    async def aclose(self) -> None:
        """Close pooled connections. Called from the app lifespan on shutdown."""
        await self._client.aclose()
