"""
Signature Relay - ServiceM8 Client Tests (Mock Transport)
===========================================================

What:  Checks the exact requests ServiceM8Client sends and how it translates
       ServiceM8's answers.
How:   httpx.MockTransport routes every call into FakeServiceM8 (conftest),
       which records the request and answers from a script.
"""

import json
import logging

import httpx
import pytest

from conftest import ATTACHMENT_UUID, TEST_API_KEY
from signature_relay.exceptions import UpstreamError
from signature_relay.schemas.signature import AttachmentMetadata

METADATA = AttachmentMetadata(job_uuid="J1", filename="signature-J1.png", mime_type="image/png")


class TestCreateAttachment:

    @pytest.mark.asyncio
    async def test_request_shape(self, servicem8_client, fake_servicem8):
        await servicem8_client.create_attachment(METADATA)

        [request] = fake_servicem8.requests
        assert request.method == "POST"
        assert str(request.url) == "https://servicem8.test/api_1.0/Attachment.json"
        assert request.headers["X-Api-Key"] == TEST_API_KEY
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Accept"] == "application/json"
        assert json.loads(request.content) == {
            "job_uuid": "J1",
            "filename": "signature-J1.png",
            "type": "image/png",
        }

    @pytest.mark.asyncio
    async def test_returns_uuid_from_body(self, servicem8_client):
        assert await servicem8_client.create_attachment(METADATA) == ATTACHMENT_UUID

    @pytest.mark.asyncio
    async def test_falls_back_to_record_uuid_header(self, servicem8_client, fake_servicem8):
        fake_servicem8.respond_metadata(
            200,
            json={"errorCode": 0, "message": "OK"},
            headers={"x-record-uuid": "from-header-uuid"},
        )
        assert await servicem8_client.create_attachment(METADATA) == "from-header-uuid"

    @pytest.mark.asyncio
    async def test_missing_uuid_is_bad_gateway(self, servicem8_client, fake_servicem8):
        fake_servicem8.respond_metadata(200, text="")

        with pytest.raises(UpstreamError) as exc_info:
            await servicem8_client.create_attachment(METADATA)

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Failed to create attachment metadata in ServiceM8."

    @pytest.mark.asyncio
    async def test_non_success_keeps_remote_status(self, servicem8_client, fake_servicem8, caplog):
        fake_servicem8.respond_metadata(503, text="upstream maintenance window")

        with caplog.at_level(logging.ERROR, logger="signature_relay.services.servicem8_client"):
            with pytest.raises(UpstreamError) as exc_info:
                await servicem8_client.create_attachment(METADATA)

        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "Failed to create attachment metadata in ServiceM8."
        assert exc_info.value.upstream_body == "upstream maintenance window"
        assert "upstream maintenance window" in caplog.text


class TestUploadAttachmentFile:

    @pytest.mark.asyncio
    async def test_request_shape(self, servicem8_client, fake_servicem8, signature_bytes):
        await servicem8_client.upload_attachment_file(
            attachment_uuid=ATTACHMENT_UUID,
            filename="signature-J1.png",
            content=signature_bytes,
        )

        [request] = fake_servicem8.requests
        assert request.method == "POST"
        assert str(request.url) == f"https://servicem8.test/api_1.0/Attachment/{ATTACHMENT_UUID}.file"
        assert request.headers["X-Api-Key"] == TEST_API_KEY
        assert request.headers["Content-Type"].startswith("multipart/form-data; boundary=")

        body = request.content
        assert b'name="file"; filename="signature-J1.png"' in body
        assert b"Content-Type: image/png" in body
        assert signature_bytes in body

    @pytest.mark.asyncio
    async def test_non_success_keeps_remote_status(self, servicem8_client, fake_servicem8, signature_bytes):
        fake_servicem8.respond_upload(400, json={"errorCode": 400, "message": "Bad file"})

        with pytest.raises(UpstreamError) as exc_info:
            await servicem8_client.upload_attachment_file(ATTACHMENT_UUID, "signature-J1.png", signature_bytes)

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Failed to upload the signature file to ServiceM8."
        assert "Bad file" in exc_info.value.upstream_body


class TestClientLifecycle:

    @pytest.mark.asyncio
    async def test_base_url_trailing_slash_ignored(self, fake_servicem8):
        from signature_relay.services.servicem8_client import ServiceM8Client

        client = ServiceM8Client(
            api_key="k",
            base_url="https://servicem8.test/api_1.0/",
            transport=httpx.MockTransport(fake_servicem8.handler),
        )
        await client.create_attachment(METADATA)
        await client.aclose()

        assert fake_servicem8.requests[0].url.path == "/api_1.0/Attachment.json"
