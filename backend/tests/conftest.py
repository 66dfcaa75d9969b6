"""
Signature Relay - Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides a fake ServiceM8, explicit test settings and an in-process
       HTTP client, so no test touches the network or real credentials.

Fixture Hierarchy:
    ├── test_settings: Settings with a fake API key and a fake base URL
    ├── fake_servicem8: Scriptable stand-in for the ServiceM8 attachment API
    ├── servicem8_client: ServiceM8Client wired to fake_servicem8 via MockTransport
    ├── signature_bytes / signature_data_uri: 100-byte payload and its data URI
    └── test_client: HTTPX AsyncClient talking to a fresh app via ASGITransport
"""

import base64
import os
from typing import Any, Dict, List, Optional

# Set before any signature_relay import so the module-level settings/app
# never pick up real credentials from the environment
os.environ["SERVICEM8_API_KEY"] = "test-key-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from signature_relay.config import Settings
from signature_relay.main import create_app
from signature_relay.services.servicem8_client import ServiceM8Client

TEST_API_KEY = "test-key-not-real"
TEST_BASE_URL = "https://servicem8.test/api_1.0"
ATTACHMENT_UUID = "a1b2c3d4-0000-4000-8000-00000000beef"


def make_data_uri(content: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


class FakeServiceM8:
    """
    Records every outbound request and answers from scripted responses.

    Responses are rebuilt per call from stored kwargs so a scripted answer
    can be served more than once.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._metadata: Dict[str, Any] = {"status_code": 200, "json": {"uuid": ATTACHMENT_UUID}}
        self._upload: Dict[str, Any] = {"status_code": 200, "json": {"errorCode": 0, "message": "OK"}}
        self.raise_on_metadata: Optional[Exception] = None

    def respond_metadata(self, status_code: int, **kwargs) -> None:
        self._metadata = {"status_code": status_code, **kwargs}

    def respond_upload(self, status_code: int, **kwargs) -> None:
        self._upload = {"status_code": status_code, **kwargs}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/Attachment.json"):
            if self.raise_on_metadata is not None:
                raise self.raise_on_metadata
            return httpx.Response(**self._metadata)
        if path.endswith(".file"):
            return httpx.Response(**self._upload)
        return httpx.Response(404, text=f"unexpected path {path}")

    @property
    def metadata_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/Attachment.json")]

    @property
    def upload_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(".file")]


@pytest.fixture
def test_settings():
    """Explicit settings with substitute credentials."""
    return Settings(
        servicem8_api_key=TEST_API_KEY,
        servicem8_base_url=TEST_BASE_URL,
        log_level="WARNING",
    )


@pytest.fixture
def fake_servicem8():
    return FakeServiceM8()


@pytest.fixture
def servicem8_client(test_settings, fake_servicem8):
    """ServiceM8Client whose transport is the fake API (no network)."""
    return ServiceM8Client.from_settings(
        test_settings,
        transport=httpx.MockTransport(fake_servicem8.handler),
    )


@pytest.fixture
def signature_bytes():
    """100 bytes of fake PNG content."""
    return b"\x89PNG\r\n\x1a\n" + bytes(range(92))


@pytest.fixture
def signature_data_uri(signature_bytes):
    return make_data_uri(signature_bytes)


@pytest_asyncio.fixture
async def test_client(test_settings, servicem8_client):
    """
    HTTPX AsyncClient routed directly into a freshly built app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    app = create_app(settings=test_settings, servicem8_client=servicem8_client)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await servicem8_client.aclose()
