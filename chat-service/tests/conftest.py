"""Shared fixtures: a recording upstream stub and a test client wired to it."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from main import app

API_KEY = "sk-test-key"
BOUNDARY = "relaytestboundary"


class UpstreamStub:
    """Deterministic stand-in for the provider that records every request."""

    def __init__(self, status_code=200, body=None, text=None, content=None, error=None):
        self.status_code = status_code
        self.body = body
        self.text = text
        self.content = content
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]


def encode_multipart(fields=None, files=None, boundary=BOUNDARY):
    """Build a multipart body by hand so that file-less forms stay multipart."""
    chunks = []
    for name, value in (fields or {}).items():
        chunks.append(
            (
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
                f"{value}\r\n"
            ).encode()
        )
    for name, (filename, data, mime) in (files or {}).items():
        chunks.append(
            (
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
                f"Content-Type: {mime}\r\n\r\n"
            ).encode()
            + data
            + b"\r\n"
        )
    chunks.append(f"--{boundary}--\r\n".encode())
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", API_KEY)
    return API_KEY


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "")


@pytest.fixture
def make_client():
    """Return a factory building a TestClient whose upstream is the given stub."""

    def factory(stub: UpstreamStub) -> TestClient:
        app.state.upstream_transport = stub.transport
        return TestClient(app)

    yield factory
    app.state.upstream_transport = None


@pytest.fixture
def multipart():
    return encode_multipart


@pytest.fixture
def upstream():
    """The stub class, so tests can build one per scenario."""
    return UpstreamStub
