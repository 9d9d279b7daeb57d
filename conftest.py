# Ensure tests import the service package from this directory first.
import os
import sys
from typing import Dict, Iterable, Optional

import httpx
import pytest
from starlette.requests import Request

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from cors_proxy.config import ProxyConfig  # noqa: E402
from cors_proxy.config.proxy_config import CONFIG_KEYS  # noqa: E402

TEST_TARGET_ENDPOINT = "https://up.test/v1/endpoint"
TEST_ORIGIN = "https://app.test"


class ChunkStream(httpx.AsyncByteStream):
    """Upstream body that yields fixed chunks and remembers being closed."""

    def __init__(self, chunks: Iterable[bytes]):
        self.chunks = list(chunks)
        self.closed = False
        self.consumed = False

    async def __aiter__(self):
        self.consumed = True
        for chunk in self.chunks:
            yield chunk

    async def aclose(self):
        self.closed = True


def build_request(
    method: str = "GET",
    path: str = "/api/users",
    query: str = "",
    headers: Optional[Dict[str, str]] = None,
    body: bytes = b"",
    raw_path: Optional[bytes] = None,
) -> Request:
    raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    ]
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "https",
        "path": path,
        "raw_path": path.encode("utf-8") if raw_path is None else raw_path,
        "root_path": "",
        "query_string": query.encode("latin-1"),
        "headers": raw_headers,
        "server": ("proxy.test", 443),
        "client": ("192.168.1.100", 50000),
    }
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return Request(scope, receive)


def upstream_response(
    status_code: int = 200,
    headers=None,
    chunks: Iterable[bytes] = (b"upstream body",),
    reason_phrase: Optional[str] = None,
) -> httpx.Response:
    extensions = {}
    if reason_phrase is not None:
        extensions["reason_phrase"] = reason_phrase.encode("ascii")
    return httpx.Response(
        status_code,
        headers=headers,
        stream=ChunkStream(chunks),
        extensions=extensions,
    )


@pytest.fixture
def make_request():
    """Build real Starlette requests from a handful of fields."""
    return build_request


@pytest.fixture
def make_upstream_response():
    return upstream_response


@pytest.fixture
def proxy_config():
    return ProxyConfig(
        target_endpoint=TEST_TARGET_ENDPOINT,
        allowed_origins=frozenset({TEST_ORIGIN}),
        allowed_paths=("/api/*", "/auth/*/callback", "/exact/path"),
    )


@pytest.fixture
def proxy_env(monkeypatch):
    """Point the process environment at a valid proxy configuration."""
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("TARGET_ENDPOINT", TEST_TARGET_ENDPOINT)
    monkeypatch.setenv("ALLOWED_ORIGINS", f'["{TEST_ORIGIN}"]')
    monkeypatch.setenv("ALLOWED_PATHS", '["/api/*"]')
    return monkeypatch
