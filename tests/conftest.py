"""
Pytest configuration for the proxy tests.

Outbound requests never leave the process: every test builds an httpx client on top of
``httpx.MockTransport`` serving canned upstream responses.
"""

from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest

from hls_proxy.configs import Settings
from hls_proxy.utils.http_utils import ContentFetcher

Upstream = Dict[str, Union[httpx.Response, Tuple[int, str], Tuple[int, str, dict], Callable]]


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request and answers from a URL -> response table."""

    def __init__(self, upstream: Upstream):
        self.upstream = upstream
        self.requests: List[httpx.Request] = []
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        entry = self.upstream.get(str(request.url))
        if entry is None:
            return httpx.Response(404, text="not found")
        if callable(entry):
            return entry(request)
        if isinstance(entry, httpx.Response):
            return entry
        status, body, *rest = entry
        headers = rest[0] if rest else {}
        return httpx.Response(status, text=body, headers=headers)

    @property
    def urls(self) -> List[str]:
        return [str(r.url) for r in self.requests]


@pytest.fixture
def make_transport() -> Callable[[Upstream], RecordingTransport]:
    return RecordingTransport


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        debug=True,
        cache_ttl=600,
        max_recursion=5,
        user_agents_json='["agent-one", "agent-two"]',
    )


@pytest.fixture
def make_fetcher(test_settings):
    """
    Factory fixture that returns a ContentFetcher bound to a RecordingTransport.

    Usage:
        async def test_something(make_fetcher):
            fetcher, transport = make_fetcher({"https://cdn.example.com/a.m3u8": (200, "#EXTM3U")})
    """

    def _make(upstream: Upstream):
        transport = RecordingTransport(upstream)
        client = httpx.AsyncClient(transport=transport, follow_redirects=True)
        return ContentFetcher(client, test_settings.user_agents, test_settings.default_accept_language), transport

    return _make


@pytest.fixture
def proxy_client(test_settings):
    """
    TestClient for the FastAPI app with settings and the outbound transport overridden.

    Yields the client and the RecordingTransport; fill ``transport.upstream`` to serve responses.
    """
    from fastapi.testclient import TestClient

    from hls_proxy.main import app
    from hls_proxy.routes.proxy import get_http_client, get_settings

    transport = RecordingTransport({})

    async def override_http_client():
        async with httpx.AsyncClient(transport=transport, follow_redirects=True) as client:
            yield client

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_http_client] = override_http_client
    with TestClient(app) as client:
        yield client, transport
    app.dependency_overrides.clear()
