"""Shared pytest fixtures for castle-metadata tests."""

import ipaddress
import socket

import httpx
import pytest
import structlog

from castle_metadata.config import Config

FAKE_DNS = {
    "example.com": ["93.184.216.34"],
    "cdn.example.com": ["93.184.216.34", "2606:2800:220:1:248:1893:25c8:1946"],
    "games.example.org": ["8.8.8.8"],
    "intranet.corp": ["10.0.0.5"],
    "localhost": ["127.0.0.1"],
    "split.example.com": ["8.8.8.8", "192.168.1.10"],
}


async def fake_resolve_host(hostname: str) -> list[str]:
    """Resolve hostnames from a fixed table without touching the network."""
    try:
        ipaddress.ip_address(hostname.strip("[]"))
        return [hostname.strip("[]")]
    except ValueError:
        pass
    if hostname in FAKE_DNS:
        return FAKE_DNS[hostname]
    raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")


class FakeServer:
    """In-memory HTTP server backed by httpx.MockTransport."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, url: str, body: str, content_type: str | None = None, headers: dict | None = None):
        """Serve body at url with the given content-type and extra headers."""
        response_headers = dict(headers or {})
        if content_type is not None:
            response_headers["content-type"] = content_type
        self.routes[url] = (body, response_headers)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url not in self.routes:
            return httpx.Response(404, content=b"not found")
        body, headers = self.routes[url]
        return httpx.Response(200, content=body.encode("utf-8"), headers=headers)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True, scope="session")
def stdlib_logging():
    """Route structlog through stdlib logging so pytest captures it instead of stdout."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def fake_dns():
    """Async hostname resolver backed by a fixed table."""
    return fake_resolve_host


@pytest.fixture
def server():
    """Fake HTTP server recording every request."""
    return FakeServer()


@pytest.fixture
def default_config():
    """Create a default configuration for testing."""
    return Config()
