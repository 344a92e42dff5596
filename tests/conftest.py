"""Shared fixtures for the search proxy tests."""

import pytest
from starlette.testclient import TestClient

from search_proxy.proxy_service.cache import InMemoryResponseCache
from search_proxy.proxy_service.server import create_app
from search_proxy.proxy_service.upstream.base_transport import UpstreamTransport
from search_proxy.shared.config import Settings
from search_proxy.shared.models import ProxyResponse

SSR_TOKEN = "test-ssr-sentinel"
SEARCH_URL = "https://proxy.example.com/1/indexes/*/queries"


class FakeTransport(UpstreamTransport):
    """Scripted upstream: host -> response, exception, or list of them."""

    def __init__(self, default: ProxyResponse | None = None):
        self.default = default or ProxyResponse(
            status_code=200,
            headers={"Content-Type": "application/json"},
            body=b'{"hits": []}',
        )
        self.routes: dict[str, ProxyResponse | Exception] = {}
        self.calls: list[dict] = []
        self.closed = False

    async def send(self, method, url, headers, body=None):
        self.calls.append({"method": method, "url": url, "headers": headers, "body": body})
        for host, outcome in self.routes.items():
            if f"://{host}/" in url:
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        return self.default

    async def close(self):
        self.closed = True

    @property
    def urls(self) -> list[str]:
        return [call["url"] for call in self.calls]


class RecordingCache(InMemoryResponseCache):
    """In-memory cache that records every match/put call."""

    def __init__(self):
        super().__init__()
        self.matched: list[str] = []
        self.stored: list[tuple[str, ProxyResponse]] = []

    async def match(self, key):
        self.matched.append(key)
        return await super().match(key)

    async def put(self, key, response):
        self.stored.append((key, response))
        await super().put(key, response)


def make_settings(**overrides) -> Settings:
    values = {
        "algolia_application_id": "TESTAPP",
        "algolia_api_key": "test-api-key",
        "cache_ttl_ssr": 600,
        "cache_ttl_client": 60,
        "ssr_sentinel": SSR_TOKEN,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def cache():
    return RecordingCache()


@pytest.fixture
def client(settings, transport, cache):
    app = create_app(settings=settings, transport=transport, cache=cache)
    with TestClient(app, base_url="https://proxy.example.com") as test_client:
        yield test_client


@pytest.fixture
def make_client(transport, cache):
    """Build a client for custom settings."""
    clients = []

    def _make(**overrides):
        app = create_app(settings=make_settings(**overrides), transport=transport, cache=cache)
        test_client = TestClient(app, base_url="https://proxy.example.com")
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)
