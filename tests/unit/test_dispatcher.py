import json
from urllib.parse import parse_qsl, urlsplit

import pytest

from conftest import FakeTransport, make_settings
from search_proxy.proxy_service.classifier import classify_request
from search_proxy.proxy_service.upstream.base_transport import UpstreamTransportError
from search_proxy.proxy_service.upstream.dispatcher import (
    INSIGHTS_AGENT,
    SEARCH_AGENT,
    UpstreamDispatcher,
    forwardable_headers,
    get_hosts,
)
from search_proxy.shared.models import ProxyResponse

HOSTS = get_hosts("TESTAPP")
SEARCH = "https://proxy.example.com/1/indexes/*/queries"


def context_for(url=SEARCH, method="POST"):
    return classify_request(method, url, {}, "sentinel")


def failure(status=500, body=b'{"message": "boom"}'):
    return ProxyResponse(status_code=status, body=body)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def dispatcher(transport):
    return UpstreamDispatcher(transport, make_settings())


class TestHosts:
    def test_host_order(self):
        assert HOSTS == (
            "TESTAPP-dsn.algolia.net",
            "TESTAPP-1.algolianet.com",
            "TESTAPP-2.algolianet.com",
            "TESTAPP-3.algolianet.com",
        )

    def test_hop_by_hop_headers_are_dropped(self):
        forwarded = forwardable_headers(
            {"host": "proxy.example.com", "content-length": "10", "content-type": "application/json"}
        )
        assert forwarded == {"content-type": "application/json"}

    @pytest.mark.asyncio
    async def test_browser_accept_encoding_is_not_forwarded(self, dispatcher, transport):
        browser_headers = {
            "accept-encoding": "gzip, deflate, br, zstd",
            "content-type": "application/json",
            "user-agent": "Mozilla/5.0",
        }

        await dispatcher.dispatch(context_for(), browser_headers, b"{}")

        forwarded = transport.calls[0]["headers"]
        assert "accept-encoding" not in {key.lower() for key in forwarded}
        assert forwarded["user-agent"] == "Mozilla/5.0"


class TestSearchFailover:
    @pytest.mark.asyncio
    async def test_first_host_success(self, dispatcher, transport):
        response = await dispatcher.dispatch(context_for(), {}, b"{}")

        assert response.status_code == 200
        assert len(transport.calls) == 1
        assert transport.urls[0].startswith(f"https://{HOSTS[0]}/1/indexes/*/queries?")

    @pytest.mark.asyncio
    async def test_credentials_and_agent_are_injected(self, dispatcher, transport):
        await dispatcher.dispatch(context_for(SEARCH + "?x-algolia-api-key=client-key&page=2"), {}, b"{}")
        params = dict(parse_qsl(urlsplit(transport.urls[0]).query))

        assert params["x-algolia-api-key"] == "test-api-key"
        assert params["x-algolia-application-id"] == "TESTAPP"
        assert params["x-algolia-agent"] == SEARCH_AGENT
        assert params["page"] == "2"

    @pytest.mark.asyncio
    async def test_network_error_then_success_stops(self, dispatcher, transport):
        transport.routes[HOSTS[0]] = UpstreamTransportError("connection reset")
        transport.routes[HOSTS[1]] = ProxyResponse(status_code=200, body=b'{"from": "host2"}')

        response = await dispatcher.dispatch(context_for(), {"content-type": "application/json"}, b"{}")

        assert response.body == b'{"from": "host2"}'
        assert len(transport.calls) == 2
        assert all(HOSTS[2] not in url and HOSTS[3] not in url for url in transport.urls)

    @pytest.mark.asyncio
    async def test_identical_request_on_every_host(self, dispatcher, transport):
        for host in HOSTS[:3]:
            transport.routes[host] = failure()

        await dispatcher.dispatch(context_for(), {"content-type": "application/json"}, b'{"requests": []}')

        assert [call["body"] for call in transport.calls] == [b'{"requests": []}'] * 4
        assert all(call["method"] == "POST" for call in transport.calls)
        assert len({urlsplit(url).query for url in transport.urls}) == 1

    @pytest.mark.asyncio
    async def test_all_hosts_fail(self, dispatcher, transport):
        transport.routes[HOSTS[0]] = UpstreamTransportError("timeout")
        transport.routes[HOSTS[1]] = failure(503, b"unavailable")
        transport.routes[HOSTS[2]] = failure(500)
        transport.routes[HOSTS[3]] = UpstreamTransportError("dns")

        response = await dispatcher.dispatch(context_for(), {"content-type": "application/json"}, b'{"a": 1}')
        data = json.loads(response.body)

        assert response.status_code == 502
        assert data["errorType"] == "algolia"
        assert data["error"] == "All Algolia hosts failed"
        assert [attempt["host"] for attempt in data["attempts"]] == list(HOSTS)
        assert data["attempts"][1] == {"host": HOSTS[1], "status": 503, "ok": False, "error": "unavailable"}
        assert data["attempts"][0]["error"] == "timeout"
        for host in HOSTS:
            assert host in data["details"]
        assert data["details"].startswith("Tried 4 host(s):")
        assert data["algolia_url"].startswith(f"https://{HOSTS[0]}/1/indexes/*/queries?")
        assert data["algolia_method"] == "POST"
        assert data["algolia_headers"] == {"content-type": "application/json"}
        assert data["algolia_body"] == '{"a": 1}'


class TestInsights:
    URL = (
        "https://proxy.example.com/1/events"
        "?X-Algolia-Application-Id=CLIENT&X-Algolia-API-Key=client-key&X-Algolia-Agent=insights-js"
    )

    @pytest.mark.asyncio
    async def test_single_fixed_host_with_lowercase_params(self, dispatcher, transport):
        await dispatcher.dispatch(context_for(self.URL), {}, b'{"events": []}')

        assert len(transport.calls) == 1
        url = transport.urls[0]
        assert url.startswith("https://insights.algolia.io/1/events?")
        params = parse_qsl(urlsplit(url).query)
        assert sorted(key for key, _ in params) == [
            "x-algolia-agent",
            "x-algolia-api-key",
            "x-algolia-application-id",
        ]
        assert dict(params)["x-algolia-agent"] == INSIGHTS_AGENT
        assert dict(params)["x-algolia-api-key"] == "test-api-key"

    @pytest.mark.asyncio
    async def test_transport_failure_is_not_retried(self, dispatcher, transport):
        transport.routes["insights.algolia.io"] = UpstreamTransportError("refused")

        response = await dispatcher.dispatch(context_for(self.URL), {}, b'{"events": []}')

        assert response.status_code == 502
        assert response.text() == "Failed to reach Algolia Insights endpoint"
        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_upstream_error_status_is_returned_as_is(self, dispatcher, transport):
        transport.routes["insights.algolia.io"] = failure(422, b'{"message": "bad event"}')

        response = await dispatcher.dispatch(context_for(self.URL), {}, b'{"events": []}')

        assert response.status_code == 422
        assert len(transport.calls) == 1
