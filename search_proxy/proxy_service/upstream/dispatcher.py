"""Builds upstream URLs, injects credentials and fails over across hosts."""

from collections.abc import Mapping

from search_proxy.proxy_service.query_params import QueryParams, delete_params, encode_params, set_param
from search_proxy.proxy_service.upstream.base_transport import UpstreamTransport, UpstreamTransportError
from search_proxy.shared.config import Settings
from search_proxy.shared.logging import get_logger
from search_proxy.shared.models import ErrorDetail, HostAttempt, ProxyResponse, RequestContext

logger = get_logger(__name__)

SEARCH_AGENT = (
    "Algolia for JavaScript (5.8.1); Lite (5.8.1); Browser; autocomplete-core (1.17.4); autocomplete-js (1.17.4)"
)
INSIGHTS_AGENT = "insights-js (2.17.3); insights-js-browser-umd (2.17.3); insights-middleware; insights-plugin"

INSIGHTS_PATH = "/1/events"
INSIGHTS_HOST = "insights.algolia.io"
INSIGHTS_FAILURE_BODY = "Failed to reach Algolia Insights endpoint"

API_KEY_PARAM = "x-algolia-api-key"
APPLICATION_ID_PARAM = "x-algolia-application-id"
AGENT_PARAM = "x-algolia-agent"

# accept-encoding is left to aiohttp so replies only use encodings it can decode
DROPPED_REQUEST_HEADERS = {"host", "content-length", "connection", "transfer-encoding", "accept-encoding"}


def get_hosts(application_id: str) -> tuple[str, ...]:
    """Primary DSN host followed by the three numbered fallbacks, in order."""
    return (
        f"{application_id}-dsn.algolia.net",
        f"{application_id}-1.algolianet.com",
        f"{application_id}-2.algolianet.com",
        f"{application_id}-3.algolianet.com",
    )


def forwardable_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {key: value for key, value in headers.items() if key.lower() not in DROPPED_REQUEST_HEADERS}


class UpstreamDispatcher:
    """Sends validated requests to Algolia search or Insights."""

    def __init__(self, transport: UpstreamTransport, settings: Settings):
        self._transport = transport
        self._application_id = settings.algolia_application_id
        self._api_key = settings.algolia_api_key
        self._hosts = get_hosts(self._application_id)

    @property
    def hosts(self) -> tuple[str, ...]:
        return self._hosts

    def _credential_params(self, context: RequestContext) -> QueryParams:
        params = list(context.query_params)
        params = set_param(params, API_KEY_PARAM, self._api_key)
        params = set_param(params, APPLICATION_ID_PARAM, self._application_id)
        return params

    async def dispatch(
        self,
        context: RequestContext,
        headers: Mapping[str, str],
        body: bytes | None,
    ) -> ProxyResponse:
        """Route to Insights for the events path, otherwise to the search hosts."""
        forwarded = forwardable_headers(headers)
        params = self._credential_params(context)

        if context.path == INSIGHTS_PATH:
            return await self._send_insights(context, params, forwarded, body)

        params = set_param(params, AGENT_PARAM, SEARCH_AGENT)
        return await self._try_hosts(context, encode_params(params), forwarded, body)

    async def _send_insights(
        self,
        context: RequestContext,
        params: QueryParams,
        headers: dict[str, str],
        body: bytes | None,
    ) -> ProxyResponse:
        # The Insights client sends upper-cased duplicates of our parameters.
        canonical = {API_KEY_PARAM, APPLICATION_ID_PARAM, AGENT_PARAM}
        params = set_param(params, AGENT_PARAM, INSIGHTS_AGENT)
        params = delete_params(
            params,
            {key for key, _ in params if key.lower() in canonical and key not in canonical},
        )

        url = f"https://{INSIGHTS_HOST}{INSIGHTS_PATH}?{encode_params(params)}"
        try:
            return await self._transport.send(context.method, url, headers, body)
        except UpstreamTransportError as exc:
            logger.error(f"Insights request failed: {exc}")
            return ProxyResponse(
                status_code=502,
                headers={"Content-Type": "text/plain; charset=utf-8"},
                body=INSIGHTS_FAILURE_BODY.encode(),
            )

    async def _try_hosts(
        self,
        context: RequestContext,
        query: str,
        headers: dict[str, str],
        body: bytes | None,
    ) -> ProxyResponse:
        """Try each host in order; the first 2xx wins and stops the loop."""
        attempts: list[HostAttempt] = []

        for host in self._hosts:
            url = f"https://{host}{context.path}?{query}"
            try:
                response = await self._transport.send(context.method, url, headers, body)
            except UpstreamTransportError as exc:
                logger.warning(f"Host {host} unreachable: {exc}")
                attempts.append(HostAttempt(host=host, error=str(exc)))
                continue

            if response.ok:
                if attempts:
                    logger.info(f"Recovered on {host} after {len(attempts)} failed attempt(s)")
                return response

            logger.warning(f"Host {host} answered {response.status_code}")
            attempts.append(HostAttempt(host=host, status=response.status_code, error=response.text()))

        return self._all_hosts_failed(context, query, headers, body, attempts)

    def _all_hosts_failed(
        self,
        context: RequestContext,
        query: str,
        headers: dict[str, str],
        body: bytes | None,
        attempts: list[HostAttempt],
    ) -> ProxyResponse:
        summary = ", ".join(
            f"{attempt.host} ({attempt.status})" if attempt.status else f"{attempt.host} ({attempt.error})"
            for attempt in attempts
        )
        sample_url = f"https://{self._hosts[0]}{context.path}?{query}" if self._hosts else "unknown"

        detail = ErrorDetail(
            error="All Algolia hosts failed",
            errorType="algolia",
            details=f"Tried {len(attempts)} host(s): {summary}",
            attempts=attempts,
            algolia_url=sample_url,
            algolia_method=context.method,
            algolia_headers=headers,
            algolia_body=body.decode("utf-8", errors="replace") if body else None,
        )
        logger.error(detail.details)

        return ProxyResponse(
            status_code=502,
            headers={"Content-Type": "application/json"},
            body=detail.to_json(),
        )
