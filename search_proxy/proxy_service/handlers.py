import time

from starlette.requests import Request
from starlette.responses import Response

from search_proxy.proxy_service.background import BackgroundJobs
from search_proxy.proxy_service.cache import ResponseCacheGate, build_cache_key, resolve_cache_token
from search_proxy.proxy_service.classifier import classify_request
from search_proxy.proxy_service.cors import apply_cors_headers, preflight_response, resolve_origin
from search_proxy.proxy_service.request_log import log_request, log_validation_failure
from search_proxy.proxy_service.upstream.dispatcher import UpstreamDispatcher
from search_proxy.proxy_service.validation import encode_body, error_response, parse_request_body
from search_proxy.shared.config import Settings
from search_proxy.shared.logging import get_logger
from search_proxy.shared.models import ProxyResponse, RequestContext

logger = get_logger(__name__)

PROXIED_METHODS = ("GET", "POST")


class SearchProxyHandler:
    """
    Runs the full request lifecycle: preflight, validation, cache lookup,
    upstream dispatch, cache store, logging and CORS stamping.
    """

    def __init__(self, settings: Settings, dispatcher: UpstreamDispatcher, cache_gate: ResponseCacheGate):
        self.__settings = settings
        self.__dispatcher = dispatcher
        self.__cache_gate = cache_gate

    def _get_context(self, request: Request) -> RequestContext:
        """Use the context from middleware, classifying here if it is missing."""
        context = getattr(request.state, "context", None)
        if context is None:
            context = classify_request(
                request.method,
                str(request.url),
                request.headers,
                self.__settings.ssr_sentinel,
            )
        return context

    async def handle(self, request: Request) -> Response:
        """Public entry point used by Starlette router."""
        started = time.monotonic()
        context = self._get_context(request)
        headers = dict(request.headers)
        decision = resolve_origin(context.origin, context.is_ssr_request, self.__settings.canonical_origin)

        if context.method == "OPTIONS":
            return self._build_http_response(preflight_response(decision))

        if context.method not in PROXIED_METHODS:
            logger.info(f"Rejecting unsupported method {context.method} on {context.path}")
            rejection = ProxyResponse(
                status_code=405,
                headers={"Allow": "GET, POST, OPTIONS", "Content-Type": "text/plain; charset=utf-8"},
                body=b"Method not allowed",
            )
            return self._build_http_response(apply_cors_headers(rejection, decision))

        jobs = BackgroundJobs()
        try:
            response = await self._process(request, context, headers, jobs, started)
        except Exception as exc:
            logger.exception(f"Request to {context.path} failed due to unexpected error: {exc}")
            response = ProxyResponse(
                status_code=502,
                headers={"Content-Type": "text/plain; charset=utf-8"},
                body=b"Proxy error",
            )

        return self._build_http_response(apply_cors_headers(response, decision), jobs)

    async def _process(
        self,
        request: Request,
        context: RequestContext,
        headers: dict[str, str],
        jobs: BackgroundJobs,
        started: float,
    ) -> ProxyResponse:
        environment = self.__settings.environment
        body: bytes | None = None

        if context.method == "POST":
            outcome = parse_request_body(await request.body())
            if not outcome.accepted:
                rejection = error_response(outcome)
                jobs.add(log_validation_failure, context, headers, rejection, environment)
                return rejection
            body = encode_body(outcome.body)

        cache_key = build_cache_key(context, resolve_cache_token(context, headers))
        use_cache = self.__cache_gate.applies_to(context, cache_key)

        response = await self.__cache_gate.lookup(cache_key) if use_cache else None
        cache_hit = response is not None

        if response is None:
            response = await self.__dispatcher.dispatch(context, headers, body)
            if use_cache and response.ok:
                jobs.add(self.__cache_gate.store, cache_key, self.__cache_gate.prepare_entry(response, context))

        duration_ms = int((time.monotonic() - started) * 1000)
        jobs.add(
            log_request,
            context,
            headers,
            response,
            duration_ms,
            cache_hit,
            body.decode("utf-8") if body else None,
            environment,
        )

        return response

    def _build_http_response(self, response: ProxyResponse, jobs: BackgroundJobs | None = None) -> Response:
        """
        Translate ProxyResponse → Starlette Response.
        """
        return Response(
            content=response.body,
            status_code=response.status_code,
            headers=response.headers,
            background=jobs.tasks if jobs else None,
        )
