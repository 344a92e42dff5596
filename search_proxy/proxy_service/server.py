"""Search proxy service entry point."""

from contextlib import asynccontextmanager

import uvicorn
from starlette.applications import Starlette
from starlette.routing import Route

from search_proxy.proxy_service.cache import InMemoryResponseCache, ResponseCache, ResponseCacheGate
from search_proxy.proxy_service.handlers import SearchProxyHandler
from search_proxy.proxy_service.middleware import RequestContextMiddleware
from search_proxy.proxy_service.upstream.aiohttp_transport import AiohttpUpstreamTransport
from search_proxy.proxy_service.upstream.base_transport import UpstreamTransport
from search_proxy.proxy_service.upstream.dispatcher import UpstreamDispatcher
from search_proxy.shared.config import Settings, get_settings
from search_proxy.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    transport: UpstreamTransport | None = None,
    cache: ResponseCache | None = None,
) -> Starlette:
    """Create and configure the search proxy application."""
    settings = settings or get_settings()
    cache = cache or InMemoryResponseCache()

    @asynccontextmanager
    async def lifespan(app: Starlette):
        """Manage application lifecycle (startup/shutdown)."""
        setup_logging(settings.log_level.upper())
        logger.info("Starting search proxy")
        logger.info(f"Upstream application: {settings.algolia_application_id}")

        upstream = transport or AiohttpUpstreamTransport()
        dispatcher = UpstreamDispatcher(upstream, settings)
        app.state.handler = SearchProxyHandler(settings, dispatcher, ResponseCacheGate(cache, settings))

        yield

        await upstream.close()
        logger.info("Search proxy stopped")

    async def proxy_request_handler(request):
        return await request.app.state.handler.handle(request)

    app = Starlette(
        debug=False,
        routes=[
            Route(
                "/{path:path}",
                proxy_request_handler,
                methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            ),
        ],
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware, ssr_sentinel=settings.ssr_sentinel)

    return app


def main() -> None:
    """Entry point for the server."""
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, loop="uvloop")


if __name__ == "__main__":
    main()
