"""Middleware for request classification."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp

from search_proxy.proxy_service.classifier import RequestClassificationError, classify_request
from search_proxy.shared.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Classifies the request and attaches the context to request state."""

    def __init__(self, app: ASGIApp, ssr_sentinel: str):
        super().__init__(app)
        self.__ssr_sentinel = ssr_sentinel

    async def dispatch(self, request: Request, call_next):
        """Build the RequestContext and attach it to request state."""
        try:
            context = classify_request(
                request.method,
                str(request.url),
                request.headers,
                self.__ssr_sentinel,
            )
        except RequestClassificationError as exc:
            logger.warning(f"Rejecting request: {exc}")
            return PlainTextResponse("Bad request URL", status_code=400)

        request.state.context = context

        logger.debug(f"Classified {context.method} {context.path} (ssr={context.is_ssr_request})")

        response = await call_next(request)
        return response
