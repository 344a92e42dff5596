"""Cache lookup and store policy around the upstream dispatcher."""

from search_proxy.proxy_service.cache.base_cache import ResponseCache
from search_proxy.proxy_service.upstream.dispatcher import INSIGHTS_PATH
from search_proxy.shared.config import Settings
from search_proxy.shared.logging import get_logger
from search_proxy.shared.models import ProxyResponse, RequestContext

logger = get_logger(__name__)


class ResponseCacheGate:
    """
    Decides whether a request may use the cache and performs lookups/stores.

    Store failures are logged and swallowed; lookup failures count as misses.
    """

    def __init__(self, cache: ResponseCache, settings: Settings):
        self._cache = cache
        self._ttl_ssr = settings.cache_ttl_ssr
        self._ttl_client = settings.cache_ttl_client

    def is_cacheable(self, context: RequestContext) -> bool:
        return context.is_ssr_request or self._ttl_client > 0

    def applies_to(self, context: RequestContext, cache_key: str | None) -> bool:
        """Only search POSTs with a cache key and an eligible caller use the cache."""
        return (
            context.method == "POST"
            and context.path != INSIGHTS_PATH
            and cache_key is not None
            and self.is_cacheable(context)
        )

    def ttl_for(self, context: RequestContext) -> int:
        return self._ttl_ssr if context.is_ssr_request else self._ttl_client

    async def lookup(self, cache_key: str) -> ProxyResponse | None:
        try:
            cached = await self._cache.match(cache_key)
        except Exception as exc:
            logger.warning(f"Cache lookup failed, treating as miss: {exc}")
            return None

        logger.debug(f"Cache {'hit' if cached is not None else 'miss'}: {cache_key}")
        return cached

    def prepare_entry(self, response: ProxyResponse, context: RequestContext) -> ProxyResponse:
        """Copy of the response with the public max-age for this caller."""
        return response.with_headers({"Cache-Control": f"public, max-age={self.ttl_for(context)}"})

    async def store(self, cache_key: str, entry: ProxyResponse) -> None:
        try:
            await self._cache.put(cache_key, entry)
        except Exception:
            logger.exception(f"Cache store failed for {cache_key}")
