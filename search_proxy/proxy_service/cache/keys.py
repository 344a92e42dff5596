"""Cache key synthesis for POST search requests."""

from collections.abc import Mapping
from urllib.parse import urlsplit, urlunsplit

from search_proxy.proxy_service.query_params import encode_params, set_param
from search_proxy.shared.models import RequestContext

CACHE_KEY_PARAM = "cacheKey"
CACHE_KEY_HEADER = "x-as-cache-key"
SSR_MARKER_PARAM = "ssr"


def resolve_cache_token(context: RequestContext, headers: Mapping[str, str]) -> str | None:
    """Read the cache token; the query parameter wins over the header."""
    return context.get_param(CACHE_KEY_PARAM) or headers.get(CACHE_KEY_HEADER) or None


def build_cache_key(context: RequestContext, token: str | None) -> str | None:
    """
    Derive a GET-shaped cache key from the request URL.

    Different tokens or SSR flags always produce different keys. Returns None
    when there is no token, which disables caching for the request.
    """
    if not token:
        return None

    params = list(context.query_params)
    params = set_param(params, CACHE_KEY_PARAM, token)
    params = set_param(params, SSR_MARKER_PARAM, "1" if context.is_ssr_request else "0")

    parts = urlsplit(context.url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, encode_params(params), ""))
