"""Response caching: keys, stores and the lookup/store gate."""

from search_proxy.proxy_service.cache.base_cache import ResponseCache
from search_proxy.proxy_service.cache.gate import ResponseCacheGate
from search_proxy.proxy_service.cache.keys import build_cache_key, resolve_cache_token
from search_proxy.proxy_service.cache.memory import InMemoryResponseCache

__all__ = [
    "InMemoryResponseCache",
    "ResponseCache",
    "ResponseCacheGate",
    "build_cache_key",
    "resolve_cache_token",
]
