"""In-process response cache honouring Cache-Control max-age."""

import re
import time
from collections.abc import Callable

from search_proxy.proxy_service.cache.base_cache import ResponseCache
from search_proxy.shared.logging import get_logger
from search_proxy.shared.models import ProxyResponse

logger = get_logger(__name__)

_MAX_AGE = re.compile(r"max-age=(\d+)")


def parse_max_age(cache_control: str | None) -> int:
    """Extract max-age seconds from a Cache-Control value, 0 if missing."""
    if not cache_control:
        return 0
    match = _MAX_AGE.search(cache_control)
    return int(match.group(1)) if match else 0


class InMemoryResponseCache(ResponseCache):
    """Dictionary-backed cache with lazy expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[str, tuple[float, ProxyResponse]] = {}
        self._clock = clock

    async def match(self, key: str) -> ProxyResponse | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, response = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None

        return response

    async def put(self, key: str, response: ProxyResponse) -> None:
        ttl = parse_max_age(response.get_header("Cache-Control"))
        if ttl <= 0:
            return
        now = self._clock()
        self._purge_expired(now)
        self._entries[key] = (now + ttl, response)
        logger.debug(f"Cached response for {ttl}s: {key}")

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")

    def __len__(self) -> int:
        return len(self._entries)
