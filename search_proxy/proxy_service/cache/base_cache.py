"""Abstract base class for response cache stores."""

from abc import ABC, abstractmethod

from search_proxy.shared.models import ProxyResponse


class ResponseCache(ABC):
    """Abstract key-value store for cached responses."""

    @abstractmethod
    async def match(self, key: str) -> ProxyResponse | None:
        """
        Look up a cached response.

        Args:
            key: Synthesized cache key

        Returns:
            The stored response, or None on a miss or expired entry
        """
        pass

    @abstractmethod
    async def put(self, key: str, response: ProxyResponse) -> None:
        """
        Store a response. Its lifetime comes from its Cache-Control max-age.

        Args:
            key: Synthesized cache key
            response: Response carrying a Cache-Control header
        """
        pass
