"""Abstract base classes for upstream communication."""

from abc import ABC, abstractmethod

from search_proxy.shared.models import ProxyResponse


class UpstreamTransportError(Exception):
    """Network-level failure talking to an upstream host."""


class UpstreamTransport(ABC):
    """Abstract interface for sending one HTTP request upstream."""

    @abstractmethod
    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> ProxyResponse:
        """
        Send a request and read the full response.

        Args:
            method: HTTP method
            url: Absolute upstream URL
            headers: Headers to forward
            body: Request body, if any

        Returns:
            Response from the upstream host, whatever its status

        Raises:
            UpstreamTransportError: For connection and protocol errors
        """
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None
