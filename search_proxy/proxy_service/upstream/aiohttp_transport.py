"""aiohttp transport implementation for upstream calls."""

import asyncio

import aiohttp

from search_proxy.proxy_service.upstream.base_transport import UpstreamTransport, UpstreamTransportError
from search_proxy.shared.logging import get_logger
from search_proxy.shared.models import ProxyResponse

logger = get_logger(__name__)

# aiohttp already decoded the payload, so these no longer describe the body we return
_STRIPPED_RESPONSE_HEADERS = {"content-encoding", "content-length", "transfer-encoding", "connection"}


class AiohttpUpstreamTransport(UpstreamTransport):
    """Upstream transport backed by a shared aiohttp ClientSession."""

    def __init__(self, session: aiohttp.ClientSession | None = None):
        """
        Initialize aiohttp transport.

        Args:
            session: Existing client session; one is created lazily when omitted
        """
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> ProxyResponse:
        session = self._get_session()
        logger.debug(f"Sending {method} {url}")

        try:
            async with session.request(method=method, url=url, headers=headers, data=body) as response:
                payload = await response.read()
                response_headers = {
                    key: value
                    for key, value in response.headers.items()
                    if key.lower() not in _STRIPPED_RESPONSE_HEADERS
                }
                status = response.status
        except aiohttp.ClientError as exc:
            raise UpstreamTransportError(f"{type(exc).__name__}: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise UpstreamTransportError(f"Timeout contacting {url}") from exc

        logger.debug(f"Received {status} from {url}")

        return ProxyResponse(status_code=status, headers=response_headers, body=payload)

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            logger.info("Closed upstream HTTP session")
