"""Turns an inbound HTTP request into a RequestContext."""

from collections.abc import Mapping
from urllib.parse import parse_qsl, urlsplit

from search_proxy.shared.models import RequestContext

SSR_HEADER = "x-ssr-request"


class RequestClassificationError(ValueError):
    """Raised when the request URL cannot be parsed."""


def classify_request(
    method: str,
    url: str,
    headers: Mapping[str, str],
    ssr_sentinel: str,
) -> RequestContext:
    """
    Build the canonical context for one request.

    The SSR flag is only set when the header carries the exact sentinel value.
    This is a trust hint for first-party renderers, not authentication.

    Raises:
        RequestClassificationError: If the URL has no scheme or host
    """
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise RequestClassificationError(f"Unparseable request URL: {url!r}") from exc

    if not parts.scheme or not parts.netloc:
        raise RequestClassificationError(f"Unparseable request URL: {url!r}")

    origin = headers.get("origin") or None

    return RequestContext(
        url=url,
        origin=origin,
        is_ssr_request=headers.get(SSR_HEADER) == ssr_sentinel,
        method=method.upper(),
        path=parts.path or "/",
        query_params=tuple(parse_qsl(parts.query, keep_blank_values=True)),
    )
