"""Origin policy and CORS header stamping."""

import re

from search_proxy.shared.models import OriginDecision, ProxyResponse

ALLOWED_ORIGIN_PATTERN = re.compile(r"^https://([a-z0-9-]+\.)*avocadostore\.(de|dev)$")
LOCALHOST_PATTERN = re.compile(r"^http://localhost(:\d+)?$")
CLOUDFLARE_DASHBOARD = "https://dash.cloudflare.com"

ALLOW_METHODS = "GET, POST, OPTIONS"
ALLOW_HEADERS = (
    "Content-Type, x-algolia-agent, x-algolia-api-key, x-algolia-application-id, x-as-cache-key, x-ssr-request"
)
MAX_AGE = "86400"


def is_origin_allowed(origin: str) -> bool:
    return (
        ALLOWED_ORIGIN_PATTERN.fullmatch(origin) is not None
        or LOCALHOST_PATTERN.fullmatch(origin) is not None
        or origin == CLOUDFLARE_DASHBOARD
    )


def resolve_origin(origin: str | None, is_ssr_request: bool, canonical_origin: str) -> OriginDecision:
    """
    Pick the Access-Control-Allow-Origin value.

    SSR callers always get the canonical origin. Allowed browser origins are
    echoed back with `Vary: Origin`; anything else gets the canonical origin.
    """
    if is_ssr_request:
        return OriginDecision(allow_origin=canonical_origin)
    if origin and is_origin_allowed(origin):
        return OriginDecision(allow_origin=origin, vary_origin=True)
    return OriginDecision(allow_origin=canonical_origin)


def cors_headers(decision: OriginDecision) -> dict[str, str]:
    headers = {
        "Access-Control-Allow-Origin": decision.allow_origin,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Max-Age": MAX_AGE,
    }
    if decision.vary_origin:
        headers["Vary"] = "Origin"
    return headers


def apply_cors_headers(response: ProxyResponse, decision: OriginDecision) -> ProxyResponse:
    """Return a copy of the response carrying the CORS headers."""
    return response.with_headers(cors_headers(decision))


def preflight_response(decision: OriginDecision) -> ProxyResponse:
    return ProxyResponse(status_code=204, headers=cors_headers(decision))
