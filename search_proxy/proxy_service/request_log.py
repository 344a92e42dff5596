"""Structured request outcome logging."""

import json
from collections.abc import Mapping
from typing import Any

from search_proxy.shared.logging import log_event
from search_proxy.shared.models import ProxyResponse, RequestContext

_PROXY_ERROR_FIELDS = ("algolia_url", "algolia_method", "algolia_headers", "algolia_body")


def _error_context(response: ProxyResponse) -> tuple[dict[str, Any], str | None]:
    """Pull diagnostics out of a failed response body."""
    text = response.text()
    context: dict[str, Any] = {}

    try:
        data = json.loads(text)
    except ValueError:
        data = None

    if isinstance(data, dict) and "errorType" in data:
        if data.get("details"):
            context["error_details"] = data["details"]
        context["error_type"] = data["errorType"]
        for field in _PROXY_ERROR_FIELDS:
            if data.get(field):
                context[field] = data[field]
        return context, data["errorType"]

    # raw upstream response
    context["algolia_response"] = text
    if data is not None:
        context["algolia_response_json"] = data
    return context, None


async def log_request(
    context: RequestContext,
    request_headers: Mapping[str, str],
    response: ProxyResponse,
    duration_ms: int,
    cache_hit: bool,
    body: str | None = None,
    environment: str = "production",
) -> dict[str, Any]:
    """Log the outcome of one proxied request."""
    fields: dict[str, Any] = {
        "origin": context.origin,
        "url": context.url,
        "method": context.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
        "pathname": context.path,
        "user_agent": request_headers.get("user-agent") or "unknown",
        "is_ssr_request": context.is_ssr_request,
        "cache_hit": cache_hit,
        "query_parameters": dict(context.query_params),
        "request_headers": dict(request_headers),
    }
    if body:
        fields["request_body"] = body

    error_type = None
    if not response.ok:
        error_fields, error_type = _error_context(response)
        fields.update(error_fields)

    if response.ok:
        level, message = "log", f"[SUCCESS] Algolia request to: {context.path}"
    elif error_type == "algolia":
        level, message = "error", f"[FAILED] Algolia not reachable, request: {context.path}"
    else:
        level, message = "error", f"[FAILED] Algolia request to: {context.path}"

    return log_event(level, message, environment=environment, **fields)


async def log_validation_failure(
    context: RequestContext,
    request_headers: Mapping[str, str],
    response: ProxyResponse,
    environment: str = "production",
) -> dict[str, Any]:
    """Log a request rejected before reaching upstream."""
    try:
        detail = json.loads(response.text())
    except ValueError:
        detail = {}

    error = detail.get("error") or "Validation error"
    return log_event(
        "error",
        f"[FAILED] {error} Algolia request to: {context.path}",
        environment=environment,
        origin=context.origin,
        url=context.url,
        method=context.method,
        error=error,
        error_type=detail.get("errorType"),
        error_details=detail.get("details"),
        is_ssr_request=context.is_ssr_request,
        user_agent=request_headers.get("user-agent") or "unknown",
    )
