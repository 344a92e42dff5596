"""Decoding and validation of search request bodies."""

import json
import re
from collections.abc import Sequence
from typing import Any

from search_proxy.shared.models import (
    ErrorDetail,
    ProxyResponse,
    SearchRequestItem,
    ValidationErrorType,
    ValidationOutcome,
)

# Curated allow-list shared with the storefront. Do not edit.
ALLOWED_QUERY_REGEX = re.compile(
    r"^[\x20-\x7E\xA0-\xFF★•‚''„"
    + '"""'
    + r"'›‹–…‒√°¬♥ᵘᵖⓇ™&⎥€∴ː∅ÆæĀāČčǝĒēЁёęłıÏïîÑñŌō⌀ŠšẞßŪū]+$"
)

MIN_QUERY_LENGTH = 3
MAX_REPORTED_QUERY_LENGTH = 100

ERROR_MESSAGES = {
    ValidationErrorType.TOO_SHORT: "Query too short (minimum 3 characters)",
    ValidationErrorType.INVALID_CHARACTERS: "Query contains invalid characters",
    ValidationErrorType.MALFORMED_JSON: "Malformed JSON body",
}


def _query_of(item: Any) -> str | None:
    if not isinstance(item, dict):
        return None
    query = SearchRequestItem.model_validate(item).query
    if query is None or query == "":
        return None
    return str(query)


def is_query_allowed(query: str) -> bool:
    return ALLOWED_QUERY_REGEX.fullmatch(query) is not None


def validate_requests(items: Sequence[Any]) -> ValidationOutcome:
    """
    Accept or reject a batch of search requests.

    A batch whose queries are all empty is a category listing and always passes.
    Character violations win over length violations.
    """
    queries = [_query_of(item) for item in items]
    if all(query is None for query in queries):
        return ValidationOutcome(accepted=True)

    has_long_query = False
    for query in queries:
        if query is None:
            continue
        if len(query) >= MIN_QUERY_LENGTH:
            has_long_query = True
        if not is_query_allowed(query):
            return ValidationOutcome(
                accepted=False,
                error_type=ValidationErrorType.INVALID_CHARACTERS,
                query=query[:MAX_REPORTED_QUERY_LENGTH],
            )

    if has_long_query:
        return ValidationOutcome(accepted=True)

    first = next(query for query in queries if query is not None)
    return ValidationOutcome(
        accepted=False,
        error_type=ValidationErrorType.TOO_SHORT,
        query=first[:MAX_REPORTED_QUERY_LENGTH],
    )


def parse_request_body(raw: bytes) -> ValidationOutcome:
    """Decode a JSON body and validate its `requests` batch, if any."""
    try:
        body = json.loads(raw)
    except ValueError as exc:
        return ValidationOutcome(
            accepted=False,
            error_type=ValidationErrorType.MALFORMED_JSON,
            message=str(exc),
        )

    requests = body.get("requests") if isinstance(body, dict) else None
    if requests is not None:
        if not isinstance(requests, list):
            return ValidationOutcome(
                accepted=False,
                error_type=ValidationErrorType.MALFORMED_JSON,
                message="Field 'requests' must be an array",
            )
        outcome = validate_requests(requests)
        if not outcome.accepted:
            return outcome

    return ValidationOutcome(accepted=True, body=body)


def build_error_detail(outcome: ValidationOutcome) -> ErrorDetail:
    error_type = outcome.error_type or ValidationErrorType.INVALID_CHARACTERS
    if error_type is ValidationErrorType.MALFORMED_JSON:
        details = outcome.message
    else:
        details = f'Query: "{outcome.query}"' if outcome.query else None

    return ErrorDetail(
        error=ERROR_MESSAGES[error_type],
        errorType=error_type.value,
        details=details,
    )


def error_response(outcome: ValidationOutcome) -> ProxyResponse:
    """Render a rejected outcome as a 400 JSON response."""
    return ProxyResponse(
        status_code=400,
        headers={"Content-Type": "application/json"},
        body=build_error_detail(outcome).to_json(),
    )


def encode_body(body: Any) -> bytes:
    """Re-serialize an accepted body for forwarding."""
    return json.dumps(body, ensure_ascii=False, separators=(",", ":")).encode()
