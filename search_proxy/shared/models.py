"""Data models for the search proxy."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field


class RequestContext(BaseModel):
    """Immutable snapshot of one inbound request."""

    model_config = ConfigDict(frozen=True)

    url: Annotated[str, Field(description="Full request URL")]
    origin: Annotated[str | None, Field(description="Origin header value, if any")] = None
    is_ssr_request: Annotated[bool, Field(description="Caller presented the SSR sentinel")] = False
    method: Annotated[str, Field(description="HTTP method")]
    path: Annotated[str, Field(description="Request path")]
    query_params: Annotated[
        tuple[tuple[str, str], ...], Field(description="Query string parameters in order")
    ] = ()

    def get_param(self, name: str) -> str | None:
        """Return the first value of a query parameter."""
        for key, value in self.query_params:
            if key == name:
                return value
        return None


class SearchRequestItem(BaseModel):
    """One entry of a batched search payload. Only `query` is inspected."""

    model_config = ConfigDict(extra="allow")

    query: Any = None


class ValidationErrorType(str, Enum):
    TOO_SHORT = "too_short"
    INVALID_CHARACTERS = "invalid_characters"
    MALFORMED_JSON = "malformed_json"


class ValidationOutcome(BaseModel):
    """Result of decoding and validating a request body."""

    accepted: bool
    error_type: ValidationErrorType | None = None
    query: str | None = None
    message: str | None = None
    body: Any = None


class ProxyResponse(BaseModel):
    """Transport-neutral HTTP response passed through the pipeline."""

    status_code: Annotated[int, Field(ge=100, le=599, description="HTTP status code")]
    headers: Annotated[dict[str, str], Field(description="Response headers")] = {}
    body: Annotated[bytes, Field(description="Raw response body")] = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code <= 299

    def get_header(self, name: str) -> str | None:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def with_headers(self, headers: dict[str, str], remove: tuple[str, ...] = ()) -> "ProxyResponse":
        """Return a copy with headers set case-insensitively."""
        drop = {name.lower() for name in (*headers, *remove)}
        merged = {key: value for key, value in self.headers.items() if key.lower() not in drop}
        merged.update(headers)
        return self.model_copy(update={"headers": merged})

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class HostAttempt(BaseModel):
    """Outcome of one failover try against an upstream host."""

    host: str
    status: int | None = None
    ok: bool = False
    error: str | None = None


class ErrorDetail(BaseModel):
    """JSON error body returned for validation and upstream failures."""

    model_config = ConfigDict(populate_by_name=True)

    error: str
    error_type: Annotated[str, Field(alias="errorType")]
    details: str | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    attempts: list[HostAttempt] | None = None
    algolia_url: str | None = None
    algolia_method: str | None = None
    algolia_headers: dict[str, str] | None = None
    algolia_body: str | None = None

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode()


class OriginDecision(BaseModel):
    """Resolved CORS origin for one response."""

    allow_origin: str
    vary_origin: bool = False
