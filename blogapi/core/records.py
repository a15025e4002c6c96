"""Closed set of structured log record shapes."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Final

from starlette.requests import Request

from blogapi.core.errors import AppError

BODYLESS_METHODS: Final[frozenset[str]] = frozenset({"GET", "HEAD", "DELETE", "OPTIONS"})

# request.state keys shared between middlewares for a single request
CORRELATION_ID_STATE_KEY: Final[str] = "correlation_id"
LOGGED_BODY_STATE_KEY: Final[str] = "logged_body"
CLIENT_REQUEST_ID_STATE_KEY: Final[str] = "client_request_id"

# credentials never reach the log sinks
REDACTED_HEADERS: Final[frozenset[str]] = frozenset(
    {"authorization", "proxy-authorization", "cookie", "set-cookie", "x-api-key"}
)


@dataclass(frozen=True)
class RequestContext:
    """Request metadata captured for log records."""

    correlation_id: str | None
    method: str
    path: str
    client_ip: str | None = None
    user_agent: str | None = None
    query_params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    client_request_id: str | None = None
    body: object | None = None

    @classmethod
    def from_request(cls, request: Request) -> RequestContext:
        state = request.scope.get("state") or {}
        return cls(
            correlation_id=state.get(CORRELATION_ID_STATE_KEY),
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            query_params=dict(request.query_params),
            headers={
                name: value
                for name, value in request.headers.items()
                if name.lower() not in REDACTED_HEADERS
            },
            client_request_id=state.get(CLIENT_REQUEST_ID_STATE_KEY),
            body=state.get(LOGGED_BODY_STATE_KEY),
        )

    def as_extra(self, *, include_body: bool = True) -> dict[str, Any]:
        extra: dict[str, Any] = {
            "correlation_id": self.correlation_id,
            "http_method": self.method,
            "http_path": self.path,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "query_params": self.query_params,
            "headers": self.headers,
            "client_request_id": self.client_request_id,
        }
        if include_body and self.body is not None:
            extra["body"] = self.body
        return extra


@dataclass(frozen=True)
class RequestLogRecord:
    """One entry per completed request."""

    context: RequestContext
    status_code: int
    latency_ms: float

    def as_extra(self) -> dict[str, Any]:
        include_body = self.context.method.upper() not in BODYLESS_METHODS
        extra = self.context.as_extra(include_body=include_body)
        extra["event"] = "request"
        extra["status_code"] = self.status_code
        extra["duration_ms"] = round(self.latency_ms, 2)
        return extra


@dataclass(frozen=True)
class ErrorLogRecord:
    """One entry per error, stack always included."""

    error: AppError
    context: RequestContext | None = None
    source: str = "request"

    def as_extra(self) -> dict[str, Any]:
        extra: dict[str, Any] = self.context.as_extra() if self.context else {}
        extra.update(
            {
                "event": "error",
                "source": self.source,
                "success": False,
                "status_code": self.error.status_code,
                "error_message": self.error.message,
                "operational": self.error.operational,
                "stack": self.error.stack,
            }
        )
        if self.error.details:
            extra["details"] = [detail.as_dict() for detail in self.error.details]
        return extra


def decode_body(raw: bytes, *, limit: int) -> object | None:
    """Best-effort rendering of a request body for logging."""
    if not raw:
        return None
    truncated = len(raw) > limit
    chunk = raw[:limit]
    if not truncated:
        try:
            return json.loads(chunk)
        except ValueError:
            pass
    text = chunk.decode("utf-8", errors="replace")
    return f"{text}...<truncated>" if truncated else text


__all__ = [
    "BODYLESS_METHODS",
    "CLIENT_REQUEST_ID_STATE_KEY",
    "CORRELATION_ID_STATE_KEY",
    "ErrorLogRecord",
    "LOGGED_BODY_STATE_KEY",
    "REDACTED_HEADERS",
    "RequestContext",
    "RequestLogRecord",
    "decode_body",
]
