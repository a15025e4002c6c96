"""Custom FastAPI middlewares for request correlation and access logging."""

from __future__ import annotations

import re
import time
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from blogapi.core.logging import AppLogger, bind_correlation_id, reset_correlation_id
from blogapi.core.records import (
    BODYLESS_METHODS,
    CLIENT_REQUEST_ID_STATE_KEY,
    CORRELATION_ID_STATE_KEY,
    LOGGED_BODY_STATE_KEY,
    RequestContext,
    RequestLogRecord,
    decode_body,
)

_VALID_INCOMING_ID = re.compile(r"^[\x21-\x7e]{1,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a fresh correlation id to each request.

    A client supplied ``X-Request-ID`` is kept only as ``client_request_id`` in
    the logs; it never becomes the correlation id.
    """

    header_name = "X-Request-ID"

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = uuid4().hex
        incoming = request.headers.get(self.header_name)

        setattr(request.state, CORRELATION_ID_STATE_KEY, correlation_id)
        if incoming and _VALID_INCOMING_ID.match(incoming):
            setattr(request.state, CLIENT_REQUEST_ID_STATE_KEY, incoming)
        token = bind_correlation_id(correlation_id)

        try:
            response = await call_next(request)
        finally:
            reset_correlation_id(token)

        response.headers[self.header_name] = correlation_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Emit one structured request log per completed request."""

    def __init__(self, app: ASGIApp, app_logger: AppLogger, max_body_bytes: int = 4096) -> None:
        super().__init__(app)
        self.app_logger = app_logger
        self.max_body_bytes = max_body_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method.upper() not in BODYLESS_METHODS:
            body = await request.body()
            setattr(
                request.state,
                LOGGED_BODY_STATE_KEY,
                decode_body(body, limit=self.max_body_bytes),
            )

        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            self._log(request, 500, (time.perf_counter() - start) * 1000)
            raise

        self._log(request, response.status_code, (time.perf_counter() - start) * 1000)
        return response

    def _log(self, request: Request, status_code: int, duration_ms: float) -> None:
        record = RequestLogRecord(
            context=RequestContext.from_request(request),
            status_code=status_code,
            latency_ms=duration_ms,
        )
        self.app_logger.log_request(record)


__all__ = ["AccessLogMiddleware", "RequestIDMiddleware"]
