"""Terminal error handling for the request path.

Errors raised inside the handler chain reach :class:`BoundaryResponder` either
through FastAPI exception handlers (AppError, HTTPException, request
validation) or through :class:`ErrorBoundaryMiddleware`, which catches
everything else. Both paths record the error first and then render the
error envelope, once per request.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import replace
from typing import Any, Awaitable, Callable, cast

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from blogapi.core.errors import (
    AppError,
    from_http_exception,
    from_validation_error,
    normalize,
)
from blogapi.core.logging import AppLogger, get_correlation_id
from blogapi.core.metrics import record_error
from blogapi.core.records import RequestContext

ExceptionHandlerCallable = Callable[[Request, Exception], Awaitable[Response]]

logger = logging.getLogger("blogapi.boundary")

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def build_error_payload(
    error: AppError,
    *,
    correlation_id: str | None,
    include_stack: bool,
) -> dict[str, Any]:
    """Return the public error envelope for ``error``.

    Non-operational errors never expose their message; the log record keeps it.
    """
    message = error.message if error.operational else GENERIC_ERROR_MESSAGE
    errors: dict[str, Any] = {"message": message}
    if error.details:
        errors["details"] = [detail.as_dict() for detail in error.details]

    payload: dict[str, Any] = {
        "success": False,
        "statusCode": error.status_code,
        "errors": errors,
        "operational": error.operational,
        "correlationId": correlation_id,
    }
    if include_stack:
        payload["stack"] = error.stack or "".join(traceback.format_stack()).rstrip()
    return payload


class BoundaryResponder:
    """Records an error and writes the HTTP error envelope."""

    def __init__(self, app_logger: AppLogger, *, expose_stack: bool) -> None:
        self.app_logger = app_logger
        self.expose_stack = expose_stack

    def record(self, error: AppError, request: Request) -> RequestContext:
        context = RequestContext.from_request(request)
        if context.correlation_id is None:
            context = replace(context, correlation_id=get_correlation_id())
        record_error(error.status_code, error.operational)
        self.app_logger.log_error(error, context)
        return context

    def render(self, error: AppError, correlation_id: str | None) -> JSONResponse:
        payload = build_error_payload(
            error,
            correlation_id=correlation_id,
            include_stack=self.expose_stack,
        )
        response = JSONResponse(content=jsonable_encoder(payload), status_code=error.status_code)
        if correlation_id:
            response.headers["X-Request-ID"] = correlation_id
        return response

    def respond(self, error: AppError, request: Request) -> JSONResponse:
        # logging happens before the response exists so it survives a failed write
        context = self.record(error, request)
        return self.render(error, context.correlation_id)


class ErrorBoundaryMiddleware:
    """Catch-all for exceptions escaping the handler chain.

    Implemented as a plain ASGI middleware so it can tell whether the response
    has already started; in that case the error is logged and dropped.
    """

    def __init__(self, app: ASGIApp, responder: BoundaryResponder) -> None:
        self.app = app
        self.responder = responder

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:  # noqa: BLE001
            request = Request(scope)
            error = normalize(exc)
            context = self.responder.record(error, request)
            if response_started:
                logger.warning(
                    "Response already started; dropping error response",
                    extra={"correlation_id": context.correlation_id, "status_code": error.status_code},
                )
                return
            response = self.responder.render(error, context.correlation_id)
            await response(scope, receive, send)


def register_exception_handlers(app: FastAPI, responder: BoundaryResponder) -> None:
    """Route every request-path failure through ``responder``."""

    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return responder.respond(exc, request)

    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        response = responder.respond(from_http_exception(exc, request.url.path), request)
        for header, value in (exc.headers or {}).items():
            response.headers.setdefault(header, value)
        return response

    async def request_validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        return responder.respond(from_validation_error(exc), request)

    app.add_exception_handler(AppError, cast(ExceptionHandlerCallable, app_error_handler))
    app.add_exception_handler(
        StarletteHTTPException,
        cast(ExceptionHandlerCallable, http_exception_handler),
    )
    app.add_exception_handler(
        RequestValidationError,
        cast(ExceptionHandlerCallable, request_validation_exception_handler),
    )
    app.add_middleware(ErrorBoundaryMiddleware, responder=responder)


__all__ = [
    "BoundaryResponder",
    "GENERIC_ERROR_MESSAGE",
    "ErrorBoundaryMiddleware",
    "build_error_payload",
    "register_exception_handlers",
]
