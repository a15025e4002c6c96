"""Success envelope shared by every resource endpoint."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from blogapi.core.logging import get_correlation_id
from blogapi.core.records import CORRELATION_ID_STATE_KEY

logger = logging.getLogger("blogapi.responses")

_UNSET: Any = object()


def api_response(
    request: Request,
    status_code: int,
    message: str,
    *,
    data: Any = _UNSET,
    links: Any = _UNSET,
    pagination: Any = _UNSET,
) -> JSONResponse:
    """Return ``{success, statusCode, message, correlationId, data?, links?, pagination?}``."""
    correlation_id = getattr(request.state, CORRELATION_ID_STATE_KEY, None) or get_correlation_id()

    logger.info(
        message,
        extra={"status_code": status_code, "http_path": request.url.path},
    )

    body: dict[str, Any] = {
        "success": True,
        "statusCode": status_code,
        "message": message,
        "correlationId": correlation_id,
    }
    if data is not _UNSET:
        body["data"] = data
    if links is not _UNSET:
        body["links"] = links
    if pagination is not _UNSET:
        body["pagination"] = pagination

    return JSONResponse(content=jsonable_encoder(body), status_code=status_code)


__all__ = ["api_response"]
