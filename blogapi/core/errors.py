"""Error taxonomy shared by the request boundary and the fault monitor.

Every value that crosses the error boundary is converted into exactly one
:class:`AppError` by :func:`normalize` before it is logged or rendered.
Operational errors are expected failures that are safe to report to the
caller; anything else is treated as a defect.
"""

from __future__ import annotations

import traceback
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from http import HTTPStatus

from fastapi import status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

DEFAULT_STATUS_CODE = status.HTTP_500_INTERNAL_SERVER_ERROR


@dataclass(frozen=True)
class ErrorDetail:
    """Field-level validation problem."""

    field: str
    message: str
    location: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message, "location": self.location}


class AppError(Exception):
    """Failure rendered in the public API error envelope."""

    success = False

    def __init__(
        self,
        status_code: int,
        message: str,
        details: Iterable[ErrorDetail] | None = None,
        *,
        operational: bool = True,
    ) -> None:
        super().__init__(message)
        self.status_code = _coerce_status(status_code)
        self.message = message
        self.details: tuple[ErrorDetail, ...] | None = tuple(details) if details else None
        self.operational = operational

    @property
    def stack(self) -> str | None:
        """Formatted traceback of the wrapped cause, or of this error once raised."""
        source: BaseException = self.__cause__ or self
        if source.__traceback__ is None:
            return None
        return "".join(traceback.format_exception(source)).rstrip()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(status_code={self.status_code!r}, "
            f"message={self.message!r}, operational={self.operational!r})"
        )


class BadRequestError(AppError):
    """400 error for malformed input."""

    def __init__(self, message: str, details: Iterable[ErrorDetail] | None = None) -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, message, details)


class NotFoundError(AppError):
    """404 error for an expected absence."""

    def __init__(self, message: str) -> None:
        super().__init__(status.HTTP_404_NOT_FOUND, message)


class ConflictError(AppError):
    """409 error for duplicate/conflict scenarios."""

    def __init__(self, message: str, details: Iterable[ErrorDetail] | None = None) -> None:
        super().__init__(status.HTTP_409_CONFLICT, message, details)


class ValidationFailedError(AppError):
    """422 error carrying field-level details."""

    def __init__(
        self,
        details: Iterable[ErrorDetail],
        message: str = "Validation failed",
    ) -> None:
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, message, details)


def normalize(value: object) -> AppError:
    """Convert any caught value into an AppError.

    AppError instances are returned unchanged, so ``normalize`` is idempotent.
    Exceptions are wrapped as non-operational 500s keeping the original as
    ``__cause__``; any other value is described by type and representation.
    """
    if isinstance(value, AppError):
        return value
    if isinstance(value, BaseException):
        error = AppError(
            DEFAULT_STATUS_CODE,
            str(value) or type(value).__name__,
            operational=False,
        )
        error.__cause__ = value
        return error

    return AppError(
        DEFAULT_STATUS_CODE,
        "Error handler received a non-error instance with type - "
        f"{type(value).__name__}, value - {_safe_repr(value)}",
        operational=False,
    )


def from_http_exception(exc: StarletteHTTPException, path: str) -> AppError:
    """Translate framework HTTP exceptions (routing 404/405, explicit raises)."""
    phrase = _status_phrase(exc.status_code)
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail in (None, phrase):
        message = f"Can't find your requested url: '{path}' in the server"
    elif isinstance(exc.detail, str) and exc.detail:
        message = exc.detail
    else:
        message = phrase
    return AppError(exc.status_code, message)


def from_validation_error(exc: RequestValidationError) -> ValidationFailedError:
    details = [
        ErrorDetail(
            field=_format_error_field(error.get("loc") or ()),
            message=str(error.get("msg", "Invalid value")),
            location=_format_error_location(error.get("loc") or ()),
        )
        for error in exc.errors()
    ]
    return ValidationFailedError(details)


_TRANSPORT_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie"})


def _format_error_field(location: Sequence[object]) -> str:
    filtered = [str(part) for part in location if part not in _TRANSPORT_LOCATIONS]
    if not filtered:
        filtered = [str(part) for part in location]
    return ".".join(filtered) if filtered else "_schema"


def _format_error_location(location: Sequence[object]) -> str:
    if location and location[0] in _TRANSPORT_LOCATIONS:
        return str(location[0])
    return "body"


def _coerce_status(value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 100 <= value <= 599:
        return value
    return DEFAULT_STATUS_CODE


def _status_phrase(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "HTTP error"


def _safe_repr(value: object) -> str:
    try:
        return repr(value)
    except Exception:  # noqa: BLE001
        return f"<unrepresentable {type(value).__name__}>"


__all__ = [
    "AppError",
    "BadRequestError",
    "ConflictError",
    "DEFAULT_STATUS_CODE",
    "ErrorDetail",
    "NotFoundError",
    "ValidationFailedError",
    "from_http_exception",
    "from_validation_error",
    "normalize",
]
