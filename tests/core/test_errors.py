from __future__ import annotations

import pytest
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from blogapi.core.errors import (
    AppError,
    BadRequestError,
    ConflictError,
    ErrorDetail,
    NotFoundError,
    ValidationFailedError,
    from_http_exception,
    from_validation_error,
    normalize,
)


def test_normalize_returns_app_errors_unchanged() -> None:
    error = NotFoundError("Post not found")

    assert normalize(error) is error
    assert normalize(normalize(error)) is error


def test_normalize_wraps_exceptions_as_non_operational() -> None:
    original = RuntimeError("boom")

    error = normalize(original)

    assert error.status_code == 500
    assert error.message == "boom"
    assert error.operational is False
    assert error.__cause__ is original


def test_normalize_uses_type_name_for_empty_message() -> None:
    error = normalize(KeyError())

    assert error.message == "KeyError"


def test_normalize_describes_non_error_values() -> None:
    error = normalize({"oops": 1})

    assert error.status_code == 500
    assert error.operational is False
    assert error.message == (
        "Error handler received a non-error instance with type - dict, value - {'oops': 1}"
    )


def test_normalize_is_idempotent_for_wrapped_values() -> None:
    first = normalize(ValueError("bad"))

    assert normalize(first) is first


@pytest.mark.parametrize("status_code", [42, 600, True])
def test_out_of_range_status_defaults_to_500(status_code: int) -> None:
    assert AppError(status_code, "weird").status_code == 500


def test_error_subclasses_carry_status_and_details() -> None:
    detail = ErrorDetail(field="email", message="taken", location="body")

    assert BadRequestError("bad").status_code == 400
    assert ConflictError("dup", details=[detail]).details == (detail,)
    assert ValidationFailedError([detail]).status_code == 422
    assert NotFoundError("missing").operational is True


def test_stack_reflects_wrapped_cause() -> None:
    try:
        raise RuntimeError("deep failure")
    except RuntimeError as exc:
        error = normalize(exc)

    assert error.stack is not None
    assert "deep failure" in error.stack
    assert "RuntimeError" in error.stack


def test_stack_is_none_before_raise() -> None:
    assert AppError(400, "never raised").stack is None


def test_from_http_exception_describes_unknown_route() -> None:
    error = from_http_exception(StarletteHTTPException(status_code=404), "/missing")

    assert error.status_code == 404
    assert error.message == "Can't find your requested url: '/missing' in the server"
    assert error.operational is True


def test_from_http_exception_keeps_explicit_detail() -> None:
    error = from_http_exception(StarletteHTTPException(status_code=405, detail="Nope"), "/x")

    assert error.status_code == 405
    assert error.message == "Nope"


def test_from_validation_error_lists_field_details() -> None:
    exc = RequestValidationError(
        [
            {"loc": ("body", "title"), "msg": "Field required", "type": "missing"},
            {"loc": ("query", "limit"), "msg": "Input should be greater than 0", "type": "gt"},
        ]
    )

    error = from_validation_error(exc)

    assert error.status_code == 422
    assert error.message == "Validation failed"
    assert [detail.as_dict() for detail in error.details or ()] == [
        {"field": "title", "message": "Field required", "location": "body"},
        {"field": "limit", "message": "Input should be greater than 0", "location": "query"},
    ]
