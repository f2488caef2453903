"""Unit tests for the error taxonomy and its translation to responses."""

import logging

import pytest

from leavedesk.app.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    MethodNotAllowedError,
    NotFoundError,
    RateLimitedError,
    RecordValidationError,
)
from leavedesk.app.handlers.errors import ResourceResponse, error_response, translate_errors


@pytest.mark.parametrize(
    ("exc", "status_code", "code"),
    [
        (AuthenticationError("Missing authorization header"), 401, "unauthenticated"),
        (AuthorizationError("Access denied: nope"), 403, "forbidden"),
        (NotFoundError("gone"), 404, "not_found"),
        (MethodNotAllowedError("PATCH"), 405, "method_not_allowed"),
        (ConflictError("dup"), 409, "conflict"),
        (RecordValidationError([{"field": "status", "reason": "required"}]), 422, "validation_error"),
        (RateLimitedError(30), 429, "rate_limited"),
    ],
)
def test_api_errors_map_to_status(exc: Exception, status_code: int, code: str) -> None:
    response = error_response(exc)

    assert response.status_code == status_code
    assert response.error_code == code
    assert response.body["code"] == code
    assert response.body["message"] == str(exc)


def test_validation_error_lists_fields() -> None:
    errors = [{"field": "date", "reason": "bad"}, {"field": "hours_worked", "reason": "missing"}]

    response = error_response(RecordValidationError(errors))

    assert response.body == {"message": "Validation failed", "code": "validation_error", "errors": errors}


def test_rate_limited_sets_retry_after() -> None:
    assert error_response(RateLimitedError(12)).headers == {"Retry-After": "12"}


def test_unexpected_error_is_logged_and_hidden(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.ERROR, logger="leavedesk.app.handlers.errors"):
        response = error_response(KeyError("secret"))

    assert response.status_code == 500
    assert response.body == {"message": "Internal server error", "code": "unexpected_error"}
    assert "secret" not in str(response.body)
    assert any(r.exc_info for r in caplog.records)


@pytest.mark.asyncio
async def test_translate_errors_passes_success_through() -> None:
    ok = ResourceResponse(status_code=200, body={"id": "1"})

    async def _call() -> ResourceResponse:
        return ok

    assert await translate_errors(_call) is ok


@pytest.mark.asyncio
async def test_translate_errors_catches_raised_error() -> None:
    async def _call() -> ResourceResponse:
        raise NotFoundError("leaves record 'x' not found")

    response = await translate_errors(_call)

    assert response.status_code == 404
    assert response.body["message"] == "leaves record 'x' not found"
