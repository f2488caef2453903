"""Error taxonomy and the structured JSON error shape.

Every failure on the request path is raised as an ``ApiError`` subclass and
translated into an HTTP response by one outer wrapper
(``leavedesk.app.handlers.errors.translate_errors``).
"""

from typing import Any

from fastapi import status
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Wire shape of every error response."""

    message: str
    code: str
    errors: list[dict[str, Any]] | None = None


class ApiError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "unexpected_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(message=self.message, code=self.code)

    def headers(self) -> dict[str, str]:
        return {}


class AuthenticationError(ApiError):
    """No valid session could be resolved for the request."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"

    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class AuthorizationError(ApiError):
    """The session is valid but access to the record was denied."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFoundError(ApiError):
    """Unknown resource, or record absent for an update or delete."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class MethodNotAllowedError(ApiError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    code = "method_not_allowed"

    def __init__(self, method: str) -> None:
        super().__init__(f"Method {method} not allowed")
        self.method = method


class ConflictError(ApiError):
    """The data store rejected a write on a constraint."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class RecordValidationError(ApiError):
    """Request body or query failed field validation.

    Carries every violated field as ``{"field": ..., "reason": ...}``.
    """

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"

    def __init__(self, errors: list[dict[str, str]], message: str = "Validation failed") -> None:
        super().__init__(message)
        self.errors = errors

    @property
    def fields(self) -> list[str]:
        return [e["field"] for e in self.errors]

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(message=self.message, code=self.code, errors=self.errors)


class RateLimitedError(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "rate_limited"

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Rate limit exceeded, retry after {retry_after}s")
        self.retry_after = retry_after

    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


class UnexpectedError(ApiError):
    """Anything that was not raised as a known ``ApiError``."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
