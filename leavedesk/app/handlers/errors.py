"""Outer error-translation wrapper for the resource handler."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from leavedesk.app.errors import ApiError, UnexpectedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceResponse:
    """Framework-independent response: status, JSON-able body, extra headers."""

    status_code: int
    body: Any
    headers: dict[str, str] = field(default_factory=dict)
    error_code: str | None = None


def error_response(exc: Exception) -> ResourceResponse:
    """Map an exception onto its structured JSON error response.

    Anything that is not an ``ApiError`` is logged and reported as a
    generic 500 without leaking its message.
    """
    if not isinstance(exc, ApiError):
        logger.exception("Unexpected error handling resource request")
        exc = UnexpectedError()

    return ResourceResponse(
        status_code=exc.status_code,
        body=exc.to_response().model_dump(exclude_none=True),
        headers=exc.headers(),
        error_code=exc.code,
    )


async def translate_errors(call: Callable[[], Awaitable[ResourceResponse]]) -> ResourceResponse:
    """Run ``call`` and turn any exception it raises into an error response.

    No retries: a failed request fails as a whole.
    """
    try:
        return await call()
    except Exception as e:
        return error_response(e)
