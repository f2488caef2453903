"""Payload validation against a resource's field schema."""

from typing import Any

from pydantic import BaseModel, ValidationError

from leavedesk.app.errors import RecordValidationError


def _field_name(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc) or "body"


def validate_payload(
    schema: type[BaseModel], body: Any, *, exclude_unset: bool = True
) -> dict[str, Any]:
    """Check a candidate payload against a schema.

    All violated fields are collected, not just the first one.

    Args:
        schema: Pydantic model declaring the resource's writable fields
        body: Decoded JSON request body
        exclude_unset: Return only the fields present in the body (updates)
            instead of the full record with defaults (creates)

    Returns:
        Validated field values, coerced to their declared types

    Raises:
        RecordValidationError: If the body is not an object or any field fails
    """
    if not isinstance(body, dict):
        raise RecordValidationError(
            [{"field": "body", "reason": "Request body must be a JSON object"}]
        )

    try:
        model = schema.model_validate(body)
    except ValidationError as e:
        errors = [
            {"field": _field_name(err["loc"]), "reason": err["msg"]} for err in e.errors()
        ]
        raise RecordValidationError(errors) from e

    return model.model_dump(exclude_unset=exclude_unset)
