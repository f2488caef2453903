"""Caller-supplied query options and tenancy-safe query helpers."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError
from sqlalchemy import Select, select

from leavedesk.app.db.context import RequestContext
from leavedesk.app.errors import RecordValidationError
from leavedesk.app.resources import ResourceDescriptor

RESERVED_PARAMS = frozenset({"id", "include", "limit", "offset", "order_by"})


@dataclass(frozen=True)
class QueryOptions:
    """Filter, include and paging options parsed from the query string."""

    filters: dict[str, Any] = field(default_factory=dict)
    include: tuple[str, ...] = ()
    limit: int | None = None
    offset: int = 0
    order_by: str | None = None

    @property
    def order_field(self) -> str | None:
        return self.order_by.lstrip("-") if self.order_by else None

    @property
    def descending(self) -> bool:
        return bool(self.order_by and self.order_by.startswith("-"))

    @classmethod
    def from_query(
        cls,
        descriptor: ResourceDescriptor,
        params: Mapping[str, str],
        *,
        for_list: bool = False,
        default_limit: int = 50,
        max_limit: int = 200,
    ) -> "QueryOptions":
        """Parse query parameters for one resource.

        Keys that are not filter fields of the resource are ignored. Filter
        values go through the schema field validators, so they are coerced
        and normalized the same way as written values.

        Raises:
            RecordValidationError: If a filter value, include, or paging
                parameter is invalid
        """
        errors: list[dict[str, str]] = []
        filters: dict[str, Any] = {}

        for key, raw in params.items():
            if key in RESERVED_PARAMS or key not in descriptor.filter_fields:
                continue
            # Assignment runs the field's validators, so values normalize as on write
            scratch = descriptor.schema.model_construct()
            try:
                setattr(scratch, key, raw)
            except ValidationError as e:
                errors.append({"field": key, "reason": e.errors()[0]["msg"]})
                continue
            filters[key] = getattr(scratch, key)

        include: tuple[str, ...] = ()
        if params.get("include"):
            include = tuple(part.strip() for part in params["include"].split(",") if part.strip())
            for name in include:
                if name not in descriptor.relations:
                    errors.append({"field": "include", "reason": f"Unknown relation '{name}'"})

        limit: int | None = None
        offset = 0
        order_by: str | None = None
        if for_list:
            limit = _parse_int(params.get("limit"), default_limit, 1, max_limit, "limit", errors)
            offset = _parse_int(params.get("offset"), 0, 0, None, "offset", errors)
            order_by = params.get("order_by") or None
            if order_by is not None:
                allowed = descriptor.filter_fields | {"created_at"}
                if order_by.lstrip("-") not in allowed:
                    errors.append(
                        {"field": "order_by", "reason": f"Cannot order by '{order_by.lstrip('-')}'"}
                    )

        if errors:
            raise RecordValidationError(errors, message="Invalid query parameters")

        return cls(filters=filters, include=include, limit=limit, offset=offset, order_by=order_by)


def _parse_int(
    raw: str | None,
    default: int,
    minimum: int,
    maximum: int | None,
    name: str,
    errors: list[dict[str, str]],
) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        errors.append({"field": name, "reason": "must be an integer"})
        return default
    if value < minimum or (maximum is not None and value > maximum):
        bound = f"between {minimum} and {maximum}" if maximum is not None else f">= {minimum}"
        errors.append({"field": name, "reason": f"must be {bound}"})
        return default
    return value


def scoped_select(descriptor: ResourceDescriptor, ctx: RequestContext) -> Select:
    """Select a resource's rows with tenant scoping enforced.

    Args:
        descriptor: Resource to query
        ctx: Request context with tenant_id

    Returns:
        Select filtered by tenant_id
    """
    model = descriptor.model
    return select(model).where(model.tenant_id == ctx.tenant_id)
