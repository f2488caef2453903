"""In-memory implementations of the store and rate limiter interfaces."""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import UniqueConstraint

from leavedesk.app.db.context import RequestContext
from leavedesk.app.db.models import new_id, utcnow
from leavedesk.app.db.queries import QueryOptions
from leavedesk.app.db.repositories import Record, RecordOwner, RetryAfter
from leavedesk.app.errors import ConflictError, NotFoundError
from leavedesk.app.resources import ResourceDescriptor, ResourceRegistry


def _matches(record: Record, filters: dict[str, Any]) -> bool:
    return all(record.get(key) == value for key, value in filters.items())


def _unique_column_sets(descriptor: ResourceDescriptor) -> list[tuple[str, ...]]:
    return [
        tuple(col.name for col in constraint.columns)
        for constraint in descriptor.model.__table__.constraints
        if isinstance(constraint, UniqueConstraint)
    ]


class InMemoryRecordStore:
    """In-memory implementation of RecordStore.

    Mirrors the SQL store: tenant scoping, unique constraints declared on the
    model, and same-tenant references.
    """

    def __init__(self, registry: ResourceRegistry) -> None:
        self._registry = registry
        self._tables: dict[str, dict[str, Record]] = defaultdict(dict)

    def _visible(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, record_id: str
    ) -> Record | None:
        record = self._tables[descriptor.name].get(record_id)

        # Enforce tenancy
        if record is None or record["tenant_id"] != ctx.tenant_id:
            return None

        return record

    def _with_includes(
        self,
        descriptor: ResourceDescriptor,
        ctx: RequestContext,
        record: Record,
        include: tuple[str, ...],
    ) -> Record:
        result = dict(record)
        for name in include:
            relation = descriptor.relations[name]
            target = self._registry.get(relation.resource)
            ref = record.get(relation.foreign_key)
            embedded = self._visible(target, ctx, ref) if ref is not None else None
            result[name] = dict(embedded) if embedded is not None else None
        return result

    def _check_unique(self, descriptor: ResourceDescriptor, candidate: Record) -> None:
        for columns in _unique_column_sets(descriptor):
            key = tuple(candidate.get(col) for col in columns)
            for other in self._tables[descriptor.name].values():
                if other["id"] != candidate["id"] and tuple(other.get(c) for c in columns) == key:
                    raise ConflictError(
                        f"{descriptor.name} record violates unique ({', '.join(columns)})"
                    )

    def _check_references(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, values: Record
    ) -> None:
        """Only keys present in ``values`` are checked, as the SQL store does."""
        for relation in descriptor.relations.values():
            ref = values.get(relation.foreign_key)
            if ref is None:
                continue
            target = self._registry.get(relation.resource)
            if self._visible(target, ctx, ref) is None:
                raise ConflictError(
                    f"{relation.foreign_key} references unknown {relation.resource} record '{ref}'"
                )

    async def find(
        self,
        descriptor: ResourceDescriptor,
        ctx: RequestContext,
        record_id: str,
        options: QueryOptions | None = None,
    ) -> Record | None:
        """Fetch one record by id."""
        options = options or QueryOptions()
        record = self._visible(descriptor, ctx, record_id)

        if record is None or not _matches(record, options.filters):
            return None

        return self._with_includes(descriptor, ctx, record, options.include)

    async def find_many(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, options: QueryOptions
    ) -> list[Record]:
        """List records of the caller's tenant."""
        records = [
            r
            for r in self._tables[descriptor.name].values()
            if r["tenant_id"] == ctx.tenant_id and _matches(r, options.filters)
        ]

        if options.order_field:
            field = options.order_field
            records.sort(key=lambda r: (r.get(field) is None, r.get(field)), reverse=options.descending)

        end = options.offset + options.limit if options.limit is not None else None
        return [
            self._with_includes(descriptor, ctx, r, options.include)
            for r in records[options.offset:end]
        ]

    async def create(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, data: Record
    ) -> Record:
        """Insert a record under the caller's tenant."""
        record: Record = {col: None for col in descriptor.columns}
        record.update(data)
        record["id"] = data.get("id") or new_id()
        record["tenant_id"] = ctx.tenant_id
        record["created_at"] = utcnow()
        record["updated_at"] = None

        if record["id"] in self._tables[descriptor.name]:
            raise ConflictError(f"{descriptor.name} record '{record['id']}' already exists")
        self._check_unique(descriptor, record)
        self._check_references(descriptor, ctx, record)

        self._tables[descriptor.name][record["id"]] = record
        return dict(record)

    async def update(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, record_id: str, patch: Record
    ) -> Record:
        """Replace the named fields on a record."""
        record = self._visible(descriptor, ctx, record_id)
        if record is None:
            raise NotFoundError(f"{descriptor.name} record '{record_id}' not found")

        candidate = {**record, **patch, "updated_at": utcnow()}
        self._check_unique(descriptor, candidate)
        self._check_references(descriptor, ctx, patch)

        self._tables[descriptor.name][record_id] = candidate
        return dict(candidate)

    async def delete(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, record_id: str
    ) -> Record:
        """Remove a record and return its final state."""
        if self._visible(descriptor, ctx, record_id) is None:
            raise NotFoundError(f"{descriptor.name} record '{record_id}' not found")

        removed = self._tables[descriptor.name].pop(record_id)
        self._null_references(descriptor, ctx, record_id)
        return removed

    def _null_references(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, record_id: str
    ) -> None:
        # ON DELETE SET NULL, matching the foreign keys in db/models.py
        for other in self._registry:
            for relation in other.relations.values():
                if relation.resource != descriptor.name:
                    continue
                for record in self._tables[other.name].values():
                    if record["tenant_id"] != ctx.tenant_id:
                        continue
                    if record.get(relation.foreign_key) == record_id:
                        record[relation.foreign_key] = None

    async def locate(self, descriptor: ResourceDescriptor, record_id: str) -> RecordOwner | None:
        """Look up a record's tenant and owner across all tenants."""
        record = self._tables[descriptor.name].get(record_id)

        if record is None:
            return None

        return RecordOwner(tenant_id=record["tenant_id"], user_id=record.get(descriptor.owner_field))


class InMemoryRateLimiter:
    """In-memory implementation of RateLimiter using fixed window."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._windows: dict[str, tuple[datetime, int]] = {}

    async def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available."""
        window = timedelta(seconds=self._window_seconds)

        if key not in self._windows or now >= self._windows[key][0] + window:
            # First request or expired window
            self._windows[key] = (now, 1)
            return None

        window_start, count = self._windows[key]

        if count >= self._max_requests:
            seconds_remaining = int((window_start + window - now).total_seconds())
            return RetryAfter(seconds=max(1, seconds_remaining))

        self._windows[key] = (window_start, count + 1)
        return None
