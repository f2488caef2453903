"""Protocol interfaces for data access and rate limiting."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from leavedesk.app.db.context import RequestContext
from leavedesk.app.db.queries import QueryOptions
from leavedesk.app.resources import ResourceDescriptor

Record = dict[str, Any]


@dataclass(frozen=True)
class RecordOwner:
    """Where a record lives, independent of the caller's tenant."""

    tenant_id: str
    user_id: str | None


class RecordStore(Protocol):
    """Tenant-scoped record store used by the request handler.

    Every method except ``locate`` only sees records of ``ctx.tenant_id``.
    """

    async def find(
        self,
        descriptor: ResourceDescriptor,
        ctx: RequestContext,
        record_id: str,
        options: QueryOptions | None = None,
    ) -> Record | None:
        """Fetch one record by id.

        Returns:
            The record, or None if it does not exist in the caller's tenant
        """
        ...

    async def find_many(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, options: QueryOptions
    ) -> list[Record]:
        """List records matching the options' filters."""
        ...

    async def create(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, data: Record
    ) -> Record:
        """Insert a record under the caller's tenant.

        Raises:
            ConflictError: If the store rejects the row on a constraint
        """
        ...

    async def update(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, record_id: str, patch: Record
    ) -> Record:
        """Replace the named fields on a record.

        Raises:
            NotFoundError: If the record does not exist in the caller's tenant
            ConflictError: If the store rejects the change on a constraint
        """
        ...

    async def delete(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, record_id: str
    ) -> Record:
        """Remove a record and return its final state.

        Raises:
            NotFoundError: If the record does not exist in the caller's tenant
        """
        ...

    async def locate(self, descriptor: ResourceDescriptor, record_id: str) -> RecordOwner | None:
        """Look up a record's tenant and owner without tenant scoping.

        Only the access policy calls this.
        """
        ...


@dataclass
class RetryAfter:
    """Rate limit retry-after information."""

    seconds: int


class RateLimiter(Protocol):
    """Rate limiter interface."""

    async def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Args:
            key: Rate limit key
            now: Current timestamp

        Returns:
            RetryAfter if over quota, None if allowed
        """
        ...
