"""Role based access policy - the authorization provider.

A role holds grants; a grant allows a set of operations on a set of
resources, either on every record of the tenant or only on records the
actor owns. Records of other tenants are never accessible.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from leavedesk.app.authz.operations import Operation
from leavedesk.app.db.context import RequestContext
from leavedesk.app.db.repositories import RecordStore
from leavedesk.app.resources import ResourceDescriptor

Scope = Literal["tenant", "own"]

ALL_OPERATIONS = frozenset(Operation)


@dataclass(frozen=True)
class Grant:
    """Operations a role may perform on some resources.

    Attributes:
        operations: Allowed operation kinds
        resources: Resource names covered, None for every resource
        scope: ``tenant`` for any record in the tenant, ``own`` for records
            whose owner field names the actor
    """

    operations: frozenset[Operation]
    resources: frozenset[str] | None = None
    scope: Scope = "tenant"

    def covers(self, resource: str, operation: Operation) -> bool:
        return operation in self.operations and (
            self.resources is None or resource in self.resources
        )


@dataclass(frozen=True)
class AccessDecision:
    """Allow/deny result for one identity-record-operation triple.

    ``owner_only`` is set when the decision rests on an ``own`` scoped
    grant; collection reads must then be restricted to the actor's records.
    """

    allowed: bool
    reason: str
    owner_only: bool = False


class AccessPolicy(Protocol):
    """Authorization provider interface."""

    async def check_access(
        self,
        ctx: RequestContext,
        descriptor: ResourceDescriptor,
        record_id: str | None,
        operation: Operation,
        payload: Any = None,
    ) -> AccessDecision:
        """Decide whether ``ctx`` may perform ``operation`` on the record.

        Args:
            ctx: Acting identity
            descriptor: Resource being accessed
            record_id: Target record, None for collection operations
            operation: Operation kind derived from the HTTP method
            payload: Raw request body for writes

        Returns:
            The access decision
        """
        ...


def default_grants() -> dict[str, list[Grant]]:
    """Grants for the built-in roles."""
    staff_records = frozenset({"leaves", "attendances"})
    read = frozenset({Operation.read})

    return {
        "admin": [Grant(operations=ALL_OPERATIONS)],
        "hr": [Grant(operations=ALL_OPERATIONS)],
        "manager": [
            Grant(operations=frozenset({Operation.read, Operation.update}), resources=staff_records),
            Grant(operations=read, resources=frozenset({"users"})),
        ],
        "employee": [
            Grant(
                operations=frozenset({Operation.create, Operation.read, Operation.update}),
                resources=staff_records,
                scope="own",
            ),
            Grant(operations=read, resources=frozenset({"users"}), scope="own"),
        ],
    }


class RoleAccessPolicy:
    """AccessPolicy backed by role grants and record ownership lookups."""

    def __init__(self, store: RecordStore, grants: Mapping[str, list[Grant]] | None = None) -> None:
        self._store = store
        self._grants = dict(grants) if grants is not None else default_grants()

    def _matching_grants(
        self, ctx: RequestContext, resource: str, operation: Operation
    ) -> list[Grant]:
        return [
            grant
            for role in sorted(ctx.roles)
            for grant in self._grants.get(role, [])
            if grant.covers(resource, operation)
        ]

    async def check_access(
        self,
        ctx: RequestContext,
        descriptor: ResourceDescriptor,
        record_id: str | None,
        operation: Operation,
        payload: Any = None,
    ) -> AccessDecision:
        """Decide access for one request."""
        grants = self._matching_grants(ctx, descriptor.name, operation)
        if not grants:
            return AccessDecision(
                allowed=False, reason=f"No role grants {operation.value} on {descriptor.name}"
            )

        tenant_wide = any(grant.scope == "tenant" for grant in grants)

        if record_id is not None:
            owner = await self._store.locate(descriptor, record_id)

            if owner is not None and owner.tenant_id != ctx.tenant_id:
                return AccessDecision(allowed=False, reason="Record belongs to another tenant")

            if not tenant_wide and owner is not None and owner.user_id != ctx.user_id:
                return AccessDecision(allowed=False, reason="Record is owned by another user")

        if tenant_wide:
            return AccessDecision(allowed=True, reason="Tenant-wide grant")

        # Own scope: a write must not hand the record to somebody else.
        # A null owner on create is filled with the actor; on update it detaches.
        if isinstance(payload, dict) and descriptor.owner_field in payload:
            target = payload[descriptor.owner_field]
            reassigns = target != ctx.user_id and (
                target is not None or operation is Operation.update
            )
            if operation in (Operation.create, Operation.update) and reassigns:
                return AccessDecision(
                    allowed=False, reason="Cannot assign record to another user"
                )

        return AccessDecision(allowed=True, reason="Own-record grant", owner_only=True)
