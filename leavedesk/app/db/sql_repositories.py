"""SQL implementation of the record store interface."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leavedesk.app.db.context import RequestContext
from leavedesk.app.db.models import Base, utcnow
from leavedesk.app.db.queries import QueryOptions, scoped_select
from leavedesk.app.db.repositories import Record, RecordOwner
from leavedesk.app.errors import ConflictError, NotFoundError
from leavedesk.app.resources import ResourceDescriptor, ResourceRegistry

logger = logging.getLogger(__name__)


def _to_record(descriptor: ResourceDescriptor, row: Base) -> Record:
    return {col: getattr(row, col) for col in descriptor.columns}


class SqlRecordStore:
    """SQL implementation of RecordStore.

    Each call runs in its own session and transaction.
    """

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession], registry: ResourceRegistry
    ) -> None:
        self._session_factory = session_factory
        self._registry = registry

    def _filtered(self, descriptor: ResourceDescriptor, ctx: RequestContext, options: QueryOptions):
        model = descriptor.model
        stmt = scoped_select(descriptor, ctx)
        for key, value in options.filters.items():
            stmt = stmt.where(getattr(model, key) == value)
        return stmt

    async def _get_row(
        self,
        session: AsyncSession,
        descriptor: ResourceDescriptor,
        ctx: RequestContext,
        record_id: str,
    ) -> Base:
        model = descriptor.model
        result = await session.execute(scoped_select(descriptor, ctx).where(model.id == record_id))
        row = result.scalar_one_or_none()

        if row is None:
            raise NotFoundError(f"{descriptor.name} record '{record_id}' not found")

        return row

    async def _with_includes(
        self,
        session: AsyncSession,
        descriptor: ResourceDescriptor,
        ctx: RequestContext,
        records: list[Record],
        include: tuple[str, ...],
    ) -> list[Record]:
        for name in include:
            relation = descriptor.relations[name]
            target = self._registry.get(relation.resource)
            refs = {r[relation.foreign_key] for r in records if r.get(relation.foreign_key)}

            embedded: dict[str, Record] = {}
            if refs:
                result = await session.execute(
                    scoped_select(target, ctx).where(target.model.id.in_(refs))
                )
                embedded = {row.id: _to_record(target, row) for row in result.scalars()}

            for record in records:
                record[name] = embedded.get(record.get(relation.foreign_key))

        return records

    async def _check_references(
        self,
        session: AsyncSession,
        descriptor: ResourceDescriptor,
        ctx: RequestContext,
        values: Record,
    ) -> None:
        for relation in descriptor.relations.values():
            ref = values.get(relation.foreign_key)
            if ref is None:
                continue
            target = self._registry.get(relation.resource)
            result = await session.execute(
                scoped_select(target, ctx).where(target.model.id == ref)
            )
            if result.scalar_one_or_none() is None:
                raise ConflictError(
                    f"{relation.foreign_key} references unknown {relation.resource} record '{ref}'"
                )

    async def _commit(self, session: AsyncSession, descriptor: ResourceDescriptor) -> None:
        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            logger.warning(
                "Integrity error writing %s", descriptor.name,
                extra={"structured": {"resource": descriptor.name, "error": str(e.orig)}},
            )
            raise ConflictError(f"{descriptor.name} record violates a constraint") from e

    async def find(
        self,
        descriptor: ResourceDescriptor,
        ctx: RequestContext,
        record_id: str,
        options: QueryOptions | None = None,
    ) -> Record | None:
        """Fetch one record by id."""
        options = options or QueryOptions()

        async with self._session_factory() as session:
            stmt = self._filtered(descriptor, ctx, options).where(descriptor.model.id == record_id)
            row = (await session.execute(stmt)).scalar_one_or_none()

            if row is None:
                return None

            records = await self._with_includes(
                session, descriptor, ctx, [_to_record(descriptor, row)], options.include
            )
            return records[0]

    async def find_many(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, options: QueryOptions
    ) -> list[Record]:
        """List records of the caller's tenant."""
        model = descriptor.model
        stmt = self._filtered(descriptor, ctx, options)

        if options.order_field:
            column = getattr(model, options.order_field)
            stmt = stmt.order_by(column.desc() if options.descending else column.asc())
        else:
            stmt = stmt.order_by(model.created_at, model.id)

        stmt = stmt.offset(options.offset)
        if options.limit is not None:
            stmt = stmt.limit(options.limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            records = [_to_record(descriptor, row) for row in result.scalars()]
            return await self._with_includes(session, descriptor, ctx, records, options.include)

    async def create(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, data: Record
    ) -> Record:
        """Insert a record under the caller's tenant."""
        async with self._session_factory() as session:
            await self._check_references(session, descriptor, ctx, data)

            row = descriptor.model(**data, tenant_id=ctx.tenant_id)
            session.add(row)
            await self._commit(session, descriptor)

            # Load server-side defaults
            await session.refresh(row)
            return _to_record(descriptor, row)

    async def update(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, record_id: str, patch: Record
    ) -> Record:
        """Replace the named fields on a record."""
        async with self._session_factory() as session:
            row = await self._get_row(session, descriptor, ctx, record_id)
            await self._check_references(session, descriptor, ctx, patch)

            for key, value in patch.items():
                setattr(row, key, value)
            row.updated_at = utcnow()

            await self._commit(session, descriptor)
            return _to_record(descriptor, row)

    async def delete(
        self, descriptor: ResourceDescriptor, ctx: RequestContext, record_id: str
    ) -> Record:
        """Remove a record and return its final state."""
        async with self._session_factory() as session:
            row = await self._get_row(session, descriptor, ctx, record_id)
            record = _to_record(descriptor, row)

            await session.delete(row)
            await self._commit(session, descriptor)
            return record

    async def locate(self, descriptor: ResourceDescriptor, record_id: str) -> RecordOwner | None:
        """Look up a record's tenant and owner across all tenants."""
        model = descriptor.model
        stmt = select(model.tenant_id, getattr(model, descriptor.owner_field)).where(
            model.id == record_id
        )

        async with self._session_factory() as session:
            row = (await session.execute(stmt)).first()

        if row is None:
            return None

        return RecordOwner(tenant_id=row[0], user_id=row[1])
