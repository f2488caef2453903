"""Shared pytest fixtures for all test suites."""

from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from leavedesk.app.db.context import RequestContext
from leavedesk.app.db.inmemory import InMemoryRecordStore
from leavedesk.app.db.models import Base, Tenant, User
from leavedesk.app.resources import ResourceRegistry, default_registry

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"


@pytest.fixture
def registry() -> ResourceRegistry:
    """Default leave/attendance/user registry."""
    return default_registry()


@pytest.fixture
def memory_store(registry: ResourceRegistry) -> InMemoryRecordStore:
    """Empty in-memory record store."""
    return InMemoryRecordStore(registry)


@pytest.fixture
def admin_a() -> RequestContext:
    return RequestContext(tenant_id=TENANT_A, user_id="admin-a", roles=frozenset({"admin"}))


@pytest.fixture
def employee_a() -> RequestContext:
    return RequestContext(tenant_id=TENANT_A, user_id="employee-a", roles=frozenset({"employee"}))


@pytest.fixture
def admin_b() -> RequestContext:
    return RequestContext(tenant_id=TENANT_B, user_id="admin-b", roles=frozenset({"admin"}))


@pytest.fixture
def bearer() -> Callable[[RequestContext], dict[str, str]]:
    """Build Authorization headers for a context."""

    def _headers(ctx: RequestContext) -> dict[str, str]:
        roles = ",".join(sorted(ctx.roles))
        return {"Authorization": f"Bearer {ctx.tenant_id}:{ctx.user_id}:{roles}"}

    return _headers


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the schema and two tenants.

    StaticPool keeps a single connection so every session shares the
    same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSession(engine) as session:
        session.add_all([Tenant(tenant_id=TENANT_A, name="A"), Tenant(tenant_id=TENANT_B, name="B")])
        await session.flush()
        session.add_all(
            [
                User(id="admin-a", tenant_id=TENANT_A, email="admin@a.test", name="Admin A", role="admin"),
                User(id="employee-a", tenant_id=TENANT_A, email="emp@a.test", name="Emp A"),
                User(id="admin-b", tenant_id=TENANT_B, email="admin@b.test", name="Admin B", role="admin"),
            ]
        )
        await session.commit()

    yield engine

    await engine.dispose()
