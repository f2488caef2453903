"""Integration tests for the SQL record store and the app on SQLite."""

import datetime

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from leavedesk.app.config import Settings
from leavedesk.app.db.context import RequestContext
from leavedesk.app.db.engine import create_session_factory
from leavedesk.app.db.queries import QueryOptions
from leavedesk.app.db.sql_repositories import SqlRecordStore
from leavedesk.app.errors import ConflictError, NotFoundError
from leavedesk.app.main import create_app
from leavedesk.app.resources import ResourceRegistry

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"


@pytest.fixture
def sql_store(sqlite_engine: AsyncEngine, registry: ResourceRegistry) -> SqlRecordStore:
    return SqlRecordStore(create_session_factory(sqlite_engine), registry)


@pytest.mark.asyncio
async def test_create_and_find(
    sql_store: SqlRecordStore, registry: ResourceRegistry, admin_a: RequestContext
) -> None:
    leaves = registry.get("leaves")

    created = await sql_store.create(
        leaves,
        admin_a,
        {"status": "pending", "start_date": datetime.date(2026, 5, 1), "user_id": "employee-a"},
    )
    found = await sql_store.find(leaves, admin_a, created["id"])

    assert created["tenant_id"] == TENANT_A
    assert created["created_at"] is not None
    assert created["updated_at"] is None
    assert found == created


@pytest.mark.asyncio
async def test_find_is_tenant_scoped(
    sql_store: SqlRecordStore,
    registry: ResourceRegistry,
    admin_a: RequestContext,
    admin_b: RequestContext,
) -> None:
    """Test that one tenant never reads another tenant's rows."""
    leaves = registry.get("leaves")
    created = await sql_store.create(leaves, admin_b, {"status": "pending"})

    assert await sql_store.find(leaves, admin_a, created["id"]) is None
    assert await sql_store.find_many(leaves, admin_a, QueryOptions()) == []
    with pytest.raises(NotFoundError):
        await sql_store.update(leaves, admin_a, created["id"], {"status": "approved"})
    with pytest.raises(NotFoundError):
        await sql_store.delete(leaves, admin_a, created["id"])

    owner = await sql_store.locate(leaves, created["id"])
    assert owner is not None
    assert owner.tenant_id == TENANT_B


@pytest.mark.asyncio
async def test_update_changes_only_given_fields(
    sql_store: SqlRecordStore, registry: ResourceRegistry, admin_a: RequestContext
) -> None:
    leaves = registry.get("leaves")
    created = await sql_store.create(leaves, admin_a, {"status": "pending", "reason": "trip"})

    updated = await sql_store.update(leaves, admin_a, created["id"], {"status": "approved"})

    assert updated["status"] == "approved"
    assert updated["reason"] == "trip"
    assert updated["updated_at"] is not None


@pytest.mark.asyncio
async def test_delete_missing_raises(
    sql_store: SqlRecordStore, registry: ResourceRegistry, admin_a: RequestContext
) -> None:
    leaves = registry.get("leaves")
    created = await sql_store.create(leaves, admin_a, {"status": "pending"})

    deleted = await sql_store.delete(leaves, admin_a, created["id"])

    assert deleted["id"] == created["id"]
    with pytest.raises(NotFoundError):
        await sql_store.delete(leaves, admin_a, created["id"])


@pytest.mark.asyncio
async def test_find_many_filters_orders_and_includes(
    sql_store: SqlRecordStore, registry: ResourceRegistry, admin_a: RequestContext
) -> None:
    attendances = registry.get("attendances")
    for day, user in ((1, "employee-a"), (2, "admin-a"), (3, "employee-a")):
        await sql_store.create(
            attendances,
            admin_a,
            {"date": datetime.date(2026, 3, day), "hours_worked": 8, "user_id": user},
        )

    options = QueryOptions(
        filters={"user_id": "employee-a"}, include=("user",), order_by="-date", limit=10
    )
    records = await sql_store.find_many(attendances, admin_a, options)

    assert [r["date"] for r in records] == [datetime.date(2026, 3, 3), datetime.date(2026, 3, 1)]
    assert all(r["user"]["email"] == "emp@a.test" for r in records)


@pytest.mark.asyncio
async def test_reference_to_other_tenant_user_conflicts(
    sql_store: SqlRecordStore, registry: ResourceRegistry, admin_a: RequestContext
) -> None:
    with pytest.raises(ConflictError):
        await sql_store.create(
            registry.get("leaves"), admin_a, {"status": "pending", "user_id": "admin-b"}
        )


@pytest.mark.asyncio
async def test_duplicate_email_conflicts(
    sql_store: SqlRecordStore, registry: ResourceRegistry, admin_a: RequestContext
) -> None:
    """Test that a unique constraint violation surfaces as a conflict."""
    with pytest.raises(ConflictError):
        await sql_store.create(
            registry.get("users"),
            admin_a,
            {"email": "emp@a.test", "name": "Dup", "role": "employee"},
        )


@pytest.mark.asyncio
async def test_api_on_sql_backend(sqlite_engine: AsyncEngine, registry: ResourceRegistry) -> None:
    """Test the full request path against the SQL store."""
    app = create_app(
        Settings(store_backend="sql"),
        registry=registry,
        store=SqlRecordStore(create_session_factory(sqlite_engine), registry),
        engine=sqlite_engine,
    )
    transport = httpx.ASGITransport(app=app)
    admin = {"Authorization": f"Bearer {TENANT_A}:admin-a:admin"}
    employee = {"Authorization": f"Bearer {TENANT_A}:employee-a:employee"}

    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        created = await client.post(
            "/api/attendances", json={"date": "2026-03-02", "hours_worked": 7}, headers=employee
        )
        assert created.status_code == 201
        assert created.json()["user_id"] == "employee-a"

        url = f"/api/attendances/{created.json()['id']}"
        updated = await client.put(url, json={"date": "2026-03-02", "hours_worked": 9}, headers=admin)
        assert updated.status_code == 200
        assert updated.json()["hours_worked"] == 9

        invalid = await client.put(url, json={"date": "not-a-date"}, headers=admin)
        assert invalid.status_code == 422

        health = await client.get("/healthz")
        assert health.json()["components"]["db"] == "ok"

        assert (await client.delete(url, headers=employee)).status_code == 403
        assert (await client.delete(url, headers=admin)).status_code == 200
        assert (await client.get(url, headers=admin)).json() is None
