"""Dev seeding helper - a demo tenant with users, leaves and attendances."""

import asyncio
import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from leavedesk.app.config import get_settings
from leavedesk.app.db.engine import create_async_engine_from_settings
from leavedesk.app.db.models import Attendance, Leave, Tenant, User

DEV_TENANT_ID = "dev-tenant"
DEV_ADMIN_ID = "dev-admin"
DEV_EMPLOYEE_ID = "dev-employee"


def dev_tokens() -> dict[str, str]:
    """Bearer tokens matching the seeded users."""
    return {
        "admin": f"Bearer {DEV_TENANT_ID}:{DEV_ADMIN_ID}:admin",
        "employee": f"Bearer {DEV_TENANT_ID}:{DEV_EMPLOYEE_ID}:employee",
    }


async def seed_dev_tenant(engine: AsyncEngine) -> bool:
    """Seed the dev tenant and its users.

    This function is idempotent - safe to run multiple times.

    Returns:
        True if rows were created, False if the tenant already existed
    """
    async with AsyncSession(engine, expire_on_commit=False) as session:
        result = await session.execute(select(Tenant).where(Tenant.tenant_id == DEV_TENANT_ID))
        if result.scalar_one_or_none() is not None:
            return False

        session.add(Tenant(tenant_id=DEV_TENANT_ID, name="Dev Tenant"))
        session.add_all(
            [
                User(
                    id=DEV_ADMIN_ID,
                    tenant_id=DEV_TENANT_ID,
                    email="admin@example.com",
                    name="Dev Admin",
                    role="admin",
                ),
                User(
                    id=DEV_EMPLOYEE_ID,
                    tenant_id=DEV_TENANT_ID,
                    email="employee@example.com",
                    name="Dev Employee",
                    role="employee",
                ),
            ]
        )
        await session.flush()

        today = datetime.date.today()
        session.add_all(
            [
                Leave(
                    tenant_id=DEV_TENANT_ID,
                    user_id=DEV_EMPLOYEE_ID,
                    status="pending",
                    leave_type="annual",
                    start_date=today + datetime.timedelta(days=14),
                    end_date=today + datetime.timedelta(days=18),
                    reason="Family trip",
                ),
                Attendance(
                    tenant_id=DEV_TENANT_ID,
                    user_id=DEV_EMPLOYEE_ID,
                    date=today,
                    hours_worked=8,
                ),
            ]
        )
        await session.commit()

    return True


async def main() -> None:
    engine = create_async_engine_from_settings(get_settings())
    try:
        created = await seed_dev_tenant(engine)
    finally:
        await engine.dispose()

    if created:
        print(f"Seeded tenant {DEV_TENANT_ID}")
        for role, token in dev_tokens().items():
            print(f"  {role}: Authorization: {token}")
    else:
        print(f"Dev tenant already exists: {DEV_TENANT_ID}")


if __name__ == "__main__":
    asyncio.run(main())
