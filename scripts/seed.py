#!/usr/bin/env python
"""
Create the demo tenant and its administrator for local development.

The demo password is deliberately below the strength policy; it is
written straight to the database and never goes through the API.
"""

import argparse
import asyncio
import sys

from sqlalchemy import select

from flowgrid_auth.core.auth import hash_password
from flowgrid_auth.core.database import async_session_factory
from flowgrid_auth.core.utils.time import utcnow
from flowgrid_auth.modules.tenants.models import Tenant
from flowgrid_auth.modules.users.models import User, UserRole


DEMO_TENANT = {"name": "Demo", "slug": "demo", "tier": "enterprise"}
DEMO_ADMIN_EMAIL = "demo@flowgrid.io"
DEMO_ADMIN_PASSWORD = "demo123"


async def seed_demo() -> None:
    """Create the demo tenant and admin if they do not exist yet."""
    async with async_session_factory() as session:
        result = await session.execute(select(Tenant).where(Tenant.slug == DEMO_TENANT["slug"]))
        tenant = result.scalar_one_or_none()

        if tenant:
            print(f"Demo tenant already exists: {tenant.name} ({tenant.id})")
        else:
            tenant = Tenant(**DEMO_TENANT)
            session.add(tenant)
            await session.flush()
            print(f"Created tenant: {tenant.name} ({tenant.id})")

        result = await session.execute(
            select(User).where(User.tenant_id == tenant.id, User.email == DEMO_ADMIN_EMAIL)
        )
        if result.scalar_one_or_none():
            print(f"Demo admin already exists: {DEMO_ADMIN_EMAIL}")
        else:
            session.add(
                User(
                    tenant_id=tenant.id,
                    email=DEMO_ADMIN_EMAIL,
                    name="Demo Admin",
                    password_hash=hash_password(DEMO_ADMIN_PASSWORD),
                    role=UserRole.ADMIN.value,
                    email_verified=True,
                    password_changed_at=utcnow(),
                )
            )
            print(f"Created admin: {DEMO_ADMIN_EMAIL} / {DEMO_ADMIN_PASSWORD}")

        await session.commit()


async def main(scenario: str) -> None:
    """Run the seeding based on scenario."""
    if scenario == "demo":
        await seed_demo()
    else:
        print(f"Unknown scenario: {scenario}")
        print("Available scenarios: demo")
        sys.exit(1)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed database with demo data")
    parser.add_argument(
        "--scenario",
        "-s",
        default="demo",
        help="Seed scenario to run (demo)",
    )
    args = parser.parse_args()

    asyncio.run(main(args.scenario))
