"""Pytest configuration and shared fixtures.

API tests run against an in-memory SQLite database. The rate limiter and
the notification dispatcher are replaced with in-process doubles so no
Redis or email API is needed.
"""

import os


# Cheap hashing for tests; must be set before the settings are loaded
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("BACKUP_CODE_BCRYPT_ROUNDS", "4")

import re  # noqa: E402
from collections import Counter  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from flowgrid_auth.core.audit.models import AuthAuditLog  # noqa: E402, F401
from flowgrid_auth.core.auth import create_access_token, hash_password  # noqa: E402
from flowgrid_auth.core.database import Base, get_db  # noqa: E402
from flowgrid_auth.core.notifications import NotificationDispatcher, get_notifier  # noqa: E402
from flowgrid_auth.core.rate_limit import (  # noqa: E402
    RateLimitResult,
    SlidingWindowRateLimiter,
    get_rate_limiter,
)
from flowgrid_auth.main import create_app  # noqa: E402
from flowgrid_auth.modules.invites.models import InviteToken  # noqa: E402, F401
from flowgrid_auth.modules.mfa.models import MFABackupCode, MFASecret  # noqa: E402, F401
from flowgrid_auth.modules.passwords.models import PasswordResetToken  # noqa: E402, F401
from flowgrid_auth.modules.tenants.models import Tenant  # noqa: E402
from flowgrid_auth.modules.users.models import RefreshToken, User, UserRole  # noqa: E402, F401
from tests.factories import TenantFactory, UserFactory  # noqa: E402


TEST_DATABASE_URL = "sqlite+aiosqlite://"

DEMO_PASSWORD = "demo123"

TOKEN_PATTERN = re.compile(r"token=([A-Za-z0-9_\-]+)")


class InMemoryRateLimiter(SlidingWindowRateLimiter):
    """Counts requests per (endpoint class, identifier) without a window."""

    def __init__(self) -> None:
        super().__init__()
        self.counts: Counter[str] = Counter()

    async def is_allowed(
        self,
        identifier: str,
        limit: int,
        window: int,
        endpoint_class: str | None = None,
    ) -> RateLimitResult:
        key = self._build_key(identifier, endpoint_class)
        self.counts[key] += 1
        count = self.counts[key]
        allowed = count <= limit
        return RateLimitResult(
            allowed=allowed,
            limit=limit,
            remaining=max(0, limit - count),
            reset_time=window,
            retry_after=None if allowed else window,
        )


class RecordingNotifier(NotificationDispatcher):
    """Keeps outgoing emails in memory instead of calling the email API."""

    def __init__(self) -> None:
        super().__init__(
            api_url="http://email.test/emails",
            api_key="test-key",
            sender="Flowgrid <noreply@flowgrid.test>",
            base_url="http://app.test",
            timeout=1.0,
        )
        self.sent: list[dict[str, str]] = []

    async def send(self, to: str, subject: str, html: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True

    def to(self, address: str) -> list[dict[str, str]]:
        """Emails sent to one address, oldest first."""
        return [message for message in self.sent if message["to"] == address]

    def last_token(self, address: str) -> str:
        """Token carried by the link of the latest email to an address."""
        match = TOKEN_PATTERN.search(self.to(address)[-1]["html"])
        assert match is not None, "no token link in the email"
        return match.group(1)


# ============================================================
# Database and Application Fixtures
# ============================================================


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional database session for tests.

    The session joins an outer transaction that is rolled back after the
    test, so explicit commits inside services only flush.
    """
    async with engine.connect() as conn:
        await conn.begin()

        session = AsyncSession(bind=conn, expire_on_commit=False, autoflush=False)
        try:
            yield session
        finally:
            await session.close()
            await conn.rollback()


@pytest.fixture
def rate_limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
async def app(
    db: AsyncSession,
    rate_limiter: InMemoryRateLimiter,
    notifier: RecordingNotifier,
) -> AsyncGenerator[FastAPI, None]:
    """Create test application instance."""
    application = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db
        await db.commit()

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    application.dependency_overrides[get_notifier] = lambda: notifier

    yield application

    application.dependency_overrides.clear()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


# ============================================================
# Tenant and User Fixtures
# ============================================================


@pytest.fixture
async def tenant(db: AsyncSession) -> Tenant:
    """The demo tenant."""
    tenant = TenantFactory.build(name="Demo", slug="demo", tier="enterprise")
    db.add(tenant)
    await db.flush()
    return tenant


@pytest.fixture
async def admin(db: AsyncSession, tenant: Tenant) -> User:
    """The demo administrator, ``demo@flowgrid.io`` / ``demo123``."""
    user = UserFactory.build(
        tenant_id=tenant.id,
        email="demo@flowgrid.io",
        name="Demo Admin",
        password_hash=hash_password(DEMO_PASSWORD),
        role=UserRole.ADMIN.value,
    )
    db.add(user)
    await db.flush()
    return user


@pytest.fixture
async def user(db: AsyncSession, tenant: Tenant) -> User:
    """A regular user of the demo tenant with ``UserFactory``'s default password."""
    user = UserFactory.build(tenant_id=tenant.id)
    db.add(user)
    await db.flush()
    return user


@pytest.fixture
async def other_tenant_user(db: AsyncSession) -> User:
    """A user of a second tenant."""
    other = TenantFactory.build()
    db.add(other)
    await db.flush()

    user = UserFactory.build(tenant_id=other.id)
    db.add(user)
    await db.flush()
    return user


def bearer(user: User) -> dict[str, str]:
    """Authorization header carrying a fresh access token for ``user``."""
    token = create_access_token(user.id, user.tenant_id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return bearer(admin)


@pytest.fixture
def user_headers(user: User) -> dict[str, str]:
    return bearer(user)
