"""Integration tests for login, refresh, logout, verify and profile endpoints."""

from datetime import timedelta

import pytest
from httpx import AsyncClient, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flowgrid_auth.config import settings
from flowgrid_auth.core.audit import AuthAuditLog
from flowgrid_auth.core.auth import create_access_token, create_refresh_token, decode_token
from flowgrid_auth.core.utils.time import utcnow
from flowgrid_auth.modules.tenants.models import Tenant
from flowgrid_auth.modules.users.models import RefreshToken, User
from tests.conftest import DEMO_PASSWORD, bearer
from tests.factories import TenantFactory, UserFactory
from tests.factories.user import DEFAULT_PASSWORD


pytestmark = pytest.mark.integration


async def login(client: AsyncClient, email: str, password: str, **extra: str) -> Response:
    response = await client.post(
        "/api/auth/login",
        json={"email": email, "password": password, **extra},
    )
    return response


async def audit_actions(db: AsyncSession, user_id) -> list[tuple[str, str]]:
    result = await db.execute(
        select(AuthAuditLog.action, AuthAuditLog.status)
        .where(AuthAuditLog.user_id == user_id)
        .order_by(AuthAuditLog.created_at)
    )
    return [(row.action, row.status) for row in result]


class TestLogin:
    """Tests for POST /api/auth/login."""

    async def test_demo_admin_login(self, client: AsyncClient, admin: User, tenant: Tenant):
        """The demo admin gets a full session for their tenant."""
        response = await login(client, "demo@flowgrid.io", DEMO_PASSWORD)

        assert response.status_code == 200
        data = response.json()
        assert data["mfaRequired"] is False
        assert data["accessToken"]
        assert data["refreshToken"]
        assert data["tokenType"] == "bearer"
        assert data["expiresIn"] == settings.access_token_expire_minutes * 60
        assert data["user"]["role"] == "admin"
        assert data["user"]["email"] == "demo@flowgrid.io"
        assert data["tenant"]["slug"] == "demo"

        claims = decode_token(data["accessToken"])
        assert claims.tenant_id == tenant.id
        assert claims.user_id == admin.id
        assert claims.type == "access"

    async def test_login_sets_refresh_cookie(self, client: AsyncClient, admin: User):
        """The refresh token is also delivered as an HTTP-only strict cookie."""
        response = await login(client, "demo@flowgrid.io", DEMO_PASSWORD)

        cookie = response.headers["set-cookie"]
        assert f"refreshToken={response.json()['refreshToken']}" in cookie
        assert "HttpOnly" in cookie
        assert "samesite=strict" in cookie.lower()
        assert f"Max-Age={settings.refresh_token_expire_days * 86400}" in cookie

    async def test_login_email_is_case_insensitive(self, client: AsyncClient, admin: User):
        response = await login(client, "Demo@FlowGrid.io", DEMO_PASSWORD)

        assert response.status_code == 200

    async def test_login_stores_hashed_refresh_token(
        self, client: AsyncClient, db: AsyncSession, admin: User
    ):
        """Only the hash of the refresh token reaches the ledger."""
        response = await login(client, "demo@flowgrid.io", DEMO_PASSWORD)
        refresh_token = response.json()["refreshToken"]

        rows = (
            await db.execute(select(RefreshToken).where(RefreshToken.user_id == admin.id))
        ).scalars().all()
        assert len(rows) == 1
        assert rows[0].token_hash != refresh_token
        assert len(rows[0].token_hash) == 64
        assert rows[0].revoked is False

    async def test_each_login_issues_a_distinct_refresh_token(
        self, client: AsyncClient, admin: User
    ):
        first = (await login(client, "demo@flowgrid.io", DEMO_PASSWORD)).json()
        second = (await login(client, "demo@flowgrid.io", DEMO_PASSWORD)).json()

        assert first["refreshToken"] != second["refreshToken"]

    async def test_login_wrong_password(self, client: AsyncClient, admin: User):
        response = await login(client, "demo@flowgrid.io", "wrong-password")

        assert response.status_code == 401
        data = response.json()
        assert data["error_code"] == "invalid_credentials"
        assert data["detail"] == "Invalid email or password"

    async def test_unknown_email_looks_like_wrong_password(
        self, client: AsyncClient, admin: User
    ):
        """Unknown emails get the same response as a wrong password."""
        unknown = await login(client, "nobody@flowgrid.io", DEMO_PASSWORD)
        wrong = await login(client, "demo@flowgrid.io", "wrong-password")

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json()["error_code"] == wrong.json()["error_code"]
        assert unknown.json()["detail"] == wrong.json()["detail"]

    async def test_unknown_email_is_audited(self, client: AsyncClient, db: AsyncSession):
        await login(client, "nobody@flowgrid.io", "whatever")

        entry = (
            await db.execute(select(AuthAuditLog).where(AuthAuditLog.action == "login_attempt"))
        ).scalar_one()
        assert entry.status == "failure"
        assert entry.user_id is None
        assert entry.details == {"email": "nobody@flowgrid.io", "reason": "user_not_found"}

    async def test_disabled_account(self, client: AsyncClient, db: AsyncSession, user: User):
        user.is_active = False
        await db.flush()

        response = await login(client, user.email, DEFAULT_PASSWORD)

        assert response.status_code == 401
        assert response.json()["error_code"] == "account_disabled"
        assert ("login_attempt", "blocked") in await audit_actions(db, user.id)

    async def test_missing_fields_are_rejected(self, client: AsyncClient):
        response = await client.post("/api/auth/login", json={"email": "demo@flowgrid.io"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "validation_error"

    async def test_successful_login_is_audited(
        self, client: AsyncClient, db: AsyncSession, admin: User
    ):
        await login(client, "demo@flowgrid.io", DEMO_PASSWORD)

        assert ("login", "success") in await audit_actions(db, admin.id)
        assert admin.last_login_at is not None


class TestLockout:
    """Tests for account lockout after repeated failures."""

    async def test_sixth_attempt_is_locked_even_with_correct_password(
        self, client: AsyncClient, db: AsyncSession, user: User
    ):
        for _ in range(settings.lockout_threshold):
            response = await login(client, user.email, "wrong-password")
            assert response.status_code == 401
            assert response.json()["error_code"] == "invalid_credentials"

        response = await login(client, user.email, DEFAULT_PASSWORD)

        assert response.status_code == 401
        assert response.json()["error_code"] == "account_locked"
        assert user.failed_login_attempts == settings.lockout_threshold
        assert user.locked_until is not None

    async def test_fewer_failures_do_not_lock(self, client: AsyncClient, user: User):
        for _ in range(settings.lockout_threshold - 1):
            await login(client, user.email, "wrong-password")

        response = await login(client, user.email, DEFAULT_PASSWORD)

        assert response.status_code == 200
        assert user.failed_login_attempts == 0

    async def test_expired_lock_allows_login(
        self, client: AsyncClient, db: AsyncSession, user: User
    ):
        user.failed_login_attempts = settings.lockout_threshold
        user.locked_until = utcnow() - timedelta(minutes=1)
        await db.flush()

        response = await login(client, user.email, DEFAULT_PASSWORD)

        assert response.status_code == 200
        assert user.failed_login_attempts == 0
        assert user.locked_until is None

    async def test_lockout_is_audited(self, client: AsyncClient, db: AsyncSession, user: User):
        for _ in range(settings.lockout_threshold):
            await login(client, user.email, "wrong-password")

        entries = (
            await db.execute(
                select(AuthAuditLog)
                .where(AuthAuditLog.user_id == user.id)
                .order_by(AuthAuditLog.created_at)
            )
        ).scalars().all()
        assert len(entries) == settings.lockout_threshold
        assert entries[-1].details["attempts"] == settings.lockout_threshold
        assert "locked_until" in entries[-1].details


class TestTenantSelection:
    """Tests for emails that exist in more than one tenant."""

    async def test_ambiguous_email_requires_tenant(
        self, client: AsyncClient, db: AsyncSession, user: User
    ):
        other = TenantFactory.build(slug="other-co")
        db.add(other)
        await db.flush()
        db.add(UserFactory.build(tenant_id=other.id, email=user.email))
        await db.flush()

        ambiguous = await login(client, user.email, DEFAULT_PASSWORD)
        scoped = await login(client, user.email, DEFAULT_PASSWORD, tenant="other-co")

        assert ambiguous.status_code == 401
        assert ambiguous.json()["error_code"] == "invalid_credentials"
        assert scoped.status_code == 200
        assert scoped.json()["tenant"]["slug"] == "other-co"


class TestRefresh:
    """Tests for POST /api/auth/refresh."""

    async def test_refresh_with_body_token(self, client: AsyncClient, admin: User):
        session = (await login(client, "demo@flowgrid.io", DEMO_PASSWORD)).json()
        client.cookies.clear()

        response = await client.post(
            "/api/auth/refresh", json={"refreshToken": session["refreshToken"]}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["tokenType"] == "bearer"
        assert decode_token(data["accessToken"]).user_id == admin.id

    async def test_refresh_with_cookie(self, client: AsyncClient, admin: User):
        session = (await login(client, "demo@flowgrid.io", DEMO_PASSWORD)).json()
        client.cookies.clear()

        response = await client.post(
            "/api/auth/refresh",
            headers={"Cookie": f"refreshToken={session['refreshToken']}"},
        )

        assert response.status_code == 200

    async def test_refresh_without_token(self, client: AsyncClient):
        response = await client.post("/api/auth/refresh")

        assert response.status_code == 400
        assert response.json()["error_code"] == "missing_refresh_token"

    async def test_access_token_cannot_refresh(
        self, client: AsyncClient, db: AsyncSession, admin: User
    ):
        session = (await login(client, "demo@flowgrid.io", DEMO_PASSWORD)).json()
        client.cookies.clear()

        response = await client.post(
            "/api/auth/refresh", json={"refreshToken": session["accessToken"]}
        )

        assert response.status_code == 401
        assert response.json()["error_code"] == "invalid_refresh_token"
        result = await db.execute(
            select(AuthAuditLog.status, AuthAuditLog.details).where(
                AuthAuditLog.action == "token_refresh"
            )
        )
        assert [tuple(row) for row in result] == [("failure", {"reason": "invalid_token_type"})]

    async def test_unrecorded_refresh_token_is_rejected(self, client: AsyncClient, admin: User):
        """A correctly signed token that was never issued through login fails."""
        token = create_refresh_token(admin.id, admin.tenant_id, admin.email, admin.role)

        response = await client.post("/api/auth/refresh", json={"refreshToken": token})

        assert response.status_code == 401
        assert response.json()["error_code"] == "refresh_token_revoked"

    async def test_refresh_fails_after_logout(self, client: AsyncClient, admin: User):
        session = (await login(client, "demo@flowgrid.io", DEMO_PASSWORD)).json()
        client.cookies.clear()

        logout = await client.post(
            "/api/auth/logout",
            headers={"Authorization": f"Bearer {session['accessToken']}"},
            json={"refreshToken": session["refreshToken"]},
        )
        response = await client.post(
            "/api/auth/refresh", json={"refreshToken": session["refreshToken"]}
        )

        assert logout.status_code == 200
        assert response.status_code == 401
        assert response.json()["error_code"] == "refresh_token_revoked"

    async def test_refresh_fails_for_disabled_user(
        self, client: AsyncClient, db: AsyncSession, user: User
    ):
        session = (await login(client, user.email, DEFAULT_PASSWORD)).json()
        client.cookies.clear()
        user.is_active = False
        await db.flush()

        response = await client.post(
            "/api/auth/refresh", json={"refreshToken": session["refreshToken"]}
        )

        assert response.status_code == 401
        assert response.json()["error_code"] == "user_inactive"

    async def test_refresh_does_not_rotate(self, client: AsyncClient, admin: User):
        """The same refresh token keeps working until revoked or expired."""
        session = (await login(client, "demo@flowgrid.io", DEMO_PASSWORD)).json()
        client.cookies.clear()
        body = {"refreshToken": session["refreshToken"]}

        first = await client.post("/api/auth/refresh", json=body)
        second = await client.post("/api/auth/refresh", json=body)

        assert first.status_code == second.status_code == 200
        assert "refreshToken" not in first.json()


class TestLogout:
    """Tests for POST /api/auth/logout."""

    async def test_logout_requires_access_token(self, client: AsyncClient):
        response = await client.post("/api/auth/logout")

        assert response.status_code == 401
        assert response.json()["error_code"] == "missing_token"

    async def test_logout_clears_cookie(self, client: AsyncClient, admin: User):
        session = (await login(client, "demo@flowgrid.io", DEMO_PASSWORD)).json()

        response = await client.post(
            "/api/auth/logout",
            headers={"Authorization": f"Bearer {session['accessToken']}"},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"
        assert 'refreshToken=""' in response.headers["set-cookie"]

    async def test_logout_revoke_all(
        self, client: AsyncClient, db: AsyncSession, admin: User
    ):
        first = (await login(client, "demo@flowgrid.io", DEMO_PASSWORD)).json()
        second = (await login(client, "demo@flowgrid.io", DEMO_PASSWORD)).json()
        client.cookies.clear()

        await client.post(
            "/api/auth/logout",
            headers={"Authorization": f"Bearer {first['accessToken']}"},
            json={"revokeAll": True},
        )

        for session in (first, second):
            response = await client.post(
                "/api/auth/refresh", json={"refreshToken": session["refreshToken"]}
            )
            assert response.status_code == 401

        reasons = (
            await db.execute(
                select(RefreshToken.revoked_reason).where(RefreshToken.user_id == admin.id)
            )
        ).scalars().all()
        assert set(reasons) == {"logout_all"}

    async def test_logout_cannot_revoke_another_users_token(
        self, client: AsyncClient, admin: User, user: User
    ):
        victim = (await login(client, user.email, DEFAULT_PASSWORD)).json()
        client.cookies.clear()

        await client.post(
            "/api/auth/logout",
            headers=bearer(admin),
            json={"refreshToken": victim["refreshToken"]},
        )
        response = await client.post(
            "/api/auth/refresh", json={"refreshToken": victim["refreshToken"]}
        )

        assert response.status_code == 200


class TestVerify:
    """Tests for POST /api/auth/verify."""

    async def test_verify_header_token(self, client: AsyncClient, admin: User):
        response = await client.post("/api/auth/verify", headers=bearer(admin))

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["user"]["id"] == str(admin.id)
        assert data["user"]["tenantId"] == str(admin.tenant_id)
        assert data["user"]["role"] == "admin"
        assert data["user"]["mfaEnabled"] is False

    async def test_verify_body_token(self, client: AsyncClient, admin: User):
        token = create_access_token(admin.id, admin.tenant_id, admin.email, admin.role)

        response = await client.post("/api/auth/verify", json={"token": token})

        assert response.status_code == 200
        assert response.json()["valid"] is True

    async def test_verify_expired_token(self, client: AsyncClient, admin: User):
        token = create_access_token(
            admin.id,
            admin.tenant_id,
            admin.email,
            admin.role,
            expires_delta=timedelta(seconds=-1),
        )

        response = await client.post("/api/auth/verify", json={"token": token})

        assert response.status_code == 401
        data = response.json()
        assert data["valid"] is False
        assert data["error_code"] == "token_expired"

    async def test_verify_malformed_token(self, client: AsyncClient, db: AsyncSession):
        response = await client.post("/api/auth/verify", json={"token": "not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["valid"] is False
        assert response.json()["error_code"] == "invalid_token"
        result = await db.execute(
            select(AuthAuditLog.status, AuthAuditLog.details).where(
                AuthAuditLog.action == "token_verify"
            )
        )
        assert [tuple(row) for row in result] == [("failure", {"reason": "invalid_token"})]

    async def test_verify_refresh_token_is_rejected(self, client: AsyncClient, admin: User):
        token = create_refresh_token(admin.id, admin.tenant_id, admin.email, admin.role)

        response = await client.post("/api/auth/verify", json={"token": token})

        assert response.status_code == 401
        assert response.json()["error_code"] == "invalid_token_type"

    async def test_verify_without_token(self, client: AsyncClient):
        response = await client.post("/api/auth/verify")

        assert response.status_code == 400
        assert response.json()["valid"] is False


class TestMe:
    """Tests for GET /api/auth/me."""

    async def test_me(self, client: AsyncClient, admin: User, tenant: Tenant):
        response = await client.get("/api/auth/me", headers=bearer(admin))

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "demo@flowgrid.io"
        assert data["name"] == "Demo Admin"
        assert data["tenant"] == {"id": str(tenant.id), "name": "Demo", "slug": "demo"}
        assert "passwordHash" not in data

    async def test_me_rejects_refresh_token(self, client: AsyncClient, admin: User):
        token = create_refresh_token(admin.id, admin.tenant_id, admin.email, admin.role)

        response = await client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["error_code"] == "invalid_token_type"

    async def test_me_rejects_disabled_user(
        self, client: AsyncClient, db: AsyncSession, user: User
    ):
        headers = bearer(user)
        user.is_active = False
        await db.flush()

        response = await client.get("/api/auth/me", headers=headers)

        assert response.status_code == 401
        assert response.json()["error_code"] == "user_inactive"


class TestTenant:
    """Tests for GET /api/auth/tenant."""

    async def test_current_tenant(self, client: AsyncClient, user: User, tenant: Tenant):
        response = await client.get("/api/auth/tenant", headers=bearer(user))

        assert response.status_code == 200
        data = response.json()
        assert data["slug"] == "demo"
        assert data["tier"] == "enterprise"
        assert "createdAt" in data


class TestRateLimit:
    """Tests for request-rate ceilings."""

    async def test_login_ceiling(
        self, client: AsyncClient, admin: User, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(settings, "rate_limit_login_requests", 2)

        statuses = [
            (await login(client, "demo@flowgrid.io", DEMO_PASSWORD)).status_code
            for _ in range(3)
        ]

        assert statuses == [200, 200, 429]

    async def test_rotating_forwarded_for_shares_one_bucket(
        self, client: AsyncClient, admin: User, monkeypatch: pytest.MonkeyPatch
    ):
        """Spoofed forwarding headers from a direct client do not reset the ceiling."""
        monkeypatch.setattr(settings, "rate_limit_login_requests", 2)
        monkeypatch.setattr(settings, "trusted_proxies", [])

        statuses = []
        for i in range(4):
            response = await client.post(
                "/api/auth/login",
                json={"email": "demo@flowgrid.io", "password": "wrong-password"},
                headers={"X-Forwarded-For": f"10.0.0.{i}", "X-Real-IP": f"10.0.1.{i}"},
            )
            statuses.append(response.status_code)

        assert statuses == [401, 401, 429, 429]

    async def test_rate_limited_response(
        self, client: AsyncClient, admin: User, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(settings, "rate_limit_login_requests", 0)

        response = await login(client, "demo@flowgrid.io", DEMO_PASSWORD)

        assert response.status_code == 429
        assert response.json()["error_code"] == "rate_limit_exceeded"
        assert "Retry-After" in response.headers
