"""Unit tests for InviteService."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from flowgrid_auth.core.audit import AuditAction, AuditStatus, ClientInfo
from flowgrid_auth.core.errors import ConflictError, ValidationError
from flowgrid_auth.modules.invites.services import InviteService
from flowgrid_auth.modules.users.models import User, UserRole


CLIENT = ClientInfo(ip_address="203.0.113.7", user_agent="pytest")


def make_admin():
    admin = MagicMock(spec=User)
    admin.id = uuid4()
    admin.tenant_id = uuid4()
    admin.name = "Demo Admin"
    return admin


def make_service() -> InviteService:
    """Build an InviteService with mocked collaborators."""
    service = InviteService.__new__(InviteService)
    service.db = AsyncMock()
    service.audit = AsyncMock()
    service.notifier = AsyncMock()
    service.invite_repo = AsyncMock()
    service.user_repo = AsyncMock()
    service.tenant_repo = AsyncMock()
    service.auth = AsyncMock()
    return service


class TestSend:
    """Tests for InviteService.send."""

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_is_a_conflict(self):
        """Verify losing the unique pending-invite slot maps to invite_pending."""
        service = make_service()
        admin = make_admin()
        service.user_repo.get_by_email.return_value = None
        service.invite_repo.get_pending.return_value = None
        service.invite_repo.create.side_effect = IntegrityError(
            "INSERT INTO invite_tokens", {}, Exception("duplicate key value")
        )

        with pytest.raises(ConflictError) as exc_info:
            await service.send(admin, "New@Example.com", UserRole.USER, CLIENT)

        assert exc_info.value.error_code == "invite_pending"
        service.db.rollback.assert_awaited_once()
        args, kwargs = service.audit.record.await_args
        assert args == (AuditAction.INVITE_SENT, AuditStatus.FAILURE)
        assert kwargs["user_id"] == admin.id
        assert kwargs["details"] == {"reason": "invite_pending", "invited_email": "new@example.com"}
        service.db.commit.assert_awaited_once()
        service.notifier.send_invite.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lapsed_invites_are_retired_before_insert(self):
        service = make_service()
        admin = make_admin()
        service.user_repo.get_by_email.return_value = None
        service.invite_repo.get_pending.return_value = None
        service.invite_repo.create.side_effect = lambda invite: invite

        await service.send(admin, "new@example.com", UserRole.VIEWER, CLIENT)

        service.invite_repo.retire_expired.assert_awaited_once_with(
            "new@example.com", admin.tenant_id
        )
        args, _ = service.audit.record.await_args
        assert args == (AuditAction.INVITE_SENT, AuditStatus.SUCCESS)


class TestAccept:
    """Tests for InviteService.accept."""

    @pytest.mark.asyncio
    async def test_weak_password_is_audited(self):
        service = make_service()

        with pytest.raises(ValidationError):
            await service.accept("token", "New Hire", "short", CLIENT)

        args, kwargs = service.audit.record.await_args
        assert args == (AuditAction.ACCOUNT_CREATED, AuditStatus.FAILURE)
        assert kwargs["details"] == {"reason": "weak_password"}
        service.db.commit.assert_awaited_once()
        service.invite_repo.get_valid_by_hash.assert_not_awaited()
