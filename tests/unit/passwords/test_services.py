"""Unit tests for PasswordService."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi import BackgroundTasks

from flowgrid_auth.core.audit import AuditAction, AuditStatus, ClientInfo
from flowgrid_auth.core.errors import NotFoundError
from flowgrid_auth.modules.passwords.services import PasswordService
from flowgrid_auth.modules.users.models import User


CLIENT = ClientInfo(ip_address="203.0.113.7", user_agent="pytest")


def make_mock_user(is_active=True):
    user = MagicMock(spec=User)
    user.id = uuid4()
    user.tenant_id = uuid4()
    user.email = "reset@example.com"
    user.name = "Reset User"
    user.is_active = is_active
    return user


def make_service() -> PasswordService:
    """Build a PasswordService with mocked collaborators."""
    service = PasswordService.__new__(PasswordService)
    service.db = AsyncMock()
    service.audit = AsyncMock()
    service.notifier = AsyncMock()
    service.reset_repo = AsyncMock()
    service.user_repo = AsyncMock()
    service.token_repo = AsyncMock()
    return service


class TestRequestReset:
    """Tests for PasswordService.request_reset."""

    @pytest.mark.asyncio
    async def test_email_is_deferred_until_after_the_response(self):
        service = make_service()
        user = make_mock_user()
        service.user_repo.find_by_email.return_value = [user]
        background_tasks = BackgroundTasks()

        await service.request_reset(user.email, CLIENT, background_tasks)

        service.notifier.send_password_reset.assert_not_awaited()
        assert len(background_tasks.tasks) == 1
        task = background_tasks.tasks[0]
        assert task.func is service.notifier.send_password_reset
        assert task.args[:2] == (user.email, user.name)

    @pytest.mark.asyncio
    async def test_unknown_email_schedules_nothing(self):
        service = make_service()
        service.user_repo.find_by_email.return_value = []
        background_tasks = BackgroundTasks()

        await service.request_reset("ghost@example.com", CLIENT, background_tasks)

        assert background_tasks.tasks == []
        service.reset_repo.create.assert_not_awaited()


class TestReset:
    """Tests for PasswordService.reset."""

    @pytest.mark.asyncio
    async def test_disabled_account_is_refused(self):
        service = make_service()
        user = make_mock_user(is_active=False)
        service.reset_repo.get_valid_by_hash.return_value = MagicMock(id=uuid4(), user_id=user.id)
        service.user_repo.get_by_id.return_value = user

        with pytest.raises(NotFoundError) as exc_info:
            await service.reset("token", "Brand-N3w!Secret", CLIENT)

        assert exc_info.value.error_code == "invalid_reset_token"
        service.reset_repo.mark_used.assert_not_awaited()
        service.user_repo.update.assert_not_awaited()
        args, kwargs = service.audit.record.await_args
        assert args == (AuditAction.PASSWORD_RESET, AuditStatus.BLOCKED)
        assert kwargs["user_id"] == user.id
        service.db.commit.assert_awaited_once()
