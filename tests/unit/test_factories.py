"""Tests for the shared model factories."""

from uuid import uuid4

from tests.factories.user import UserFactory


def test_user_keeps_the_given_tenant():
    tenant_id = uuid4()

    user = UserFactory.build(tenant_id=tenant_id)

    assert user.tenant_id == tenant_id
    # An attached Tenant would be flushed alongside the user
    assert "tenant" not in user.__dict__

