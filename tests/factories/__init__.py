"""Test data factories."""

from tests.factories.tenant import TenantFactory
from tests.factories.user import UserFactory


__all__ = ["TenantFactory", "UserFactory"]
