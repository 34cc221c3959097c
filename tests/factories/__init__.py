"""Test factories."""

from tests.factories.models import RoleFactory, UserFactory


__all__ = ["RoleFactory", "UserFactory"]
