"""User repository for database operations."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import func, select

from taller.api.dependencies import DBSession
from taller.modules.users.models import User


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, user: User) -> User:
        """Create a new user.

        Args:
            user: User instance to create

        Returns:
            The created user with ID populated
        """
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def get_by_id(self, user_id: UUID) -> User | None:
        """Get a user by ID.

        Args:
            user_id: The user's UUID

        Returns:
            User if found, None otherwise
        """
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by email address.

        Args:
            email: The user's email

        Returns:
            User if found, None otherwise
        """
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def count_active_by_role(self, role_id: UUID) -> int:
        """Count active users currently holding a role."""
        stmt = (
            select(func.count())
            .select_from(User)
            .where(User.role_id == role_id, User.is_active.is_(True))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def count_by_roles(self, role_ids: list[UUID]) -> dict[UUID, int]:
        """Count users (active or not) per role.

        Args:
            role_ids: Roles to count for

        Returns:
            Mapping of role id to user count; roles without users are absent
        """
        if not role_ids:
            return {}
        stmt = (
            select(User.role_id, func.count())
            .where(User.role_id.in_(role_ids))
            .group_by(User.role_id)
        )
        result = await self.session.execute(stmt)
        return {role_id: count for role_id, count in result.all()}


# Type alias for dependency injection
UserRepo = Annotated[UserRepository, Depends(UserRepository)]
