"""Database layer - session management, base models, and mixins."""

from taller.core.database.base import Base, TimestampMixin, UUIDMixin
from taller.core.database.session import (
    async_engine,
    async_session_factory,
    get_db,
)


__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "async_engine",
    "async_session_factory",
    "get_db",
]
