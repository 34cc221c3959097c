"""Audit log database model.

Append-only record of who changed roles, overrides and catalog entries.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from taller.core.constants import (
    MAX_AUDIT_ACTION_LENGTH,
    MAX_IPV6_LENGTH,
    MAX_TABLE_NAME_LENGTH,
)
from taller.core.database.base import Base, UUIDMixin


class AuditLog(Base, UUIDMixin):
    """Audit log entry.

    Attributes:
        user_id: The actor (nullable for system actions such as CLI seeding)
        action: Event name, e.g. ROLE_PERMISSIONS_ASSIGNED
        description: Free-text summary of the change
        table_name: Table the change touched
        ip_address: Client IP address
        created_at: When the action occurred
    """

    __tablename__ = "audit_logs"

    user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action: Mapped[str] = mapped_column(
        String(MAX_AUDIT_ACTION_LENGTH),
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    table_name: Mapped[str | None] = mapped_column(
        String(MAX_TABLE_NAME_LENGTH),
        nullable=True,
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(MAX_IPV6_LENGTH),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action={self.action}, table={self.table_name})>"
