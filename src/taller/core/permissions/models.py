"""Permission catalog, role and override database models.

The catalog (``Permission``) is the universe of capability codes. Roles
grant catalog entries through ``RolePermission`` links, and individual users
get exceptions through ``UserPermission`` overrides. None of these rows are
ever hard-deleted when referenced; catalog entries and roles are
soft-deactivated instead.
"""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taller.core.constants import (
    MAX_ASSIGNMENT_NOTE_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_MODULE_KEY_LENGTH,
    MAX_NAME_LENGTH,
    MAX_OVERRIDE_COMMENT_LENGTH,
    MAX_PERMISSION_CODE_LENGTH,
    MAX_ROLE_NAME_LENGTH,
)
from taller.core.database.base import Base, TimestampMixin, UUIDMixin


class OverrideOrigin(str, enum.Enum):
    """Why a user override exists."""

    EXTRA = "EXTRA"  # manually granted on top of the role
    REVOKED = "REVOKED"  # manually removed from the role


class PermissionSource(str, enum.Enum):
    """Where an effective permission comes from."""

    ROLE = "ROLE"
    EXTRA = "EXTRA"
    REVOKED = "REVOKED"


class PermissionModule(Base, UUIDMixin, TimestampMixin):
    """Presentation metadata for a catalog module (``inventario``, ``ventas``...).

    Only used to label grouped catalog listings; resolution never reads it.
    """

    __tablename__ = "permission_modules"

    key: Mapped[str] = mapped_column(
        String(MAX_MODULE_KEY_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PermissionModule(key={self.key})>"


class Permission(Base, UUIDMixin, TimestampMixin):
    """A catalog entry identified by a dotted code such as ``inventario.ver``.

    Attributes:
        code: Globally unique code, immutable once created
        name: Human-readable label
        description: Optional longer explanation
        module: Grouping key, kept verbatim for presentation
        group: Optional secondary grouping, kept verbatim
        active: Inactive entries are never granted to anyone
    """

    __tablename__ = "permissions"

    code: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_CODE_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    module: Mapped[str] = mapped_column(
        String(MAX_MODULE_KEY_LENGTH),
        nullable=False,
        index=True,
    )
    group: Mapped[str | None] = mapped_column(
        "permission_group",
        String(MAX_MODULE_KEY_LENGTH),
        nullable=True,
    )
    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Permission(code={self.code}, active={self.active})>"


class Role(Base, UUIDMixin, TimestampMixin):
    """A named bundle of catalog permissions.

    Disabling a role keeps its links so that re-enabling restores them.
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(
        String(MAX_ROLE_NAME_LENGTH),
        unique=True,
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        String(MAX_DESCRIPTION_LENGTH),
        nullable=True,
    )
    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Role(name={self.name}, active={self.active})>"


class RolePermission(Base, UUIDMixin):
    """Link meaning "this role grants this permission"."""

    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
    )

    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    permission_id: Mapped[UUID] = mapped_column(
        ForeignKey("permissions.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    assigned_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    note: Mapped[str | None] = mapped_column(
        String(MAX_ASSIGNMENT_NOTE_LENGTH),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    permission: Mapped["Permission"] = relationship(
        "Permission",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<RolePermission(role_id={self.role_id}, permission_id={self.permission_id})>"


class UserPermission(Base, UUIDMixin, TimestampMixin):
    """Per-user override that beats whatever the role says.

    Attributes:
        user_id: The user the override applies to
        permission_id: The overridden catalog entry
        granted: True adds the permission, False removes it
        origin: Provenance tag used by resync
        comment: Free-text justification
    """

    __tablename__ = "user_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "permission_id", name="uq_user_permission"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    permission_id: Mapped[UUID] = mapped_column(
        ForeignKey("permissions.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    granted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
    )
    origin: Mapped[OverrideOrigin] = mapped_column(
        Enum(OverrideOrigin, name="override_origin"),
        nullable=False,
    )
    comment: Mapped[str | None] = mapped_column(
        String(MAX_OVERRIDE_COMMENT_LENGTH),
        nullable=True,
    )

    permission: Mapped["Permission"] = relationship(
        "Permission",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<UserPermission(user_id={self.user_id}, permission_id={self.permission_id}, "
            f"granted={self.granted})>"
        )
