"""Read models produced by the permission resolver."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from taller.core.permissions.models import OverrideOrigin, PermissionSource


class PermissionInfo(BaseModel):
    """Catalog fields shown next to every resolved code."""

    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    description: str | None = None
    module: str
    group: str | None = None


class RolePermissionView(PermissionInfo):
    """A code granted by the user's role."""


class OverrideView(PermissionInfo):
    """A per-user override row.

    ``active`` mirrors the catalog flag; an override on an inactive entry is
    listed here but grants nothing.
    """

    granted: bool
    origin: OverrideOrigin
    comment: str | None = None
    active: bool = True


class EffectivePermission(PermissionInfo):
    """Final decision for one active catalog code."""

    granted: bool
    source: PermissionSource


class ResolvedPermissions(BaseModel):
    """Everything the resolver knows about one user's permissions."""

    user_id: UUID
    role_id: UUID | None = None
    base: list[RolePermissionView] = Field(default_factory=list)
    overrides: list[OverrideView] = Field(default_factory=list)
    effective: list[EffectivePermission] = Field(default_factory=list)

    def is_granted(self, code: str) -> bool:
        """Whether ``code`` is effectively granted; unknown codes are not."""
        return any(entry.code == code and entry.granted for entry in self.effective)

    def granted_codes(self) -> list[str]:
        """Granted codes in (module, code) order."""
        return [entry.code for entry in self.effective if entry.granted]
