"""Pydantic schemas for catalog and user-override operations."""

from pydantic import BaseModel, ConfigDict, Field

from taller.core.constants import (
    MAX_CODES_PER_ASSIGNMENT,
    MAX_DESCRIPTION_LENGTH,
    MAX_MODULE_KEY_LENGTH,
    MAX_NAME_LENGTH,
    MAX_OVERRIDE_COMMENT_LENGTH,
    MAX_PERMISSION_CODE_LENGTH,
)
from taller.core.permissions.models import OverrideOrigin


# Dotted lowercase namespace, e.g. "inventario.movimientos"
PERMISSION_CODE_PATTERN = r"^[a-z0-9_]+(\.[a-z0-9_]+)+$"


# ============================================================
# Catalog
# ============================================================


class PermissionResponse(BaseModel):
    """A catalog entry as exposed to clients."""

    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    description: str | None = None
    module: str
    group: str | None = None
    active: bool


class PermissionCreate(BaseModel):
    """Schema for adding a catalog entry."""

    code: str = Field(
        ...,
        min_length=3,
        max_length=MAX_PERMISSION_CODE_LENGTH,
        pattern=PERMISSION_CODE_PATTERN,
    )
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    module: str = Field(..., min_length=1, max_length=MAX_MODULE_KEY_LENGTH)
    group: str | None = Field(default=None, max_length=MAX_MODULE_KEY_LENGTH)
    active: bool = True


class PermissionUpdate(BaseModel):
    """Schema for editing a catalog entry. The code cannot be changed."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    module: str | None = Field(default=None, min_length=1, max_length=MAX_MODULE_KEY_LENGTH)
    group: str | None = Field(default=None, max_length=MAX_MODULE_KEY_LENGTH)
    active: bool | None = None


class ModuleGroup(BaseModel):
    """Active catalog entries of one module."""

    key: str
    name: str
    description: str | None = None
    permissions: list[PermissionResponse] = Field(default_factory=list)


# ============================================================
# User overrides
# ============================================================


class OverrideSet(BaseModel):
    """Body for setting a single override."""

    granted: bool
    origin: OverrideOrigin | None = Field(
        default=None,
        description="Defaults to EXTRA for grants and REVOKED for revocations",
    )
    comment: str | None = Field(default=None, max_length=MAX_OVERRIDE_COMMENT_LENGTH)


class OverrideItem(OverrideSet):
    """One entry of a batch override update."""

    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(..., min_length=1, max_length=MAX_PERMISSION_CODE_LENGTH)


class OverridesSet(BaseModel):
    """Body for setting several overrides at once."""

    items: list[OverrideItem] = Field(..., max_length=MAX_CODES_PER_ASSIGNMENT)
    description: str | None = Field(default=None, max_length=MAX_OVERRIDE_COMMENT_LENGTH)


class OverrideResponse(BaseModel):
    """A stored override."""

    code: str
    granted: bool
    origin: OverrideOrigin
    comment: str | None = None


class ResyncRequest(BaseModel):
    keep_manual: bool = False


class ResyncResult(BaseModel):
    """Outcome of a resync.

    Attributes:
        removed: Overrides deleted
        kept: Overrides left in place
        total_base: Active permissions the role now provides
    """

    removed: int
    kept: int
    total_base: int
