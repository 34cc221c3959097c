"""Pydantic schemas for role operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from taller.core.constants import (
    MAX_ASSIGNMENT_NOTE_LENGTH,
    MAX_CODES_PER_ASSIGNMENT,
    MAX_DESCRIPTION_LENGTH,
    MAX_PERMISSION_CODE_LENGTH,
    MAX_ROLE_NAME_LENGTH,
    MIN_ROLE_NAME_LENGTH,
)


# ============================================================
# Role Schemas
# ============================================================


class RoleCreate(BaseModel):
    """Schema for creating a role."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=MIN_ROLE_NAME_LENGTH, max_length=MAX_ROLE_NAME_LENGTH)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    active: bool = True


class RoleUpdate(BaseModel):
    """Schema for editing a role. At least one field is required."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str | None = Field(
        default=None, min_length=MIN_ROLE_NAME_LENGTH, max_length=MAX_ROLE_NAME_LENGTH
    )
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    active: bool | None = None

    @model_validator(mode="after")
    def require_a_field(self) -> "RoleUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class RoleResponse(BaseModel):
    """Schema for role in API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    active: bool
    created_at: datetime
    updated_at: datetime
    total_permissions: int | None = None
    total_users: int | None = None


class RolePermissionResponse(BaseModel):
    """A catalog entry as linked to a role."""

    code: str
    name: str
    description: str | None = None
    module: str
    group: str | None = None
    active: bool
    note: str | None = None
    assigned_by_id: UUID | None = None


class RoleDetail(RoleResponse):
    """A role with its permission links."""

    permissions: list[RolePermissionResponse] = Field(default_factory=list)


class RoleDisableResponse(BaseModel):
    """Result of disabling a role.

    ``warning`` is informational: the role is disabled either way.
    """

    role: RoleResponse
    active_users: int
    warning: str | None = None


# ============================================================
# Assignment Schemas
# ============================================================


class PermissionsAssign(BaseModel):
    """Body for assigning or replacing a role's permissions."""

    model_config = ConfigDict(str_strip_whitespace=True)

    codes: list[str] = Field(..., max_length=MAX_CODES_PER_ASSIGNMENT)
    note: str | None = Field(default=None, max_length=MAX_ASSIGNMENT_NOTE_LENGTH)

    @model_validator(mode="after")
    def check_codes(self) -> "PermissionsAssign":
        for code in self.codes:
            if not code or len(code) > MAX_PERMISSION_CODE_LENGTH:
                raise ValueError("Each permission code must be 1-128 characters")
        if self.note == "":
            self.note = None
        return self
