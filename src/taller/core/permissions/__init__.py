"""Permission core - catalog models, resolver and access guard."""

from taller.core.permissions.decorators import (
    require_any_permission,
    require_permission,
)
from taller.core.permissions.exceptions import (
    BatchValidationError,
    PermissionDeniedError,
    PermissionNotFoundError,
    RoleHasActiveUsersWarning,
    RoleNotFoundError,
    SessionInvalidError,
    UserNotFoundError,
)
from taller.core.permissions.guards import (
    GuardDecision,
    actor_id,
    authenticate,
    check_any_permission,
    check_permission,
    ensure_any_permission,
    ensure_permission,
    session_has_permission,
)
from taller.core.permissions.models import (
    OverrideOrigin,
    Permission,
    PermissionModule,
    PermissionSource,
    Role,
    RolePermission,
    UserPermission,
)
from taller.core.permissions.resolver import PermissionResolver, merge_permissions
from taller.core.permissions.schemas import (
    EffectivePermission,
    OverrideView,
    ResolvedPermissions,
    RolePermissionView,
)


__all__ = [
    "BatchValidationError",
    "EffectivePermission",
    "GuardDecision",
    "OverrideOrigin",
    "OverrideView",
    "Permission",
    "PermissionDeniedError",
    "PermissionModule",
    "PermissionNotFoundError",
    "PermissionResolver",
    "PermissionSource",
    "ResolvedPermissions",
    "Role",
    "RoleHasActiveUsersWarning",
    "RoleNotFoundError",
    "RolePermission",
    "RolePermissionView",
    "SessionInvalidError",
    "UserNotFoundError",
    "UserPermission",
    "actor_id",
    "authenticate",
    "check_any_permission",
    "check_permission",
    "ensure_any_permission",
    "ensure_permission",
    "merge_permissions",
    "require_any_permission",
    "require_permission",
    "session_has_permission",
]
