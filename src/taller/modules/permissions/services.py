"""Catalog and user-override services."""

from collections.abc import Iterable, Mapping, Sequence
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends
from pydantic import TypeAdapter
from redis.exceptions import RedisError

from taller.config import settings
from taller.core.audit import AuditAction, AuditSvc
from taller.core.cache import RedisCache
from taller.core.errors import ConflictError
from taller.core.permissions.exceptions import (
    BatchValidationError,
    PermissionNotFoundError,
    UserNotFoundError,
)
from taller.core.permissions.models import (
    OverrideOrigin,
    Permission,
    UserPermission,
)
from taller.core.permissions.resolver import PermissionResolver
from taller.modules.permissions.repos import PermissionRepo, UserPermissionRepo
from taller.modules.permissions.schemas import (
    ModuleGroup,
    OverrideItem,
    PermissionCreate,
    PermissionResponse,
    PermissionUpdate,
    ResyncResult,
)
from taller.modules.users.models import User
from taller.modules.users.repos import UserRepo


logger = structlog.get_logger()

# Whether resync with keep_manual=True keeps overrides of each origin.
# Every origin must be listed; keep_manual=False drops them all regardless.
RESYNC_KEEP_POLICY: Mapping[OverrideOrigin, bool] = {
    OverrideOrigin.EXTRA: True,
    OverrideOrigin.REVOKED: False,
}
RESYNC_KEEP_ORIGINS = frozenset(
    origin for origin, keep in RESYNC_KEEP_POLICY.items() if keep
)

_catalog_cache = RedisCache(prefix="taller:catalog:")
_BY_MODULE_KEY = "by_module"
_module_groups = TypeAdapter(list[ModuleGroup])


async def clear_catalog_cache() -> None:
    """Forget the cached grouped catalog.

    An unreachable Redis is logged; the entry then expires on its TTL.
    """
    try:
        await _catalog_cache.delete(_BY_MODULE_KEY)
    except RedisError as e:
        logger.warning("catalog_cache_clear_failed", error=str(e))


def normalize_codes(codes: Iterable[str]) -> list[str]:
    """Strip codes and drop blanks and duplicates, keeping first-seen order."""
    seen: dict[str, None] = {}
    for code in codes:
        cleaned = code.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


def default_origin(granted: bool) -> OverrideOrigin:
    return OverrideOrigin.EXTRA if granted else OverrideOrigin.REVOKED


class CatalogService:
    """Read and administer the permission catalog.

    Catalog entries are never inferred: every lookup of an unknown code
    fails. The grouped listing is cached in Redis and cleared on every
    catalog write.
    """

    def __init__(self, repo: PermissionRepo, audit: AuditSvc) -> None:
        self.repo = repo
        self.audit = audit

    async def list_catalog(self, include_inactive: bool = False) -> list[Permission]:
        return await self.repo.list_catalog(include_inactive=include_inactive)

    async def get_by_code(self, code: str, *, include_inactive: bool = False) -> Permission:
        """Get a catalog entry.

        Args:
            code: Permission code
            include_inactive: Accept deactivated entries

        Returns:
            The catalog entry

        Raises:
            PermissionNotFoundError: If the code is unknown (or retired,
                unless ``include_inactive``)
        """
        permission = await self.repo.get_by_code(code.strip())
        if permission is None or (not permission.active and not include_inactive):
            raise PermissionNotFoundError(code)
        return permission

    async def require_active(self, codes: Iterable[str]) -> list[Permission]:
        """Resolve a batch of codes, all or nothing.

        Duplicates collapse. Every code must name an active catalog entry.

        Returns:
            Catalog entries in the order the codes were given

        Raises:
            BatchValidationError: Naming every unknown or inactive code
        """
        wanted = normalize_codes(codes)
        found = {
            p.code: p for p in await self.repo.get_by_codes(wanted) if p.active
        }
        invalid = [code for code in wanted if code not in found]
        if invalid:
            raise BatchValidationError(invalid)
        return [found[code] for code in wanted]

    async def list_by_module(self) -> list[ModuleGroup]:
        """Active catalog entries grouped by module, cached for a while."""
        try:
            cached = await _catalog_cache.get(_BY_MODULE_KEY)
        except RedisError as e:
            logger.warning("catalog_cache_read_failed", error=str(e))
            cached = None
        if cached is not None:
            return _module_groups.validate_json(cached)

        modules = {m.key: m for m in await self.repo.list_modules()}
        groups: dict[str, ModuleGroup] = {}
        for permission in await self.repo.list_catalog():
            group = groups.get(permission.module)
            if group is None:
                meta = modules.get(permission.module)
                group = ModuleGroup(
                    key=permission.module,
                    name=meta.name if meta else permission.module,
                    description=meta.description if meta else None,
                )
                groups[permission.module] = group
            group.permissions.append(PermissionResponse.model_validate(permission))

        result = list(groups.values())
        try:
            await _catalog_cache.set(
                _BY_MODULE_KEY,
                _module_groups.dump_json(result).decode(),
                ttl_seconds=settings.catalog_cache_ttl_seconds,
            )
        except RedisError as e:
            logger.warning("catalog_cache_write_failed", error=str(e))
        return result

    async def create_permission(
        self, data: PermissionCreate, actor_id: UUID | None
    ) -> Permission:
        """Add a catalog entry.

        Raises:
            ConflictError: If the code already exists
        """
        if await self.repo.get_by_code(data.code):
            raise ConflictError(
                "Permission code already exists",
                error_code="permission_code_exists",
                details={"code": data.code},
            )

        permission = await self.repo.create(Permission(**data.model_dump()))
        await clear_catalog_cache()
        await self.audit.log_event(
            actor_id,
            AuditAction.PERMISSION_CREATED,
            description=f"Created permission {permission.code}",
            table="permissions",
        )
        logger.info("permission_created", code=permission.code)
        return permission

    async def update_permission(
        self, code: str, data: PermissionUpdate, actor_id: UUID | None
    ) -> Permission:
        """Edit presentation fields or the active flag of an entry.

        Deactivating takes effect for every user on their next resolution;
        links and overrides stay in place.
        """
        permission = await self.get_by_code(code, include_inactive=True)
        changes = data.model_dump(exclude_unset=True)
        # An explicit null on a required column means "leave unchanged"
        for field in ("name", "module", "active"):
            if changes.get(field, ...) is None:
                del changes[field]
        for field, value in changes.items():
            setattr(permission, field, value)

        permission = await self.repo.update(permission)
        await clear_catalog_cache()
        await self.audit.log_event(
            actor_id,
            AuditAction.PERMISSION_UPDATED,
            description=f"Updated permission {code}: {', '.join(sorted(changes)) or 'no changes'}",
            table="permissions",
        )
        return permission

    async def deactivate_permission(self, code: str, actor_id: UUID | None) -> Permission:
        """Soft-delete a catalog entry."""
        return await self.update_permission(code, PermissionUpdate(active=False), actor_id)


CatalogSvc = Annotated[CatalogService, Depends(CatalogService)]


class OverrideService:
    """Per-user permission overrides.

    Every mutation appends an audit event through the same session, so the
    change and its audit entry commit together.
    """

    def __init__(
        self,
        overrides: UserPermissionRepo,
        catalog: CatalogSvc,
        users: UserRepo,
        audit: AuditSvc,
    ) -> None:
        self.overrides = overrides
        self.catalog = catalog
        self.users = users
        self.audit = audit

    async def _require_user(self, user_id: UUID) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def set_override(
        self,
        user_id: UUID,
        code: str,
        granted: bool,
        actor_id: UUID | None,
        origin: OverrideOrigin | None = None,
        comment: str | None = None,
    ) -> UserPermission:
        """Grant or revoke one code for a user, replacing any previous override.

        Raises:
            UserNotFoundError: If the user does not exist
            PermissionNotFoundError: If the code is unknown or retired
        """
        await self._require_user(user_id)
        permission = await self.catalog.get_by_code(code)

        row = await self.overrides.upsert(
            user_id,
            permission,
            granted=granted,
            origin=origin or default_origin(granted),
            comment=comment,
        )
        await self.audit.log_event(
            actor_id,
            AuditAction.USER_PERMISSION_SET,
            description=(
                f"{'Granted' if granted else 'Revoked'} {permission.code} "
                f"for user {user_id}"
            ),
            table="user_permissions",
        )
        return row

    async def set_overrides(
        self,
        user_id: UUID,
        items: Sequence[OverrideItem],
        actor_id: UUID | None,
        description: str | None = None,
    ) -> list[UserPermission]:
        """Apply several overrides at once, all or nothing.

        When a code appears more than once the last item wins.

        Raises:
            UserNotFoundError: If the user does not exist
            BatchValidationError: If any code is unknown or inactive
        """
        await self._require_user(user_id)

        latest = {item.code.strip(): item for item in items}
        permissions = await self.catalog.require_active(latest)

        rows = []
        for permission in permissions:
            item = latest[permission.code]
            rows.append(
                await self.overrides.upsert(
                    user_id,
                    permission,
                    granted=item.granted,
                    origin=item.origin or default_origin(item.granted),
                    comment=item.comment,
                )
            )

        await self.audit.log_event(
            actor_id,
            AuditAction.USER_PERMISSIONS_SET,
            description=description
            or f"Set {len(rows)} override(s) for user {user_id}",
            table="user_permissions",
        )
        return rows

    async def clear_override(
        self, user_id: UUID, code: str, actor_id: UUID | None = None
    ) -> bool:
        """Remove the override for a code, if there is one.

        Retired codes are accepted so stale overrides can be cleaned up.

        Returns:
            True if a row was deleted, False if there was nothing to delete
        """
        await self._require_user(user_id)
        permission = await self.catalog.get_by_code(code, include_inactive=True)

        row = await self.overrides.get(user_id, permission.id)
        if row is None:
            return False

        await self.overrides.delete(row)
        await self.audit.log_event(
            actor_id,
            AuditAction.USER_PERMISSION_CLEARED,
            description=f"Cleared override {permission.code} for user {user_id}",
            table="user_permissions",
        )
        return True

    async def resync(
        self, user_id: UUID, keep_manual: bool, actor_id: UUID | None = None
    ) -> ResyncResult:
        """Reset a user's overrides back towards pure role defaults.

        Args:
            user_id: The user's UUID
            keep_manual: Keep overrides whose origin the keep policy spares
                (manually granted extras); otherwise delete every override
            actor_id: Who asked for it

        Returns:
            Counts of removed and kept overrides, and of role permissions
        """
        user = await self._require_user(user_id)

        keep = RESYNC_KEEP_ORIGINS if keep_manual else frozenset()
        removed = await self.overrides.delete_for_user(user_id, keep_origins=keep)
        kept = len(await self.overrides.list_for_user(user_id))
        resolved = await PermissionResolver(self.overrides.session).resolve_user(user)

        result = ResyncResult(removed=removed, kept=kept, total_base=len(resolved.base))
        await self.audit.log_event(
            actor_id,
            AuditAction.USER_PERMISSIONS_SYNCED,
            description=(
                f"Resynced user {user_id} (keep_manual={keep_manual}): "
                f"removed={removed} kept={kept}"
            ),
            table="user_permissions",
        )
        logger.info(
            "user_permissions_resynced",
            user_id=str(user_id),
            keep_manual=keep_manual,
            **result.model_dump(),
        )
        return result


OverrideSvc = Annotated[OverrideService, Depends(OverrideService)]
