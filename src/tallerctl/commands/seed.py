"""Command: tallerctl seed - Load the default catalog and roles."""

from dataclasses import dataclass, field

import typer
from rich.console import Console
from rich.table import Table

from taller.core.permissions.defaults import (
    DEFAULT_CATALOG,
    DEFAULT_MODULES,
    DEFAULT_ROLES,
)
from taller.core.permissions.models import PermissionModule, Role
from taller.modules.permissions.schemas import PermissionCreate, PermissionUpdate
from taller.modules.roles.schemas import RoleCreate
from tallerctl.utils import Services, run_with_services


console = Console()

SEED_NOTE = "default catalog"


@dataclass
class SeedReport:
    """What a seed run changed."""

    modules_created: int = 0
    permissions_created: int = 0
    permissions_updated: int = 0
    roles_created: int = 0
    grants: dict[str, int] = field(default_factory=dict)


async def seed_defaults(services: Services) -> SeedReport:
    """Upsert the default modules, catalog entries, roles and role grants.

    Safe to run repeatedly. Existing entries get their labels refreshed
    but keep their active flag, so a code retired by an administrator
    stays retired.
    """
    report = SeedReport()
    repo = services.catalog.repo

    for key, name in DEFAULT_MODULES.items():
        if await repo.get_module(key) is None:
            await repo.create_module(PermissionModule(key=key, name=name))
            report.modules_created += 1

    for entry in DEFAULT_CATALOG:
        existing = await repo.get_by_code(entry.code)
        if existing is None:
            await services.catalog.create_permission(
                PermissionCreate(
                    code=entry.code,
                    name=entry.name,
                    description=entry.description,
                    module=entry.module,
                    group=entry.group,
                ),
                actor_id=None,
            )
            report.permissions_created += 1
        elif (existing.name, existing.description, existing.module, existing.group) != (
            entry.name,
            entry.description,
            entry.module,
            entry.group,
        ):
            await services.catalog.update_permission(
                entry.code,
                PermissionUpdate(
                    name=entry.name,
                    description=entry.description,
                    module=entry.module,
                    group=entry.group,
                ),
                actor_id=None,
            )
            report.permissions_updated += 1

    for role_name, description in DEFAULT_ROLES.items():
        role: Role | None = await services.roles.roles.get_by_name(role_name)
        if role is None:
            role = await services.roles.create_role(
                RoleCreate(name=role_name, description=description), actor_id=None
            )
            report.roles_created += 1

        codes = [entry.code for entry in DEFAULT_CATALOG if role_name in entry.roles]
        active = {p.code for p in await repo.get_by_codes(codes) if p.active}
        codes = [code for code in codes if code in active]
        if codes:
            await services.roles.assign(role.id, codes, actor_id=None, note=SEED_NOTE)
        report.grants[role_name] = len(codes)

    return report


def seed() -> None:
    """Load the default permission catalog and roles.

    Creates missing modules, catalog entries and roles, and links each
    default role to its default codes. Existing data is updated in place.
    """
    try:
        report = run_with_services(seed_defaults)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    console.print(
        f"[green]✓[/green] Modules created: {report.modules_created}, "
        f"permissions created: {report.permissions_created}, "
        f"updated: {report.permissions_updated}, "
        f"roles created: {report.roles_created}"
    )

    table = Table(title="Default role grants", show_header=True)
    table.add_column("Role", style="cyan", no_wrap=True)
    table.add_column("Permissions", style="green", justify="right")
    for role_name, count in report.grants.items():
        table.add_row(role_name, str(count))

    console.print()
    console.print(table)
