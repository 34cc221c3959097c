"""Command: tallerctl permissions - Show a user's effective permissions."""

import typer
from rich.console import Console
from rich.table import Table

from taller.core.permissions.models import PermissionSource
from taller.core.permissions.resolver import PermissionResolver
from taller.core.permissions.schemas import ResolvedPermissions
from tallerctl.utils import Services, run_with_services


console = Console()

SOURCE_STYLES = {
    PermissionSource.ROLE: "green",
    PermissionSource.EXTRA: "cyan",
    PermissionSource.REVOKED: "red",
}


def permissions(
    email: str = typer.Argument(..., help="Email of the user"),
    all_codes: bool = typer.Option(
        False, "--all", "-a", help="Also list revoked codes"
    ),
) -> None:
    """Show the effective permissions of a user, with where each comes from."""

    async def resolve(services: Services) -> ResolvedPermissions | None:
        user = await services.users.get_by_email(email)
        if user is None:
            return None
        return await PermissionResolver(services.session).resolve_user(user)

    resolved = run_with_services(resolve)
    if resolved is None:
        console.print(f"[red]Error:[/red] No user with email '{email}'.")
        raise typer.Exit(1)

    entries = [e for e in resolved.effective if all_codes or e.granted]
    if not entries:
        console.print("[yellow]No permissions granted.[/yellow]")
        return

    table = Table(title=f"Permissions of {email}", show_header=True)
    table.add_column("Code", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Module", no_wrap=True)
    table.add_column("Source", no_wrap=True)

    for entry in entries:
        style = SOURCE_STYLES[entry.source]
        table.add_row(
            entry.code,
            entry.name,
            entry.module,
            f"[{style}]{entry.source.value}[/{style}]",
        )

    console.print()
    console.print(table)
    console.print()
