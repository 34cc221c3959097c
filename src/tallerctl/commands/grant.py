"""Command: tallerctl grant - Assign catalog codes to a role."""

import typer
from rich.console import Console

from taller.core.errors import AppException
from taller.core.permissions.exceptions import RoleNotFoundError
from tallerctl.utils import Services, run_with_services


console = Console()


def grant(
    role_name: str = typer.Argument(..., help="Exact name of the role"),
    codes: list[str] = typer.Argument(..., help="Permission codes to assign"),
    note: str | None = typer.Option(None, "--note", "-n", help="Note stored on new links"),
) -> None:
    """Assign permission codes to a role by name.

    All codes must exist and be active, otherwise nothing is assigned.
    """

    async def assign(services: Services) -> int:
        role = await services.roles.roles.get_by_name(role_name)
        if role is None:
            raise RoleNotFoundError(role_name)
        links = await services.roles.assign(role.id, codes, actor_id=None, note=note)
        return len(links)

    try:
        count = run_with_services(assign)
    except AppException as e:
        console.print(f"[red]Error:[/red] {e.message}")
        if e.details.get("codes"):
            console.print(f"  Invalid codes: {', '.join(e.details['codes'])}")
        raise typer.Exit(1) from None

    console.print(f"[green]✓[/green] Role '{role_name}' now has {count} of the given code(s)")
