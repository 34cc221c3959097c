"""Command: tallerctl resync - Reset a user's overrides to role defaults."""

import typer
from rich.console import Console

from taller.core.permissions.exceptions import UserNotFoundError
from taller.modules.permissions.schemas import ResyncResult
from tallerctl.utils import Services, run_with_services


console = Console()


def resync(
    email: str = typer.Argument(..., help="Email of the user"),
    keep_manual: bool = typer.Option(
        False, "--keep-manual", help="Keep manually granted extras"
    ),
) -> None:
    """Drop a user's overrides so only their role applies again."""

    async def run(services: Services) -> ResyncResult:
        user = await services.users.get_by_email(email)
        if user is None:
            raise UserNotFoundError(email)
        return await services.overrides.resync(user.id, keep_manual, actor_id=None)

    try:
        result = run_with_services(run)
    except UserNotFoundError:
        console.print(f"[red]Error:[/red] No user with email '{email}'.")
        raise typer.Exit(1) from None

    console.print(
        f"[green]✓[/green] Removed {result.removed} override(s), kept {result.kept}; "
        f"role grants {result.total_base} permission(s)"
    )
