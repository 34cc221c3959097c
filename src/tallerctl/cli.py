"""Main tallerctl CLI application."""

import typer
from rich.console import Console

from tallerctl import __version__
from tallerctl.commands import grant, permissions, resync, seed


console = Console()

app = typer.Typer(
    name="tallerctl",
    help="Administer the workshop permission catalog, roles and overrides.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register commands
app.command(name="seed")(seed.seed)
app.command(name="grant")(grant.grant)
app.command(name="permissions")(permissions.permissions)
app.command(name="resync")(resync.resync)


@app.callback(invoke_without_command=True)
def version_callback(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit."
    ),
) -> None:
    """tallerctl - Administer permissions of the workshop back office."""
    if version:
        console.print(f"[bold cyan]tallerctl[/bold cyan] version {__version__}")
        raise typer.Exit()


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
