"""Database management CLI commands."""

import asyncio
import subprocess
import sys

import typer
from rich.console import Console

console = Console()
app = typer.Typer(help="Database management commands")


def _alembic(*args: str, success: str | None = None, failure: str | None = None) -> None:
    """Run an alembic command in a subprocess, exiting non-zero when it fails."""
    result = subprocess.run([sys.executable, "-m", "alembic", *args], check=False)

    if result.returncode != 0:
        if failure:
            console.print(f"[red]{failure}[/red]")
        raise typer.Exit(1)

    if success:
        console.print(f"[green]{success}[/green]")


@app.command("migrate")
def migrate(
    revision: str = typer.Argument("head", help="Target revision (default: head)"),
):
    """Run database migrations to the specified revision."""
    console.print(f"[dim]Running migrations to {revision}...[/dim]")
    _alembic("upgrade", revision, success="Migrations complete!", failure="Migration failed!")


@app.command("rollback")
def rollback(
    revision: str = typer.Argument("-1", help="Target revision (default: -1 for one step back)"),
):
    """Rollback database migrations."""
    console.print(f"[dim]Rolling back to {revision}...[/dim]")
    _alembic("downgrade", revision, success="Rollback complete!", failure="Rollback failed!")


@app.command("current")
def current():
    """Show current database revision."""
    _alembic("current")


@app.command("init")
def init():
    """Create all tables straight from the models, bypassing migrations.

    Meant for throwaway SQLite databases during local development.
    """
    from spendee.database import close_db, init_db

    async def _init():
        try:
            await init_db()
        finally:
            await close_db()

    asyncio.run(_init())
    console.print("[green]Tables created[/green]")
