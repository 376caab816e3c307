"""CLI commands for database migrations.

Usage:
    clickstats migrate upgrade
    clickstats migrate upgrade --revision 001_create_banners
    clickstats migrate status
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from clickstats.persistence import schema
from clickstats.persistence.db import close_db, get_engine

app = typer.Typer(help="Run database migrations", no_args_is_help=True)
console = Console()


@app.command("upgrade")
def upgrade(
    revision: str = typer.Option("head", "--revision", "-r", help="Target revision"),
    database_url: str | None = typer.Option(
        None,
        "--database-url",
        help="Database URL (defaults to DATABASE_URL)",
    ),
) -> None:
    """Apply migrations up to a revision."""
    console.print(f"[blue]Upgrading database to:[/blue] {revision}")
    try:
        schema.upgrade(revision, database_url)
    except (SQLAlchemyError, OSError) as e:
        console.print(f"[red]Migration failed:[/red] {e}")
        raise typer.Exit(code=1) from e
    console.print("[green]Migrations applied successfully![/green]")


@app.command("status")
def status() -> None:
    """Show which migrations are applied."""
    try:
        current = asyncio.run(_current_revision())
    except (SQLAlchemyError, OSError) as e:
        console.print(f"[red]Failed to read migration status:[/red] {e}")
        raise typer.Exit(code=1) from e

    table = Table(title="Migrations")
    table.add_column("Revision", style="cyan")
    table.add_column("Description", style="green")
    table.add_column("Applied", style="yellow")

    for rev in schema.revision_status(current):
        table.add_row(rev.revision, rev.description, "yes" if rev.applied else "no")

    console.print(table)
    console.print(f"[bold]Current revision:[/bold] {current or 'none'}")


async def _current_revision() -> str | None:
    try:
        return await schema.current_revision(get_engine())
    finally:
        await close_db()
