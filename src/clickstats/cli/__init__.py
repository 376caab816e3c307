"""CLI commands for clickstats.

Provides command-line interface using Typer:
- clickstats serve: Run the API server
- clickstats migrate: Apply or inspect database migrations
- clickstats cache: Inspect, clear, warm or benchmark the cache

Usage:
    clickstats --help
    clickstats serve --port 8080
    clickstats migrate upgrade
    clickstats cache stats
"""

import typer

from clickstats.cli.cache_cmd import app as cache_app
from clickstats.cli.migrate_cmd import app as migrate_app
from clickstats.cli.serve import app as serve_app

# Main CLI application
app = typer.Typer(
    name="clickstats",
    help="clickstats: banner click tracking with an in-memory cached repository",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(migrate_app, name="migrate")
app.add_typer(cache_app, name="cache")


@app.callback()
def callback() -> None:
    """clickstats: banner click tracking with an in-memory cached repository."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()
