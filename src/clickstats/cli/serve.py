"""CLI command for running the API server.

Usage:
    clickstats serve
    clickstats serve --port 9000
    clickstats serve --reload --log-level debug
"""

from __future__ import annotations

import typer

from clickstats.config import settings

app = typer.Typer(help="Run the clickstats API server")


def _startup_summary(host: str, port: int, reload: bool) -> list[str]:
    lines = [
        f"  Host: {host}",
        f"  Port: {port}",
        f"  Environment: {settings.env}",
    ]
    if settings.cache_enabled:
        lines.append(
            f"  Cache: enabled (reaper every {settings.cache_cleanup_interval:g}s, "
            f"warm on startup: {'yes' if settings.cache_warm_on_startup else 'no'})"
        )
    else:
        lines.append("  Cache: disabled")
    if reload:
        lines.append("  Reload: enabled")
    return lines


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Interface to bind"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Restart on code changes"),
    log_level: str = typer.Option(
        settings.log_level.lower(),
        "--log-level",
        "-l",
        help="uvicorn log level: debug, info, warning, error",
    ),
) -> None:
    """Run the clickstats API server.

    Always a single worker process: the cache lives in process memory, so
    extra workers would each hold their own copy and miss each other's
    invalidations.
    """
    import uvicorn

    typer.echo("Starting clickstats server...")
    for line in _startup_summary(host, port, reload):
        typer.echo(line)
    typer.echo(f"\nAPI documentation: http://{host}:{port}/docs\n")

    uvicorn.run(
        "clickstats.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
    )
