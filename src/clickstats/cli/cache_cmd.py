"""CLI commands for cache management.

The cache lives inside the API server process, so stats, clear, warm and
invalidate talk to a running server. bench runs locally against the
database to compare cached and uncached reads.

Usage:
    clickstats cache stats --api-url http://localhost:8080
    clickstats cache clear
    clickstats cache warm --top-limit 20
    clickstats cache invalidate 7
    clickstats cache bench --banner-id 1 --iterations 1000
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import httpx
import typer
from rich.console import Console
from rich.table import Table

from clickstats.cache import CachedRepository, CacheStats, InMemoryClickStatsCache, MemoryStore
from clickstats.config import settings
from clickstats.core.errors import ClickStatsError

app = typer.Typer(help="Cache management operations", no_args_is_help=True)
console = Console()

DEFAULT_API_URL = f"http://localhost:{settings.port}"

ApiUrl = typer.Option(DEFAULT_API_URL, "--api-url", "-u", help="clickstats API URL")


def _client(api_url: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=api_url, timeout=30.0)


async def _call(api_url: str, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
    """Send one request to the API and return the JSON body.

    Exits with code 1 on connection failures and non-2xx responses.
    """
    try:
        async with _client(api_url) as client:
            response = await client.request(method, path, **kwargs)
    except httpx.HTTPError as e:
        console.print(f"[red]HTTP error:[/red] {e}")
        raise typer.Exit(code=1) from e

    body: dict[str, Any] = response.json() if response.content else {}
    if response.is_error:
        console.print(
            f"[red]{body.get('error', response.reason_phrase)}:[/red] "
            f"{body.get('message', response.text)}"
        )
        raise typer.Exit(code=1)
    return body


@app.command("stats")
def stats(api_url: str = ApiUrl) -> None:
    """Show cache statistics."""
    body = asyncio.run(_call(api_url, "GET", "/api/v1/cache/stats"))
    counters = body["stats"]

    table = Table(title="Cache Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    for name in ("size", "hits", "misses", "sets", "deletes", "expirations"):
        table.add_row(name.capitalize(), str(counters[name]))

    if counters["hits"] + counters["misses"] > 0:
        table.add_row("Hit rate", f"{counters['hit_rate'] * 100:.2f}%")
    else:
        table.add_row("Hit rate", "N/A (no requests yet)")

    console.print(table)


@app.command("clear")
def clear(api_url: str = ApiUrl) -> None:
    """Clear all cached data."""
    asyncio.run(_call(api_url, "POST", "/api/v1/cache/clear"))
    console.print("[green]Cache cleared successfully![/green]")


@app.command("warm")
def warm(
    api_url: str = ApiUrl,
    top_limit: int = typer.Option(10, "--top-limit", help="Size of the preloaded ranking"),
) -> None:
    """Preload banners, click stats and the top banners ranking."""
    console.print("[blue]Warming up cache...[/blue]")
    body = asyncio.run(
        _call(api_url, "POST", "/api/v1/cache/warm", params={"top_limit": top_limit})
    )
    console.print(f"[green]Cache warmed successfully![/green] Cached {body.get('size', 0)} items.")


@app.command("invalidate")
def invalidate(
    banner_id: int = typer.Argument(..., min=1, help="Banner id"),
    api_url: str = ApiUrl,
) -> None:
    """Evict everything cached for one banner."""
    asyncio.run(_call(api_url, "POST", f"/api/v1/cache/banner/{banner_id}/invalidate"))
    console.print(f"[green]Invalidated cache for banner {banner_id}[/green]")


# -----------------------------------------------------------------------------
# Benchmark
# -----------------------------------------------------------------------------


@dataclass
class BenchResult:
    """Timings for repeated click stats reads."""

    iterations: int
    hit_seconds: float
    miss_seconds: float

    @property
    def speedup(self) -> float:
        return self.miss_seconds / self.hit_seconds if self.hit_seconds > 0 else 0.0


async def run_benchmark(repo: CachedRepository, banner_id: int, iterations: int) -> BenchResult:
    """Time click stats reads served from cache against reads after a clear."""
    # Prime the entry; also surfaces an unknown banner before timing starts
    await repo.get_click_stats(banner_id)

    start = time.perf_counter()
    for _ in range(iterations):
        await repo.get_click_stats(banner_id)
    hit_seconds = time.perf_counter() - start

    start = time.perf_counter()
    for _ in range(iterations):
        await repo.clear_cache()
        await repo.get_click_stats(banner_id)
    miss_seconds = time.perf_counter() - start

    return BenchResult(iterations=iterations, hit_seconds=hit_seconds, miss_seconds=miss_seconds)


@app.command("bench")
def bench(
    banner_id: int = typer.Option(1, "--banner-id", "-b", min=1, help="Banner to read"),
    iterations: int = typer.Option(1000, "--iterations", "-n", min=1, help="Reads per phase"),
) -> None:
    """Compare cached and uncached click stats reads against the database."""
    console.print(f"[blue]Running cache benchmark[/blue] (banner {banner_id}, {iterations} reads)")
    try:
        result, cache_stats = asyncio.run(_bench(banner_id, iterations))
    except ClickStatsError as e:
        console.print(f"[red]Benchmark failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    table = Table(title="Performance Test Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Iterations", str(result.iterations))
    table.add_row("Cache hits", f"{result.hit_seconds * 1000:.2f} ms")
    table.add_row("Cache misses", f"{result.miss_seconds * 1000:.2f} ms")
    table.add_row("Speedup", f"{result.speedup:.1f}x")
    table.add_row("Hit rate", f"{cache_stats.hit_rate * 100:.2f}%")
    console.print(table)


async def _bench(banner_id: int, iterations: int) -> tuple[BenchResult, CacheStats]:
    from clickstats.api.app import create_cache
    from clickstats.persistence.db import close_db, session_context
    from clickstats.persistence.repositories import ClickStatsRepository

    store = MemoryStore(cleanup_interval=settings.cache_cleanup_interval)
    cache: InMemoryClickStatsCache = create_cache(store)
    try:
        async with store, session_context() as session:
            repo = CachedRepository(ClickStatsRepository(session), cache)
            result = await run_benchmark(repo, banner_id, iterations)
            return result, repo.get_cache_stats()
    finally:
        await close_db()
