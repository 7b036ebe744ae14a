"""CLI commands for daily_review."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from daily_review import __logo__, __version__
from daily_review.cache import FileStorage, ReviewCache
from daily_review.config import (
    COUNT_OPTIONS,
    TIME_RANGES,
    ReviewConfig,
    get_config_path,
    load_config,
    save_config,
)
from daily_review.deck import DeckState, ReviewEngine, ReviewSession
from daily_review.deck.types import DeckResult
from daily_review.logging_config import setup_logging
from daily_review.source import MemosClient

app = typer.Typer(
    name="daily-review",
    help=f"{__logo__} daily-review - a deterministic daily deck of your memos",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} daily-review v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="loguru log level"),
):
    """daily-review - resurface memos you have not seen in a while."""
    setup_logging(log_level.upper())


# ============================================================================
# Shared helpers
# ============================================================================


def _load(config_path: Path | None) -> tuple[ReviewConfig, ReviewCache]:
    config = load_config(config_path)
    storage = FileStorage(config.storage.data_path, quota_bytes=config.storage.quota_bytes)
    return config, ReviewCache.from_config(config, storage)


def _validate_settings(time_range: str | None, count: int | None) -> None:
    if time_range is not None and time_range not in TIME_RANGES:
        console.print(f"[red]Unknown time range {time_range!r}.[/red] Choose from: {', '.join(TIME_RANGES)}")
        raise typer.Exit(1)
    if count is not None and count < 1:
        console.print("[red]Count must be at least 1.[/red]")
        raise typer.Exit(1)


def _first_line(content: str, width: int = 60) -> str:
    for line in content.splitlines():
        line = line.strip()
        if line:
            return line if len(line) <= width else line[: width - 1] + "…"
    return "(attachment only)"


def _render(result: DeckResult) -> None:
    if result.state != DeckState.READY:
        color = "yellow" if result.state == DeckState.EMPTY else "red"
        console.print(f"[{color}]{result.message}[/{color}]")
        return

    deck = result.deck
    source = "cached" if result.cached else "new"
    table = Table(title=f"Daily review {deck.day} · {deck.time_range} · batch {deck.batch} ({source})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Created")
    table.add_column("Tags", style="cyan")
    table.add_column("Memo")
    for i, memo in enumerate(deck.memos, 1):
        created = memo.create_time.strftime("%Y-%m-%d") if memo.create_time else "-"
        tags = " ".join(f"#{t}" for t in memo.tags)
        table.add_row(str(i), created, tags, _first_line(memo.content))
    console.print(table)


async def _run_deck(
    config: ReviewConfig,
    cache: ReviewCache,
    time_range: str | None,
    count: int | None,
    shuffle: bool,
    view_all: bool,
) -> DeckResult:
    client = MemosClient.from_config(config.source)
    try:
        session = ReviewSession(ReviewEngine(cache, client, config))
        current = session.settings
        if (time_range and time_range != current.time_range) or (count and count != current.count):
            result = await session.on_settings_changed(time_range, count)
        elif shuffle:
            result = await session.shuffle()
        else:
            result = await session.open()
        if view_all:
            for _ in range(len(session.memos) - 1):
                session.next()
        return result
    finally:
        await client.close()


# ============================================================================
# Commands
# ============================================================================


@app.command()
def init(
    config_path: Path = typer.Option(None, "--config", "-c", help="Where to write config.json"),
    base_url: str = typer.Option(None, "--base-url", help="Memos server URL"),
    token: str = typer.Option(None, "--token", help="Memos access token"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
):
    """Write a config file with default settings."""
    path = config_path or get_config_path()
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = ReviewConfig()
    if base_url:
        config.source.base_url = base_url
    if token:
        config.source.access_token = token
    save_config(config, path)
    console.print(f"[green]✓[/green] Created config at {path}")
    console.print(f"\n{__logo__} Next: [cyan]daily-review deck --config {path}[/cyan]")


@app.command()
def deck(
    time_range: str = typer.Option(None, "--time-range", "-r", help="all, 1year, 6months, 3months, 1month"),
    count: int = typer.Option(None, "--count", "-n", help=f"Cards per deck, e.g. {COUNT_OPTIONS}"),
    shuffle: bool = typer.Option(False, "--shuffle", "-s", help="Generate the next batch for today"),
    view_all: bool = typer.Option(False, "--view-all", help="Mark every card as viewed"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.json"),
):
    """Show today's review deck."""
    _validate_settings(time_range, count)
    config, cache = _load(config_path)
    result = asyncio.run(_run_deck(config, cache, time_range, count, shuffle, view_all))
    _render(result)
    if result.state == DeckState.ERROR:
        raise typer.Exit(1)


@app.command()
def settings(
    time_range: str = typer.Option(None, "--time-range", "-r"),
    count: int = typer.Option(None, "--count", "-n"),
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Show or change the saved deck settings."""
    _validate_settings(time_range, count)
    config, cache = _load(config_path)
    current = cache.get_settings(config.deck.default_time_range, config.deck.default_count)
    if time_range or count:
        current = current.model_copy(update={
            "time_range": time_range or current.time_range,
            "count": count or current.count,
        })
        cache.put_settings(current)
    console.print(f"Time range: [cyan]{current.time_range}[/cyan]")
    console.print(f"Count:      [cyan]{current.count}[/cyan]")


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", "-l", help="Rows to show"),
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Show the most recently reviewed memos."""
    _, cache = _load(config_path)
    items = cache.get_history().items
    table = Table(title=f"Review history ({len(items)} memos)")
    table.add_column("Memo")
    table.add_column("Last shown")
    table.add_column("Views", justify="right")
    recent = sorted(items.items(), key=lambda kv: kv[1].last_shown_day or "", reverse=True)
    for memo_id, entry in recent[:limit]:
        table.add_row(memo_id, entry.last_shown_day or "-", str(entry.shown_count))
    console.print(table)


@app.command("clear-cache")
def clear_cache(
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Forget the cached pool, decks and today's batch."""
    _, cache = _load(config_path)
    cache.clear()
    console.print("[green]✓[/green] Cache cleared")


if __name__ == "__main__":
    app()
