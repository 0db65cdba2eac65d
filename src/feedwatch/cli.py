"""CLI entry point.

Subscription commands persist to the SQLite database from settings
(``FEEDWATCH_DATABASE_PATH``) unless ``--db`` is given. ``run`` restores
every stored subscription and polls until interrupted, printing deliveries
to the console.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from feedwatch.core.config import Settings, get_settings
from feedwatch.core.exceptions import FeedWatchError
from feedwatch.core.feedwatch import FeedWatch
from feedwatch.delivery.console import ConsoleDelivery
from feedwatch.delivery.format import format_statistics, format_subscription_list
from feedwatch.fetcher.http import HttpFeedFetcher
from feedwatch.storage import create_store

app = typer.Typer(
    name="feedwatch",
    help="Feed monitoring and fan-out engine",
    no_args_is_help=True,
)
console = Console()

DbOption = typer.Option(None, "--db", help="SQLite database path")


def configure_logging(settings: Settings) -> None:
    """Install a root handler according to settings."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if settings.log_format == "console":
        handler: logging.Handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    logging.basicConfig(level=level, handlers=[handler], force=True)


def _build(settings: Settings, db: Path | None) -> FeedWatch:
    return FeedWatch(
        store=create_store("sqlite", db or settings.database_path),
        fetcher=HttpFeedFetcher(user_agent=settings.user_agent, timeout=settings.fetch_timeout),
        delivery=ConsoleDelivery(show_preview_flag=True),
        settings=settings,
    )


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(code=1)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")) -> None:
    settings = get_settings(log_level="DEBUG") if verbose else get_settings()
    configure_logging(settings)


@app.command()
def version() -> None:
    """Show version."""
    from feedwatch import __version__

    console.print(f"feedwatch {__version__}")


@app.command()
def info() -> None:
    """Show system information and effective settings."""
    import sys

    from feedwatch import __version__

    settings = get_settings()
    console.print(f"[bold]FeedWatch[/bold] {__version__}")
    console.print(f"Python {sys.version}")
    console.print(f"Poll interval: {settings.poll_interval}s, fetch timeout: {settings.fetch_timeout}s")
    console.print(f"Database: {settings.database_path}")


@app.command()
def check(url: str) -> None:
    """Fetch a feed once and list its items."""
    from feedwatch.validation import validate_url

    settings = get_settings()

    async def _check() -> None:
        async with HttpFeedFetcher(
            user_agent=settings.user_agent,
            timeout=settings.fetch_timeout,
        ) as fetcher:
            result = await fetcher.fetch(validate_url(url))

        table = Table(title=result.feed.title or result.feed.url)
        table.add_column("Published")
        table.add_column("Title")
        table.add_column("Link", overflow="fold")
        for item in result.items:
            published = item.published_at.isoformat() if item.published_at else "-"
            table.add_row(published, item.title, item.link)
        console.print(table)

    try:
        asyncio.run(_check())
    except FeedWatchError as e:
        _fail(e)


@app.command()
def subscribe(
    subscriber: str,
    url: str,
    topic: str | None = typer.Option(None, help="Routing topic"),
    db: Path | None = DbOption,
) -> None:
    """Subscribe SUBSCRIBER to the feed at URL."""

    async def _subscribe() -> None:
        async with _build(get_settings(), db) as watch:
            result = await watch.subscribe(subscriber, url, topic=topic)
        console.print(f"[green]Subscribed[/green] {result.subscription.title}")
        if result.preview is not None:
            console.print(f"Latest: {result.preview.title} {result.preview.link}")

    try:
        asyncio.run(_subscribe())
    except FeedWatchError as e:
        _fail(e)


@app.command()
def unsubscribe(subscriber: str, index: int, db: Path | None = DbOption) -> None:
    """Unsubscribe SUBSCRIBER from the INDEX-th subscription of `list`."""

    async def _unsubscribe() -> None:
        async with _build(get_settings(), db) as watch:
            subscription = await watch.unsubscribe_at(subscriber, index)
        console.print(f"[yellow]Unsubscribed[/yellow] {subscription.title}")

    try:
        asyncio.run(_unsubscribe())
    except FeedWatchError as e:
        _fail(e)


@app.command(name="list")
def list_subscriptions(subscriber: str, db: Path | None = DbOption) -> None:
    """List the subscriptions of SUBSCRIBER."""

    async def _list() -> None:
        async with _build(get_settings(), db) as watch:
            subscriptions = await watch.list_subscriptions(subscriber)
        console.print(format_subscription_list(subscriptions), markup=False)

    try:
        asyncio.run(_list())
    except FeedWatchError as e:
        _fail(e)


@app.command()
def top(limit: int = typer.Argument(5, min=1), db: Path | None = DbOption) -> None:
    """Show the LIMIT most-followed feeds."""

    async def _top() -> None:
        async with _build(get_settings(), db) as watch:
            statistics = await watch.top_subscriptions(limit)
        console.print(format_statistics(statistics), markup=False)

    try:
        asyncio.run(_top())
    except FeedWatchError as e:
        _fail(e)


@app.command()
def run(
    interval: float | None = typer.Option(None, help="Seconds between poll cycles"),
    db: Path | None = DbOption,
) -> None:
    """Restore subscriptions and poll until interrupted."""
    settings = get_settings(poll_interval=interval) if interval else get_settings()

    async def _run() -> None:
        async with _build(settings, db) as watch:
            restored = await watch.restore()
            console.print(f"Watching {len(watch.registry.urls())} feeds ({restored} subscriptions)")
            watch.start()
            await asyncio.Event().wait()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("Stopped")
    except FeedWatchError as e:
        _fail(e)


if __name__ == "__main__":
    app()
