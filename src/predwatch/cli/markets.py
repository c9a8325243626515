"""Markets subcommand: trending."""

from __future__ import annotations

import asyncio

import typer

from predwatch.models import Entity
from predwatch.service import build_tracker
from predwatch.tracking.engine import MarketTracker
from predwatch.tracking.notifier import NullNotifier
from predwatch.tracking.selectors import format_outcomes, search_by_title, top_by_volume

app = typer.Typer(help="One-shot market listings")


async def _load_trending(tracker: MarketTracker, venue: str) -> list[Entity]:
    try:
        return await tracker.refresh_trending(venue)
    finally:
        await tracker.aclose()


@app.command("trending")
def trending(
    ctx: typer.Context,
    venue: str = typer.Option("polymarket", "--venue", "-v", help="polymarket or kalshi"),
    top: int = typer.Option(3, "--top", "-n", help="Show the N highest-volume markets"),
    search: str | None = typer.Option(
        None, "--search", "-s", help="Title filter over the trending list (overrides --top)"
    ),
    limit: int = typer.Option(50, "--limit", help="Max rows for --search"),
) -> None:
    """Fetch the venue's trending markets once and print them."""
    settings = ctx.obj["settings"]
    tracker = build_tracker(settings, notifier=NullNotifier())
    if venue not in tracker.venues:
        raise typer.BadParameter(f"unknown venue {venue!r}; choose from {', '.join(tracker.venues)}")
    entities = asyncio.run(_load_trending(tracker, venue))
    if not entities:
        typer.echo(f"No trending markets from {venue} (provider unavailable?).")
        raise typer.Exit(1)
    if search is not None:
        rows = search_by_title(entities, search, limit=limit)
        header = f"{len(rows)} {venue} markets matching {search!r}:"
    else:
        rows = top_by_volume(entities, top)
        header = f"Top {len(rows)} {venue} markets by volume:"
    typer.echo(header)
    for idx, e in enumerate(rows, start=1):
        typer.echo(f"  #{idx} {e.title[:70]}  [{e.id}]  vol={e.volume:,.0f}")
        typer.echo(f"      {format_outcomes(e)}")
