"""Watch subcommand: run the tracker headless and print alerts as they fire."""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import Mapping

import typer

from predwatch.models import Alert
from predwatch.service import TrackerService

app = typer.Typer(help="Track markets and alert on sudden moves (headless)")


def _new_alerts(seen: Mapping[str, Alert], current: Mapping[str, Alert]) -> list[Alert]:
    return [a for k, a in current.items() if seen.get(k) is not a]


async def _run(service: TrackerService, stop_event: asyncio.Event, poll_sec: float) -> None:
    async with service:
        seen = service.tracker.alerts_snapshot()
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=poll_sec)
            except asyncio.TimeoutError:
                pass
            current = service.tracker.alerts_snapshot()
            if current is seen:
                continue
            for alert in _new_alerts(seen, current):
                typer.echo(f"[{alert.venue}] {alert.id}: {alert.message}")
            seen = current


@app.callback(invoke_without_command=True)
def watch(
    ctx: typer.Context,
    poly: list[str] | None = typer.Option(
        None, "--poly", help="Polymarket event slug or URL to track (repeatable)"
    ),
    kalshi: list[str] | None = typer.Option(
        None, "--kalshi", help="Kalshi market ticker to track (repeatable)"
    ),
) -> None:
    """Poll tracked markets until Ctrl+C. Ids from [watchlist] in config are tracked too."""
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    service = TrackerService.from_settings(settings)
    for slug in poly or []:
        service.tracker.add_tracked("polymarket", slug)
    for ticker in kalshi or []:
        service.tracker.add_tracked("kalshi", ticker)
    if not len(service.tracker.watchlist):
        typer.echo("Nothing to track. Pass --poly/--kalshi or set [watchlist] in config.")
        raise typer.Exit(1)
    stop_event = asyncio.Event()

    def shutdown() -> None:
        stop_event.set()

    loop = asyncio.new_event_loop()
    if sys.platform != "win32":
        loop.add_signal_handler(signal.SIGINT, shutdown)
        loop.add_signal_handler(signal.SIGTERM, shutdown)
    try:
        typer.echo(
            f"Tracking {len(service.tracker.watchlist)} markets every "
            f"{settings.tracked_interval_sec:g}s, threshold {settings.alert_threshold * 100:g}% (Ctrl+C to stop)..."
        )
        loop.run_until_complete(_run(service, stop_event, settings.alert_sweep_interval_sec))
    except KeyboardInterrupt:
        pass
    finally:
        loop.close()
    typer.echo("Stopped.")
