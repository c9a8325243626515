"""Textual TUI dashboard - trending, bookmarks and alerts per venue."""

from __future__ import annotations

from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import (
    DataTable,
    Footer,
    Header,
    Input,
    Label,
    Static,
    TabbedContent,
    TabPane,
)

from predwatch.models import Entity
from predwatch.service import TrackerService
from predwatch.tracking.notifier import BellNotifier, Notifier
from predwatch.tracking.selectors import format_outcomes, search_by_title, top_by_volume

VENUE_TITLES = {"polymarket": "Polymarket", "kalshi": "Kalshi"}
ID_PLACEHOLDERS = {
    "polymarket": "Event slug or URL (e.g. bitcoin-hits-100k)",
    "kalshi": "Market ticker (e.g. KXPRES-24)",
}


class AppBellNotifier(Notifier):
    """Rings through Textual, which owns the terminal while the dashboard runs."""

    name = "tui_bell"

    def __init__(self, app: App[Any]) -> None:
        self._app = app

    def _play(self) -> None:
        self._app.bell()


class AlertPanel(Static):
    """Active alerts, newest first."""

    def show(self, lines: list[str]) -> None:
        self.update("\n".join(lines) if lines else "[dim]No active alerts[/]")


class VenuePane(Vertical):
    """Top-3 by volume, bookmarks and the searchable trending list for one venue."""

    def __init__(self, venue: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.venue = venue

    def compose(self) -> ComposeResult:
        v = self.venue
        yield Label("Top 3 Markets by Volume")
        yield DataTable(id=f"{v}-top", cursor_type="row")
        yield Label("Bookmarks  (d: remove highlighted)")
        yield Input(placeholder=ID_PLACEHOLDERS.get(v, "Market id"), id=f"{v}-add")
        yield DataTable(id=f"{v}-tracked", cursor_type="row")
        yield Label("All Available Markets  (b: bookmark highlighted)")
        yield Input(placeholder="Search markets...", id=f"{v}-search")
        yield DataTable(id=f"{v}-all", cursor_type="row")

    def on_mount(self) -> None:
        for table in self.query(DataTable):
            table.add_columns("Market", "Outcomes", "")


class PredWatchTUI(App[None]):
    """predwatch dashboard. Owns the tracker service for the lifetime of the app."""

    TITLE = "Prediction Market Tracker"
    BINDINGS = [
        ("q", "quit", "Quit"),
        ("d", "remove_bookmark", "Remove bookmark"),
        ("b", "add_bookmark", "Bookmark"),
    ]

    def __init__(self, service: TrackerService, refresh_sec: float = 1.0, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._service = service
        self._tracker = service.tracker
        self._refresh_sec = refresh_sec
        detector = self._tracker.detector
        if isinstance(detector.notifier, BellNotifier):
            detector.notifier = AppBellNotifier(self)

    def compose(self) -> ComposeResult:
        scheduler = self._service.scheduler
        yield Header()
        yield Static(
            f"Polling every {scheduler.tracked_interval_sec:g}s  •  "
            f"Threshold: {self._tracker.detector.threshold * 100:g}%",
            id="status",
        )
        with TabbedContent():
            for venue in self._tracker.venues:
                with TabPane(VENUE_TITLES.get(venue, venue), id=f"tab-{venue}"):
                    yield VenuePane(venue)
        yield AlertPanel(id="alerts")
        yield Footer()

    async def on_mount(self) -> None:
        await self._service.start()
        self.set_interval(self._refresh_sec, self.refresh_views)

    async def on_unmount(self) -> None:
        await self._service.stop()

    def _active_venue(self) -> str:
        active = self.query_one(TabbedContent).active or ""
        return active.removeprefix("tab-") or self._tracker.venues[0]

    @staticmethod
    def _fill(table: DataTable, entities: list[Entity], flagged: set[str] | None = None) -> None:
        table.clear()
        seen: set[str] = set()
        for e in entities:
            if e.id in seen:
                continue
            seen.add(e.id)
            mark = "ALERT" if flagged and e.id in flagged else ""
            table.add_row(e.title[:60] or e.id, format_outcomes(e), mark, key=e.id)

    def refresh_views(self) -> None:
        alerts = self._tracker.alerts_snapshot()
        for venue in self._tracker.venues:
            trending = self._tracker.trending_snapshot(venue)
            query = self.query_one(f"#{venue}-search", Input).value
            self._fill(self.query_one(f"#{venue}-top", DataTable), top_by_volume(trending, 3))
            self._fill(
                self.query_one(f"#{venue}-tracked", DataTable),
                self._tracker.tracked_snapshot(venue),
                flagged=set(alerts),
            )
            self._fill(self.query_one(f"#{venue}-all", DataTable), search_by_title(trending, query))
        lines = [
            f"[bold red]{a.venue or ''} {a.id}[/]: {a.message}"
            for a in sorted(alerts.values(), key=lambda a: a.timestamp, reverse=True)
        ]
        self.query_one(AlertPanel).show(lines)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        input_id = event.input.id or ""
        if not input_id.endswith("-add"):
            return
        venue = input_id.removesuffix("-add")
        if event.value.strip():
            self._tracker.add_tracked(venue, event.value)
        event.input.value = ""
        self.refresh_views()

    def on_input_changed(self, event: Input.Changed) -> None:
        if (event.input.id or "").endswith("-search"):
            self.refresh_views()

    def _highlighted_id(self, table: DataTable) -> str | None:
        if table.row_count == 0:
            return None
        row_key = table.coordinate_to_cell_key(table.cursor_coordinate).row_key
        return row_key.value

    def action_remove_bookmark(self) -> None:
        venue = self._active_venue()
        entity_id = self._highlighted_id(self.query_one(f"#{venue}-tracked", DataTable))
        if entity_id is not None:
            self._tracker.remove_tracked(venue, entity_id)
            self.refresh_views()

    def action_add_bookmark(self) -> None:
        venue = self._active_venue()
        entity_id = self._highlighted_id(self.query_one(f"#{venue}-all", DataTable))
        if entity_id is not None:
            self._tracker.add_tracked(venue, entity_id)
            self.refresh_views()


def run_tui(settings: Any) -> None:
    """Entry point: build the tracker service and run the dashboard."""
    service = TrackerService.from_settings(settings)
    PredWatchTUI(service, refresh_sec=1.0).run()
