"""Dashboard smoke test with Textual's pilot."""

from textual.widgets import DataTable, Input

from conftest import CountingNotifier, FakeFetcher, poly_event
from predwatch.config import Settings
from predwatch.ingestion.kalshi import KalshiConnector
from predwatch.ingestion.polymarket import PolymarketConnector
from predwatch.service import TrackerService
from predwatch.tui.app import PredWatchTUI


def _service():
    poly = FakeFetcher(
        records={"eth": poly_event("eth", volume=42)},
        trending=[poly_event("small", volume=1), poly_event("big", volume=99)],
    )
    settings = Settings.from_dict({"polling": {"trending_interval_sec": 60, "tracked_interval_sec": 60}})
    return TrackerService.from_settings(
        settings,
        connectors=[PolymarketConnector(poly), KalshiConnector(FakeFetcher())],
        notifier=CountingNotifier(),
    )


async def test_dashboard_shows_trending_and_bookmarks():
    service = _service()
    app = PredWatchTUI(service, refresh_sec=0.05)
    async with app.run_test() as pilot:
        await pilot.pause(0.2)
        assert app.query_one("#polymarket-all", DataTable).row_count == 2
        assert app.query_one("#polymarket-top", DataTable).row_count == 2

        app.query_one("#polymarket-add", Input).focus()
        await pilot.press(*"eth", "enter")
        await pilot.pause(0.2)
        assert service.tracker.tracked_ids("polymarket") == ["eth"]
        assert app.query_one("#polymarket-tracked", DataTable).row_count == 1
    assert not service.scheduler.started
