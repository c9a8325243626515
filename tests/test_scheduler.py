"""Scheduler: immediate first run, restart on watchlist change, sweep cadence, shutdown."""

import asyncio

import pytest

from conftest import GatedFetcher, eventually, kalshi_market, settle
from predwatch.ingestion.kalshi import KalshiConnector
from predwatch.models import Alert
from predwatch.tracking.engine import MarketTracker
from predwatch.tracking.scheduler import PeriodicTask, Scheduler


def _slow_scheduler(tracker, **overrides):
    intervals = {"trending_interval_sec": 60, "tracked_interval_sec": 60, "sweep_interval_sec": 60}
    intervals.update(overrides)
    return Scheduler(tracker, **intervals)


async def test_start_runs_every_refresh_immediately(tracker, kalshi_fetcher, poly_fetcher):
    kalshi_fetcher.records = {"A": kalshi_market("A", 50)}
    tracker.add_tracked("kalshi", "A")
    scheduler = _slow_scheduler(tracker)
    scheduler.start()
    await settle()
    try:
        assert kalshi_fetcher.calls == [["A"]]
        assert kalshi_fetcher.trending_calls == 1
        assert poly_fetcher.trending_calls == 1
        # nothing tracked on polymarket, so no lookups
        assert poly_fetcher.calls == []
        assert set(scheduler.tasks()) == {
            "trending:polymarket",
            "trending:kalshi",
            "tracked:polymarket",
            "tracked:kalshi",
            "alert_sweep",
        }
    finally:
        await scheduler.stop()


async def test_watchlist_change_restarts_tracked_refresh(tracker, kalshi_fetcher):
    kalshi_fetcher.records = {"A": kalshi_market("A", 50), "B": kalshi_market("B", 30)}
    tracker.add_tracked("kalshi", "A")
    scheduler = _slow_scheduler(tracker)
    scheduler.start()
    await settle()
    old = scheduler.tasks()["tracked:kalshi"]

    tracker.add_tracked("kalshi", "B")
    await settle()
    try:
        assert kalshi_fetcher.calls == [["A"], ["A", "B"]]
        assert not old.running
        assert scheduler.tasks()["tracked:kalshi"] is not old
        assert [e.id for e in tracker.tracked_snapshot("kalshi")] == ["A", "B"]
    finally:
        await scheduler.stop()


async def test_noop_mutation_does_not_restart(tracker, kalshi_fetcher):
    kalshi_fetcher.records = {"A": kalshi_market("A", 50)}
    tracker.add_tracked("kalshi", "A")
    scheduler = _slow_scheduler(tracker)
    scheduler.start()
    await settle()
    task = scheduler.tasks()["tracked:kalshi"]

    tracker.add_tracked("kalshi", "a")
    tracker.remove_tracked("kalshi", "ZZZ")
    await settle()
    try:
        assert scheduler.tasks()["tracked:kalshi"] is task
        assert kalshi_fetcher.calls == [["A"]]
    finally:
        await scheduler.stop()


async def test_other_venue_unaffected_by_restart(tracker, kalshi_fetcher, poly_fetcher):
    scheduler = _slow_scheduler(tracker)
    scheduler.start()
    await settle()
    poly_task = scheduler.tasks()["tracked:polymarket"]
    tracker.add_tracked("kalshi", "A")
    await settle()
    try:
        assert scheduler.tasks()["tracked:polymarket"] is poly_task
        assert poly_task.running
    finally:
        await scheduler.stop()


async def test_tracked_refresh_repeats_on_interval(tracker, kalshi_fetcher):
    kalshi_fetcher.records = {"A": kalshi_market("A", 50)}
    tracker.add_tracked("kalshi", "A")
    scheduler = _slow_scheduler(tracker, tracked_interval_sec=0.02)
    scheduler.start()
    await eventually(lambda: len(kalshi_fetcher.calls) >= 3)
    await scheduler.stop()


async def test_sweep_evicts_expired_alerts(tracker, clock):
    scheduler = _slow_scheduler(tracker, sweep_interval_sec=0.01)
    tracker.detector.alerts.put(Alert(id="X", message="m", timestamp=clock.now))
    scheduler.start()
    await asyncio.sleep(0.03)
    assert "X" in tracker.alerts_snapshot()

    clock.advance(10_001)
    await eventually(lambda: "X" not in tracker.alerts_snapshot())
    await scheduler.stop()


async def test_stop_cancels_refresh_in_flight(detector):
    fetcher = GatedFetcher(records={"A": kalshi_market("A", 50)})
    tracker = MarketTracker([KalshiConnector(fetcher)], detector)
    tracker.add_tracked("kalshi", "A")
    scheduler = _slow_scheduler(tracker)
    scheduler.start()
    await settle()
    assert fetcher.calls == [["A"]]

    await scheduler.stop()
    assert not scheduler.started
    assert scheduler.tasks() == {}
    fetcher.gate.set()
    await settle()
    assert tracker.tracked_snapshot("kalshi") == []

    # no restarts once stopped
    tracker.add_tracked("kalshi", "B")
    await settle()
    assert fetcher.calls == [["A"]]


async def test_start_and_stop_are_idempotent(tracker):
    scheduler = _slow_scheduler(tracker)
    await scheduler.stop()
    scheduler.start()
    tasks = scheduler.tasks()
    scheduler.start()
    assert scheduler.tasks() == tasks
    await scheduler.stop()
    await scheduler.stop()


async def test_periodic_task_survives_failures():
    calls = 0

    async def boom():
        nonlocal calls
        calls += 1
        raise RuntimeError("boom")

    task = PeriodicTask("boom", 0.01, boom)
    task.start()
    await eventually(lambda: calls >= 2)
    assert task.running
    assert task.runs >= 2
    timer = task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await timer


async def test_periodic_task_without_immediate_run():
    calls = []

    async def tick():
        calls.append(1)

    task = PeriodicTask("tick", 60, tick, run_immediately=False)
    task.start()
    await settle()
    assert calls == []
    await asyncio.gather(task.cancel(), return_exceptions=True)
