"""Periodic refresh tasks: trending and tracked per venue, plus the alert sweep."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import structlog

from predwatch.tracking.engine import MarketTracker

log = structlog.get_logger(__name__)

TRENDING_INTERVAL_SEC = 300.0
TRACKED_INTERVAL_SEC = 15.0
ALERT_SWEEP_INTERVAL_SEC = 2.0


class PeriodicTask:
    """
    Calls `func` every `interval_sec` (first call right away when run_immediately).

    Each call runs as its own task, so a slow call never delays the next tick and
    cancelling the timer leaves calls already in flight running.
    """

    def __init__(
        self,
        name: str,
        interval_sec: float,
        func: Callable[[], Awaitable[Any]],
        *,
        run_immediately: bool = True,
        inflight: set[asyncio.Task[None]] | None = None,
    ) -> None:
        self.name = name
        self.interval_sec = interval_sec
        self.run_immediately = run_immediately
        self.runs = 0
        self._func = func
        self._timer: asyncio.Task[None] | None = None
        self._inflight = inflight if inflight is not None else set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        if self.running:
            return
        if self.run_immediately:
            self._spawn()
        self._timer = asyncio.create_task(self._tick_loop(), name=f"timer:{self.name}")

    def cancel(self) -> asyncio.Task[None] | None:
        """Stop ticking. Calls already in flight are left to finish. Returns the timer task."""
        if self._timer is not None:
            self._timer.cancel()
        return self._timer

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            self._spawn()

    def _spawn(self) -> None:
        task = asyncio.create_task(self._run_once(), name=f"run:{self.name}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run_once(self) -> None:
        self.runs += 1
        try:
            await self._func()
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("periodic_task_failed", task=self.name)


class Scheduler:
    """
    Owns the tracker's background tasks. Tracked refresh for a venue restarts on every
    watchlist change for that venue, so cadence resets instead of stacking.
    No ordering between tasks: trending and tracked refreshes may overlap.
    """

    def __init__(
        self,
        tracker: MarketTracker,
        *,
        trending_interval_sec: float = TRENDING_INTERVAL_SEC,
        tracked_interval_sec: float = TRACKED_INTERVAL_SEC,
        sweep_interval_sec: float = ALERT_SWEEP_INTERVAL_SEC,
    ) -> None:
        self.tracker = tracker
        self.trending_interval_sec = trending_interval_sec
        self.tracked_interval_sec = tracked_interval_sec
        self.sweep_interval_sec = sweep_interval_sec
        self._trending_tasks: dict[str, PeriodicTask] = {}
        self._tracked_tasks: dict[str, PeriodicTask] = {}
        self._sweep_task: PeriodicTask | None = None
        self._inflight: set[asyncio.Task[None]] = set()
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def tasks(self) -> dict[str, PeriodicTask]:
        out = {t.name: t for t in self._trending_tasks.values()}
        out.update({t.name: t for t in self._tracked_tasks.values()})
        if self._sweep_task is not None:
            out[self._sweep_task.name] = self._sweep_task
        return out

    def start(self) -> None:
        """Start all tasks. Must be called from a running event loop."""
        if self._started:
            return
        self._started = True
        for venue in self.tracker.venues:
            task = PeriodicTask(
                f"trending:{venue}",
                self.trending_interval_sec,
                lambda v=venue: self.tracker.refresh_trending(v),
                inflight=self._inflight,
            )
            self._trending_tasks[venue] = task
            task.start()
            self.restart_tracked(venue)
        self._sweep_task = PeriodicTask(
            "alert_sweep",
            self.sweep_interval_sec,
            self._sweep,
            run_immediately=False,
            inflight=self._inflight,
        )
        self._sweep_task.start()
        self.tracker.watchlist.subscribe(self._on_watchlist_change)
        log.info(
            "scheduler_started",
            venues=self.tracker.venues,
            trending_interval_sec=self.trending_interval_sec,
            tracked_interval_sec=self.tracked_interval_sec,
        )

    def restart_tracked(self, venue: str) -> PeriodicTask:
        """Replace the venue's tracked-refresh timer with a fresh one that fires now."""
        old = self._tracked_tasks.pop(venue, None)
        if old is not None:
            old.cancel()
        task = PeriodicTask(
            f"tracked:{venue}",
            self.tracked_interval_sec,
            lambda: self.tracker.refresh_tracked(venue),
            inflight=self._inflight,
        )
        self._tracked_tasks[venue] = task
        task.start()
        return task

    def _on_watchlist_change(self, venue: str) -> None:
        if self._started:
            self.restart_tracked(venue)

    async def _sweep(self) -> None:
        self.tracker.sweep_alerts()

    async def stop(self) -> None:
        """Cancel timers and any refresh still in flight."""
        if not self._started:
            return
        self._started = False
        self.tracker.watchlist.unsubscribe(self._on_watchlist_change)
        timers = [t for t in (task.cancel() for task in self.tasks().values()) if t is not None]
        pending = list(self._inflight)
        for t in pending:
            t.cancel()
        pending.extend(timers)
        await asyncio.gather(*pending, return_exceptions=True)
        self._trending_tasks.clear()
        self._tracked_tasks.clear()
        self._sweep_task = None
        log.info("scheduler_stopped")
