"""Wiring: build the tracker + scheduler from Settings and run them as one service."""

from __future__ import annotations

from typing import Any

from predwatch.config import Settings
from predwatch.ingestion.base import VenueConnector
from predwatch.ingestion.kalshi import KalshiClient, KalshiConnector
from predwatch.ingestion.polymarket import GammaClient, PolymarketConnector
from predwatch.tracking.alerts import AlertStore
from predwatch.tracking.clock import Clock, now_ms
from predwatch.tracking.detector import DeltaDetector
from predwatch.tracking.engine import MarketTracker
from predwatch.tracking.notifier import Notifier, create_notifier
from predwatch.tracking.scheduler import Scheduler


def build_connectors(settings: Settings) -> list[VenueConnector]:
    """Polymarket and Kalshi connectors backed by live HTTP clients."""
    timeout = settings.http_timeout_sec
    return [
        PolymarketConnector(
            GammaClient(
                settings.gamma_api_base,
                trending_limit=settings.polymarket_trending_limit,
                timeout=timeout,
            )
        ),
        KalshiConnector(
            KalshiClient(
                settings.kalshi_api_base,
                fetch_limit=settings.kalshi_trending_fetch_limit,
                trending_limit=settings.kalshi_trending_limit,
                timeout=timeout,
            )
        ),
    ]


def build_tracker(
    settings: Settings,
    *,
    connectors: list[VenueConnector] | None = None,
    notifier: Notifier | None = None,
    clock: Clock = now_ms,
) -> MarketTracker:
    """Tracker with detector/alert store from settings; watchlist seeded from [watchlist]."""
    if notifier is None:
        notifier = create_notifier(settings.notifier_kind, settings.notifier_command)
    alerts = AlertStore(ttl_ms=settings.alert_ttl_ms, clock=clock)
    detector = DeltaDetector(alerts, notifier, threshold=settings.alert_threshold, clock=clock)
    tracker = MarketTracker(
        connectors if connectors is not None else build_connectors(settings),
        detector,
        drop_stale_responses=settings.drop_stale_responses,
    )
    for venue in tracker.venues:
        for raw_id in settings.initial_watchlist(venue):
            tracker.add_tracked(venue, raw_id)
    return tracker


class TrackerService:
    """Tracker plus its scheduler. Start inside a running event loop; stop closes HTTP clients."""

    def __init__(self, tracker: MarketTracker, scheduler: Scheduler) -> None:
        self.tracker = tracker
        self.scheduler = scheduler

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> TrackerService:
        tracker = build_tracker(settings, **kwargs)
        scheduler = Scheduler(
            tracker,
            trending_interval_sec=settings.trending_interval_sec,
            tracked_interval_sec=settings.tracked_interval_sec,
            sweep_interval_sec=settings.alert_sweep_interval_sec,
        )
        return cls(tracker, scheduler)

    async def start(self) -> None:
        self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()
        await self.tracker.aclose()

    async def __aenter__(self) -> TrackerService:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()
