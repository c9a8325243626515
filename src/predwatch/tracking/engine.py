"""MarketTracker - per-venue trending/tracked snapshots, delta detection and alerts."""

from __future__ import annotations

from typing import Iterable, Mapping

import structlog

from predwatch.ingestion.base import VenueConnector
from predwatch.models import Alert, Entity
from predwatch.tracking.detector import DeltaDetector
from predwatch.tracking.watchlist import Watchlist

log = structlog.get_logger(__name__)


class UnknownVenueError(KeyError):
    """No connector registered under that venue name."""


class MarketTracker:
    """
    Engine facade read by the presentation layer.

    Refreshes replace a venue's snapshot wholesale, so readers only ever see a
    committed list. All methods are meant to run on a single event loop.
    """

    def __init__(
        self,
        connectors: Iterable[VenueConnector],
        detector: DeltaDetector,
        watchlist: Watchlist | None = None,
        drop_stale_responses: bool = True,
    ) -> None:
        self._connectors = {c.venue_id: c for c in connectors}
        self.detector = detector
        self.watchlist = watchlist or Watchlist(list(self._connectors))
        self.drop_stale_responses = drop_stale_responses
        self._trending: dict[str, list[Entity]] = {v: [] for v in self._connectors}
        self._tracked: dict[str, list[Entity]] = {v: [] for v in self._connectors}

    @property
    def venues(self) -> list[str]:
        return list(self._connectors)

    def connector(self, venue: str) -> VenueConnector:
        try:
            return self._connectors[venue]
        except KeyError:
            raise UnknownVenueError(venue) from None

    # --- Snapshots ---

    def trending_snapshot(self, venue: str) -> list[Entity]:
        self.connector(venue)
        return list(self._trending[venue])

    def tracked_snapshot(self, venue: str) -> list[Entity]:
        self.connector(venue)
        return list(self._tracked[venue])

    def alerts_snapshot(self) -> Mapping[str, Alert]:
        return self.detector.alerts.snapshot()

    def tracked_ids(self, venue: str) -> list[str]:
        self.connector(venue)
        return self.watchlist.ids(venue)

    # --- Watchlist mutation ---

    def add_tracked(self, venue: str, raw_id: str) -> bool:
        """Normalize and track an id. False when empty or already tracked."""
        connector = self.connector(venue)
        entity_id = connector.normalize_id(raw_id)
        if not entity_id:
            log.info("tracked_add_ignored", venue=venue, raw_id=raw_id)
            return False
        return self.watchlist.add(venue, entity_id)

    def remove_tracked(self, venue: str, raw_id: str) -> bool:
        """Untrack an id and drop its cached view. Its price history and any active alert stay."""
        connector = self.connector(venue)
        entity_id = connector.normalize_id(raw_id)
        self._tracked[venue] = [e for e in self._tracked[venue] if e.id != entity_id]
        return self.watchlist.remove(venue, entity_id)

    # --- Refresh cycles ---

    async def refresh_trending(self, venue: str) -> list[Entity]:
        """Fetch and normalize the venue's trending list. A failed fetch empties it until next cycle."""
        connector = self.connector(venue)
        try:
            batch = await connector.fetcher.fetch_trending()
        except Exception as e:
            log.warning("trending_fetch_failed", venue=venue, error=str(e))
            batch = []
        self._trending[venue] = connector.parse_entities(batch)
        log.debug("trending_refreshed", venue=venue, count=len(self._trending[venue]))
        return self.trending_snapshot(venue)

    async def refresh_tracked(self, venue: str) -> list[Entity]:
        """Fetch tracked ids concurrently, run delta detection, then commit the snapshot."""
        connector = self.connector(venue)
        ids = self.watchlist.ids(venue)
        if not ids:
            self._tracked[venue] = []
            return []
        generation = self.watchlist.generation(venue)
        try:
            batch = await connector.fetcher.fetch_by_ids(ids)
        except Exception as e:
            log.warning("tracked_fetch_failed", venue=venue, error=str(e))
            batch = []
        if self.drop_stale_responses and generation != self.watchlist.generation(venue):
            log.info("stale_refresh_dropped", venue=venue, requested=len(ids))
            return self.tracked_snapshot(venue)
        entities = connector.parse_entities(batch)
        self.detector.observe(entities)
        self._tracked[venue] = entities
        log.debug("tracked_refreshed", venue=venue, requested=len(ids), received=len(entities))
        return self.tracked_snapshot(venue)

    def sweep_alerts(self) -> Mapping[str, Alert]:
        return self.detector.alerts.sweep()

    async def aclose(self) -> None:
        for connector in self._connectors.values():
            await connector.aclose()
