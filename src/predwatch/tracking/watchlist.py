"""Tracked id sets per venue, with change listeners."""

from __future__ import annotations

from typing import Callable

import structlog

log = structlog.get_logger(__name__)

WatchlistListener = Callable[[str], None]


class Watchlist:
    """
    Set of tracked ids per venue. Ids are stored exactly as given (already normalized
    by the venue adapter); add/remove are idempotent. Each real mutation bumps the
    venue's generation and calls listeners with the venue name.
    """

    def __init__(self, venues: list[str] | None = None) -> None:
        # dict keys as an insertion-ordered set so fetches follow bookmark order
        self._ids: dict[str, dict[str, None]] = {v: {} for v in venues or []}
        self._generation: dict[str, int] = {v: 0 for v in venues or []}
        self._listeners: list[WatchlistListener] = []

    def subscribe(self, listener: WatchlistListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: WatchlistListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _changed(self, venue: str) -> None:
        self._generation[venue] = self._generation.get(venue, 0) + 1
        for listener in list(self._listeners):
            listener(venue)

    def add(self, venue: str, entity_id: str) -> bool:
        """Track entity_id. Returns False if it was already tracked or is empty."""
        ids = self._ids.setdefault(venue, {})
        if not entity_id or entity_id in ids:
            return False
        ids[entity_id] = None
        log.info("tracked_added", venue=venue, entity_id=entity_id, size=len(ids))
        self._changed(venue)
        return True

    def remove(self, venue: str, entity_id: str) -> bool:
        """Stop tracking entity_id. Returns False if it was not tracked."""
        ids = self._ids.get(venue, {})
        if entity_id not in ids:
            return False
        del ids[entity_id]
        log.info("tracked_removed", venue=venue, entity_id=entity_id, size=len(ids))
        self._changed(venue)
        return True

    def ids(self, venue: str) -> list[str]:
        return list(self._ids.get(venue, {}))

    def generation(self, venue: str) -> int:
        return self._generation.get(venue, 0)

    def __contains__(self, item: tuple[str, str]) -> bool:
        venue, entity_id = item
        return entity_id in self._ids.get(venue, {})

    def __len__(self) -> int:
        return sum(len(ids) for ids in self._ids.values())
