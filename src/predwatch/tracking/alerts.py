"""Active alerts keyed by entity id, expired by a periodic TTL sweep."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

import structlog

from predwatch.models import Alert
from predwatch.tracking.clock import Clock, now_ms

log = structlog.get_logger(__name__)

DEFAULT_TTL_MS = 10_000


class AlertStore:
    """
    Copy-on-write store of at most one alert per id.

    Every change swaps in a new mapping, so a snapshot handed out earlier is never
    mutated and an unchanged store keeps returning the same snapshot object.
    """

    def __init__(self, ttl_ms: int = DEFAULT_TTL_MS, clock: Clock = now_ms) -> None:
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._snapshot: Mapping[str, Alert] = MappingProxyType({})

    def snapshot(self) -> Mapping[str, Alert]:
        """Read-only view of the active alerts."""
        return self._snapshot

    def put_many(self, alerts: list[Alert]) -> Mapping[str, Alert]:
        """Commit alerts in one step; a newer alert for an id replaces the old one."""
        if not alerts:
            return self._snapshot
        updated = dict(self._snapshot)
        for alert in alerts:
            updated[alert.id] = alert
        self._snapshot = MappingProxyType(updated)
        return self._snapshot

    def put(self, alert: Alert) -> Mapping[str, Alert]:
        return self.put_many([alert])

    def sweep(self, now: int | None = None) -> Mapping[str, Alert]:
        """Drop alerts older than the TTL. Returns the prior snapshot object when nothing expired."""
        now = self._clock() if now is None else now
        expired = [k for k, a in self._snapshot.items() if now - a.timestamp > self.ttl_ms]
        if not expired:
            return self._snapshot
        self._snapshot = MappingProxyType(
            {k: a for k, a in self._snapshot.items() if k not in expired}
        )
        log.debug("alerts_expired", ids=expired, remaining=len(self._snapshot))
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._snapshot
