"""Delta detection on the top outcome probability between consecutive observations."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable

import structlog

from predwatch.models import Alert, Entity
from predwatch.tracking.alerts import AlertStore
from predwatch.tracking.clock import Clock, now_ms
from predwatch.tracking.notifier import Notifier, NullNotifier

if TYPE_CHECKING:
    from predwatch.ingestion.base import RawRecord, VenueConnector

log = structlog.get_logger(__name__)

ALERT_THRESHOLD = 0.05


def crosses_threshold(diff: float, threshold: float) -> bool:
    """Inclusive comparison that treats float noise as equality (0.45 - 0.40 counts as 0.05)."""
    return diff > threshold or math.isclose(diff, threshold, rel_tol=1e-9, abs_tol=1e-12)


def format_move(diff: float) -> str:
    return f"Sudden change! Top option moved by {diff * 100:.1f}%"


class DeltaDetector:
    """
    Remembers the last top-outcome probability per entity id and raises an alert
    when a new observation differs by at least `threshold`.

    History lives for the detector's lifetime: it is written on every observation
    (alert or not) and is not cleared when an id stops being tracked.
    """

    def __init__(
        self,
        alerts: AlertStore,
        notifier: Notifier | None = None,
        threshold: float = ALERT_THRESHOLD,
        clock: Clock = now_ms,
    ) -> None:
        self.alerts = alerts
        self.notifier = notifier or NullNotifier()
        self.threshold = threshold
        self._clock = clock
        self._history: dict[str, float] = {}

    def last_observed(self, entity_id: str) -> float | None:
        return self._history.get(entity_id)

    @property
    def history(self) -> dict[str, float]:
        return dict(self._history)

    def observe(self, entities: Iterable[Entity]) -> list[Alert]:
        """Run one detection cycle over normalized entities (in order). Returns the alerts raised."""
        raised: list[Alert] = []
        now = self._clock()
        for entity in entities:
            if not entity.id or not entity.outcomes:
                continue
            top = entity.outcomes[0].prob
            prev = self._history.get(entity.id)
            if prev is not None:
                diff = abs(top - prev)
                if crosses_threshold(diff, self.threshold):
                    raised.append(
                        Alert(
                            id=entity.id,
                            message=format_move(diff),
                            timestamp=now,
                            venue=entity.venue,
                            move=diff,
                        )
                    )
                    log.info("alert_raised", venue=entity.venue, entity_id=entity.id, prev=prev, top=top)
            self._history[entity.id] = top
        if raised:
            self.alerts.put_many(raised)
            # One sound per cycle, however many entities moved.
            self.notifier.play_alert()
        return raised

    def detect(
        self,
        batch: list[RawRecord],
        adapter: VenueConnector,
        id_field: str | None = None,
    ) -> list[Alert]:
        """Normalize raw records with `adapter`, keying them by `id_field`, then observe them."""
        entities = []
        for raw in batch:
            entity = adapter.parse_record(raw).entity
            record_id = adapter.record_id(raw, id_field)
            if record_id != entity.id:
                entity = entity.model_copy(update={"id": record_id})
            entities.append(entity)
        return self.observe(entities)
