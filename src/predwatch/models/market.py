"""Entity, Outcome, ParseResult - canonical, venue-agnostic market view."""

from __future__ import annotations

from pydantic import BaseModel, Field

MAX_OUTCOMES = 3


class Outcome(BaseModel):
    """Single ranked outcome of an entity (e.g. "Yes", or one candidate of a multi-market event)."""

    label: str
    prob: float = Field(..., ge=0, le=1, description="Probability in [0, 1]")
    change: float | None = None  # e.g. one-day price change, None when unknown


class Entity(BaseModel):
    """Canonical tracked entity - a Polymarket event or a Kalshi market."""

    id: str
    venue: str
    title: str = ""
    outcomes: list[Outcome] = Field(default_factory=list)  # desc by prob, at most MAX_OUTCOMES
    volume: float = 0.0

    @property
    def top_prob(self) -> float | None:
        return self.outcomes[0].prob if self.outcomes else None


class ParseResult(BaseModel):
    """Outcome of normalizing one raw provider record. On failure the entity has no outcomes."""

    entity: Entity
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def rank_outcomes(outcomes: list[Outcome], limit: int = MAX_OUTCOMES) -> list[Outcome]:
    """Sort outcomes by descending probability and keep the top `limit`."""
    return sorted(outcomes, key=lambda o: o.prob, reverse=True)[:limit]
