"""Canonical schema (Pydantic) - Entity, Outcome, Alert."""

from predwatch.models.alert import Alert
from predwatch.models.market import MAX_OUTCOMES, Entity, Outcome, ParseResult, rank_outcomes

__all__ = [
    "Entity",
    "Outcome",
    "ParseResult",
    "Alert",
    "MAX_OUTCOMES",
    "rank_outcomes",
]
