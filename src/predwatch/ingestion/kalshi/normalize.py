"""Kalshi market -> canonical Entity with a single "Yes" outcome."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError

from predwatch.models import Entity, Outcome, ParseResult

VENUE = "kalshi"


def normalize_ticker(raw_id: str) -> str:
    """Kalshi tickers are upper-case (e.g. KXPRES-24)."""
    return raw_id.strip().upper()


def _cents(raw: dict[str, Any], field: str) -> float | None:
    """Price in cents from `field`, or from its `<field>_dollars` counterpart when absent."""
    value = raw.get(field)
    if value is not None:
        return float(value)
    dollars = raw.get(f"{field}_dollars")
    if dollars is None or dollars == "":
        return None
    try:
        return float(Decimal(str(dollars)) * 100)
    except InvalidOperation as e:
        raise ValueError(f"invalid {field}_dollars: {dollars!r}") from e


def _volume(raw: dict[str, Any]) -> float:
    try:
        return float(raw.get("volume_24h") or raw.get("volume") or 0)
    except (TypeError, ValueError):
        return 0.0


def parse_outcomes(market: dict[str, Any]) -> list[Outcome]:
    """Yes probability from the bid, falling back to the last trade when there is no bid."""
    yes_bid = _cents(market, "yes_bid")
    price = yes_bid
    if price is None or price == 0:
        price = _cents(market, "last_price")
    prob = price / 100 if price is not None else 0.0
    previous_bid = _cents(market, "previous_yes_bid")
    change = None
    if yes_bid is not None and previous_bid is not None:
        change = (yes_bid - previous_bid) / 100
    return [Outcome(label="Yes", prob=prob, change=change)]


def parse_market(raw: dict[str, Any], id_field: str = "ticker") -> ParseResult:
    """Convert a Kalshi market object to a canonical Entity."""
    entity = Entity(
        id=str(raw.get(id_field) or ""),
        venue=VENUE,
        title=str(raw.get("title") or ""),
        volume=_volume(raw),
    )
    try:
        entity.outcomes = parse_outcomes(raw)
    except (ValidationError, ValueError, TypeError) as e:
        return ParseResult(entity=entity, error=f"{type(e).__name__}: {e}")
    return ParseResult(entity=entity)
