"""Polymarket Gamma event -> canonical Entity with ranked Outcomes."""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError

from predwatch.models import Entity, Outcome, ParseResult, rank_outcomes

VENUE = "polymarket"
_EVENT_URL_PREFIX = re.compile(r"^.*/event/")


def _float(s: str | float | None) -> float:
    if s is None:
        return 0.0
    try:
        return float(s)
    except (TypeError, ValueError):
        return 0.0


def _json_list(value: str | list[Any] | None) -> list[Any] | None:
    """Decode a Gamma serialized array field ('["Yes", "No"]'). None when the field is absent."""
    if value is None or value == "":
        return None
    if isinstance(value, list):
        return value
    decoded = json.loads(value)
    if not isinstance(decoded, list):
        raise ValueError(f"expected JSON array, got {type(decoded).__name__}")
    return decoded


def normalize_slug(raw_id: str) -> str:
    """Event slug from user input; accepts a full polymarket.com/event/<slug> URL."""
    return _EVENT_URL_PREFIX.sub("", raw_id.strip())


def _multi_market_outcomes(markets: list[dict[str, Any]]) -> list[Outcome]:
    """One outcome per sub-market (e.g. one per candidate)."""
    outcomes = []
    for m in markets:
        prices = _json_list(m.get("outcomePrices"))
        first = prices[0] if prices else None
        price = first or m.get("lastTradePrice") or 0
        outcomes.append(
            Outcome(
                label=m.get("groupItemTitle") or m.get("question") or "Yes",
                prob=_float(price),
                change=_float(m.get("oneDayPriceChange")),
            )
        )
    return outcomes


def _single_market_outcomes(m: dict[str, Any]) -> list[Outcome]:
    """Outcomes of a lone binary (or categorical) market. "No" is dropped when there are more than two."""
    names = _json_list(m.get("outcomes"))
    if names is None:
        names = ["Yes"]
    prices = _json_list(m.get("outcomePrices"))
    if prices is None:
        prices = [m.get("lastTradePrice") or 0]
    outcomes = []
    for i, name in enumerate(names):
        if len(names) > 2 and name == "No":
            continue
        outcomes.append(
            Outcome(
                label=str(name),
                prob=_float(prices[i]) if i < len(prices) else 0.0,
                change=_float(m.get("oneDayPriceChange")) if i == 0 else None,
            )
        )
    return outcomes


def parse_outcomes(event: dict[str, Any]) -> list[Outcome]:
    """Ranked outcomes for a Gamma event. Raises on malformed embedded fields."""
    markets = event.get("markets") or []
    if len(markets) > 1:
        outcomes = _multi_market_outcomes(markets)
    elif len(markets) == 1:
        outcomes = _single_market_outcomes(markets[0])
    elif event.get("outcomePrices"):
        prices = _json_list(event.get("outcomePrices")) or [0]
        outcomes = [
            Outcome(label="Yes", prob=_float(prices[0]), change=_float(event.get("oneDayPriceChange")))
        ]
    else:
        outcomes = []
    return rank_outcomes(outcomes)


def parse_event(raw: dict[str, Any], id_field: str = "slug") -> ParseResult:
    """Convert a Gamma API event object to a canonical Entity."""
    entity = Entity(
        id=str(raw.get(id_field) or ""),
        venue=VENUE,
        title=str(raw.get("title") or raw.get("question") or ""),
        volume=_float(raw.get("volume")),
    )
    try:
        entity.outcomes = parse_outcomes(raw)
    except (json.JSONDecodeError, ValidationError, ValueError, TypeError, AttributeError) as e:
        return ParseResult(entity=entity, error=f"{type(e).__name__}: {e}")
    return ParseResult(entity=entity)
