"""List views over entity snapshots for the dashboard and CLI."""

from __future__ import annotations

from predwatch.models import Entity


def top_by_volume(entities: list[Entity], n: int = 3) -> list[Entity]:
    """Highest-volume entities first."""
    return sorted(entities, key=lambda e: e.volume, reverse=True)[:n]


def search_by_title(entities: list[Entity], query: str, limit: int = 50) -> list[Entity]:
    """Case-insensitive title substring match, in snapshot order. Empty query matches all."""
    q = query.strip().lower()
    return [e for e in entities if q in e.title.lower()][:limit]


def format_prob(prob: float | None) -> str:
    if prob is None:
        return "0%"
    return f"{prob * 100:.1f}%"


def format_change(change: float | None) -> str:
    """Signed percentage-point change, "" when unknown or flat."""
    if not change:
        return ""
    sign = "+" if change > 0 else ""
    return f"{sign}{change * 100:.1f}%"


def format_outcomes(entity: Entity) -> str:
    """One-line summary, e.g. "Yes 55.0% (+1.2%)  |  Trump 40.0%"."""
    parts = []
    for o in entity.outcomes:
        text = f"{o.label} {format_prob(o.prob)}"
        change = format_change(o.change)
        if change:
            text += f" ({change})"
        parts.append(text)
    return "  |  ".join(parts) or "-"
