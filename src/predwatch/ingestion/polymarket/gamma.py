"""Polymarket Gamma API client - trending events and lookups by id or slug."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from predwatch.ingestion.base import FetchError, RawRecord, RestFetcher, VenueConnector
from predwatch.ingestion.polymarket.normalize import VENUE, normalize_slug, parse_event
from predwatch.models import ParseResult

log = structlog.get_logger(__name__)

GAMMA_API_BASE = "https://gamma-api.polymarket.com"


class GammaClient(RestFetcher):
    """Async Gamma /events client."""

    venue_id = VENUE

    def __init__(
        self,
        base_url: str = GAMMA_API_BASE,
        trending_limit: int = 20,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.trending_limit = trending_limit

    async def fetch_trending(self) -> list[RawRecord]:
        """Top active, open events."""
        data = await self._get_json(
            "/events",
            params={"limit": self.trending_limit, "active": "true", "closed": "false"},
        )
        if not isinstance(data, list):
            data = data.get("data", []) if isinstance(data, dict) else []
        return [row for row in data if isinstance(row, dict)]

    async def fetch_by_id(self, record_id: str) -> RawRecord | None:
        """Event by numeric id (/events/{id}) or by slug (/events?slug=...)."""
        try:
            if record_id.isdigit():
                data: Any = await self._get_json(f"/events/{record_id}")
            else:
                data = await self._get_json("/events", params={"slug": record_id})
        except FetchError as e:
            log.warning("fetch_event_failed", record_id=record_id, error=str(e))
            return None
        if isinstance(data, list):
            data = data[0] if data else None
        return data if isinstance(data, dict) else None


class PolymarketConnector(VenueConnector):
    """Polymarket events, keyed by slug."""

    venue_id = VENUE
    id_field = "slug"

    def normalize_id(self, raw_id: str) -> str:
        return normalize_slug(raw_id)

    def parse_record(self, raw: dict[str, Any]) -> ParseResult:
        return parse_event(raw, id_field=self.id_field)
