"""Kalshi trade API client - open markets by volume and lookups by ticker."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from predwatch.ingestion.base import FetchError, RawRecord, RestFetcher, VenueConnector
from predwatch.ingestion.kalshi.normalize import VENUE, normalize_ticker, parse_market
from predwatch.models import ParseResult

log = structlog.get_logger(__name__)

KALSHI_API_BASE = "https://api.elections.kalshi.com/trade-api/v2"


class KalshiClient(RestFetcher):
    """Async client for the public (unauthenticated) Kalshi market endpoints."""

    venue_id = VENUE

    def __init__(
        self,
        base_url: str = KALSHI_API_BASE,
        fetch_limit: int = 100,
        trending_limit: int = 20,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.fetch_limit = fetch_limit
        self.trending_limit = trending_limit

    async def fetch_trending(self) -> list[RawRecord]:
        """Open markets, highest volume first, capped to trending_limit."""
        data = await self._get_json("/markets", params={"status": "open", "limit": self.fetch_limit})
        markets = data.get("markets") if isinstance(data, dict) else None
        if not markets:
            return []
        markets = [m for m in markets if isinstance(m, dict)]
        markets.sort(key=lambda m: m.get("volume") or 0, reverse=True)
        return markets[: self.trending_limit]

    async def fetch_by_id(self, record_id: str) -> RawRecord | None:
        try:
            data: Any = await self._get_json(f"/markets/{record_id}")
        except FetchError as e:
            log.warning("fetch_market_failed", ticker=record_id, error=str(e))
            return None
        market = data.get("market") if isinstance(data, dict) else None
        return market if isinstance(market, dict) else None


class KalshiConnector(VenueConnector):
    """Kalshi markets, keyed by ticker."""

    venue_id = VENUE
    id_field = "ticker"

    def normalize_id(self, raw_id: str) -> str:
        return normalize_ticker(raw_id)

    def parse_record(self, raw: dict[str, Any]) -> ParseResult:
        return parse_market(raw, id_field=self.id_field)
