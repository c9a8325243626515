"""Abstract fetch capability and connector for pluggable venues (Polymarket, Kalshi, ...)."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Protocol

import httpx
import structlog

from predwatch.models import Entity, ParseResult

log = structlog.get_logger(__name__)

RawRecord = dict[str, Any]

# Set on records returned by fetch_by_ids: the id the record was looked up by.
REQUESTED_ID_KEY = "_requested_id"


class FetchError(Exception):
    """A provider request failed (network error, bad status, undecodable body)."""

    def __init__(self, venue: str, message: str) -> None:
        super().__init__(f"{venue}: {message}")
        self.venue = venue


class MarketFetcher(Protocol):
    """Protocol for the per-venue REST fetch capability."""

    async def fetch_trending(self) -> list[RawRecord]: ...
    async def fetch_by_id(self, record_id: str) -> RawRecord | None: ...
    async def fetch_by_ids(self, record_ids: list[str]) -> list[RawRecord]: ...


class RestFetcher(ABC):
    """Shared httpx plumbing for venue fetchers. Subclasses implement trending and single lookups."""

    venue_id: str = ""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            resp = await self._client.get(path, params=params)
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise FetchError(self.venue_id, f"GET {path} failed: {e}") from e

    @abstractmethod
    async def fetch_trending(self) -> list[RawRecord]:
        """Return the venue's currently trending records. Raises FetchError."""
        ...

    @abstractmethod
    async def fetch_by_id(self, record_id: str) -> RawRecord | None:
        """Return one record, or None if it could not be fetched."""
        ...

    async def fetch_by_ids(self, record_ids: list[str]) -> list[RawRecord]:
        """Fetch records concurrently; failed lookups are omitted, never fail the whole call.

        Each record is tagged with the id it was requested by, so an event looked up
        by numeric id stays keyed on that id rather than its slug.
        """
        results = await asyncio.gather(
            *(self.fetch_by_id(rid) for rid in record_ids), return_exceptions=True
        )
        records = []
        for rid, res in zip(record_ids, results):
            if isinstance(res, BaseException):
                log.warning("fetch_by_id_failed", venue=self.venue_id, record_id=rid, error=str(res))
                continue
            if res is not None:
                records.append({**res, REQUESTED_ID_KEY: rid})
        return records

    async def aclose(self) -> None:
        await self._client.aclose()


class VenueConnector(ABC):
    """Venue adapter: id normalization + raw record -> canonical Entity, paired with its fetcher."""

    venue_id: str = ""
    id_field: str = "id"

    def __init__(self, fetcher: MarketFetcher) -> None:
        self.fetcher = fetcher

    @abstractmethod
    def normalize_id(self, raw_id: str) -> str:
        """Turn user input into the exact id stored in the watchlist ("" when unusable)."""
        ...

    @abstractmethod
    def parse_record(self, raw: RawRecord) -> ParseResult:
        """Normalize one raw record. Never raises; failures come back as ParseResult.error."""
        ...

    def record_id(self, raw: RawRecord, id_field: str | None = None) -> str:
        value = raw.get(id_field or self.id_field)
        return "" if value is None else str(value)

    def parse_entities(self, batch: list[RawRecord]) -> list[Entity]:
        """Parse a batch, logging failures. Failed records keep their place with no outcomes."""
        entities = []
        for raw in batch:
            result = self.parse_record(raw)
            if not result.ok:
                log.warning(
                    "parse_failed", venue=self.venue_id, record_id=result.entity.id, error=result.error
                )
            entity = result.entity
            requested = raw.get(REQUESTED_ID_KEY)
            if requested and requested != entity.id:
                entity = entity.model_copy(update={"id": requested})
            entities.append(entity)
        return entities

    async def aclose(self) -> None:
        close = getattr(self.fetcher, "aclose", None)
        if close is not None:
            await close()
