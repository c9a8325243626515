"""Shared fixtures: fake fetchers, controllable clock, wired tracker."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from predwatch.ingestion.base import FetchError
from predwatch.ingestion.kalshi import KalshiConnector
from predwatch.ingestion.polymarket import PolymarketConnector
from predwatch.tracking.alerts import AlertStore
from predwatch.tracking.detector import DeltaDetector
from predwatch.tracking.engine import MarketTracker
from predwatch.tracking.notifier import Notifier

T0 = 1_700_000_000_000


class FakeClock:
    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class CountingNotifier(Notifier):
    name = "counting"

    def __init__(self) -> None:
        self.calls = 0

    def _play(self) -> None:
        self.calls += 1


class FakeFetcher:
    """In-memory MarketFetcher. Ids in `failing` behave like failed lookups."""

    def __init__(
        self,
        records: dict[str, dict[str, Any]] | None = None,
        trending: list[dict[str, Any]] | None = None,
    ) -> None:
        self.records = records or {}
        self.trending = trending or []
        self.failing: set[str] = set()
        self.fail_all = False
        self.calls: list[list[str]] = []
        self.trending_calls = 0

    async def fetch_trending(self) -> list[dict[str, Any]]:
        self.trending_calls += 1
        if self.fail_all:
            raise FetchError("fake", "provider down")
        return list(self.trending)

    async def fetch_by_id(self, record_id: str) -> dict[str, Any] | None:
        if record_id in self.failing:
            return None
        return self.records.get(record_id)

    async def fetch_by_ids(self, record_ids: list[str]) -> list[dict[str, Any]]:
        self.calls.append(list(record_ids))
        if self.fail_all:
            raise FetchError("fake", "provider down")
        out = []
        for rid in record_ids:
            rec = await self.fetch_by_id(rid)
            if rec is not None:
                out.append(rec)
        return out


class GatedFetcher(FakeFetcher):
    """fetch_by_ids blocks until `gate` is set, to hold a refresh in flight."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.gate = asyncio.Event()

    async def fetch_by_ids(self, record_ids: list[str]) -> list[dict[str, Any]]:
        snapshot = {rid: self.records.get(rid) for rid in record_ids}
        self.calls.append(list(record_ids))
        await self.gate.wait()
        return [r for r in snapshot.values() if r is not None]


def kalshi_market(ticker: str, yes_bid: int | None = 50, **extra: Any) -> dict[str, Any]:
    rec: dict[str, Any] = {"ticker": ticker, "title": f"Market {ticker}", "volume": 100}
    if yes_bid is not None:
        rec["yes_bid"] = yes_bid
    rec.update(extra)
    return rec


def poly_event(slug: str, price: str = "0.5", volume: float = 1000.0) -> dict[str, Any]:
    return {
        "slug": slug,
        "title": f"Event {slug}",
        "volume": volume,
        "markets": [{"outcomes": '["Yes", "No"]', "outcomePrices": f'["{price}", "0.5"]'}],
    }


async def settle(rounds: int = 10) -> None:
    """Let spawned tasks run (fake fetchers never really wait)."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0, step: float = 0.005) -> None:
    """Poll until predicate() holds; fail after timeout seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail(f"condition not met within {timeout}s")
        await asyncio.sleep(step)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> CountingNotifier:
    return CountingNotifier()


@pytest.fixture
def alert_store(clock: FakeClock) -> AlertStore:
    return AlertStore(ttl_ms=10_000, clock=clock)


@pytest.fixture
def detector(alert_store: AlertStore, notifier: CountingNotifier, clock: FakeClock) -> DeltaDetector:
    return DeltaDetector(alert_store, notifier, threshold=0.05, clock=clock)


@pytest.fixture
def kalshi_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def poly_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def tracker(detector: DeltaDetector, poly_fetcher: FakeFetcher, kalshi_fetcher: FakeFetcher) -> MarketTracker:
    return MarketTracker(
        [PolymarketConnector(poly_fetcher), KalshiConnector(kalshi_fetcher)],
        detector,
    )
